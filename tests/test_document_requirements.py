"""Unit tests for required-document resolution."""

import pytest

from portal.models.enums import OfferMethod, OfferType
from portal.services.document_requirements import (
    BASE_DOCUMENTS,
    CustomDocumentSpec,
    is_other_document,
    mandatory_keys,
    requirements_for_offer,
    resolve_required_documents,
)


class TestResolveRequiredDocuments:
    """Tests for resolve_required_documents."""

    def test_recruitment_gets_base_documents_only(self):
        """Non-tender offer types only require the base set."""
        requirements = resolve_required_documents(OfferType.RECRUITMENT, OfferMethod.DIRECT_AGREEMENT, set(), [])
        assert [r.key for r in requirements] == [key for key, _ in BASE_DOCUMENTS]
        assert all(r.mandatory for r in requirements)

    def test_tender_call_without_cover_letter(self):
        """Tender calls add the formal package; removed defaults disappear."""
        requirements = resolve_required_documents(OfferType.TENDER_CALL, OfferMethod.TENDER_CALL, {"cover_letter"}, [])
        assert set(mandatory_keys(requirements)) == {
            "cv",
            "diploma",
            "id_card",
            "sworn_declaration",
            "reference_form",
            "registry_extract",
            "methodology_note",
            "reference_list",
            "financial_offer",
        }
        assert len(requirements) == 9

    @pytest.mark.parametrize(
        "offer_type",
        [OfferType.CONSULTATION, OfferType.TENDER_CALL, OfferType.EQUIPMENT_CALL, OfferType.EXPRESSION_OF_INTEREST],
    )
    def test_formal_types_require_financial_offer(self, offer_type):
        requirements = resolve_required_documents(offer_type, OfferMethod.CONSULTATION, set(), [])
        assert "financial_offer" in mandatory_keys(requirements)

    def test_method_does_not_change_result(self):
        """Only the offer type selects the conditional package."""
        by_method = [
            resolve_required_documents(OfferType.WORKS, method, set(), [])
            for method in OfferMethod
        ]
        assert all(result == by_method[0] for result in by_method)

    def test_removed_conditional_document(self):
        requirements = resolve_required_documents(
            OfferType.CONSULTATION, OfferMethod.CONSULTATION, {"financial_offer", "cv"}, []
        )
        keys = [r.key for r in requirements]
        assert "financial_offer" not in keys
        assert "cv" not in keys
        assert "reference_list" in keys

    def test_custom_documents_are_appended_last(self):
        """Custom documents follow the defaults and keep their own required flag."""
        custom = [
            CustomDocumentSpec(key="portfolio", name="Portfolio", required=True),
            CustomDocumentSpec(key="recommendation", name="Recommendation Letter", required=False),
        ]
        requirements = resolve_required_documents(OfferType.SERVICE, OfferMethod.DIRECT_AGREEMENT, set(), custom)
        assert [r.key for r in requirements[-2:]] == ["portfolio", "recommendation"]
        assert requirements[-2].mandatory and requirements[-2].custom
        assert not requirements[-1].mandatory
        assert "recommendation" not in mandatory_keys(requirements)

    def test_custom_key_matching_default_is_ignored(self):
        custom = [CustomDocumentSpec(key="cv", name="Another CV", required=False)]
        requirements = resolve_required_documents(OfferType.RECRUITMENT, OfferMethod.DIRECT_AGREEMENT, set(), custom)
        cv = [r for r in requirements if r.key == "cv"]
        assert len(cv) == 1
        assert cv[0].mandatory and not cv[0].custom

    def test_resolution_is_deterministic(self):
        """Identical inputs give identical ordered output."""
        custom = [CustomDocumentSpec(key="portfolio", name="Portfolio", required=True)]
        first = resolve_required_documents(OfferType.TENDER_CALL, OfferMethod.TENDER_CALL, {"diploma"}, custom)
        for _ in range(5):
            again = resolve_required_documents(OfferType.TENDER_CALL, OfferMethod.TENDER_CALL, {"diploma"}, custom)
            assert again == first


class TestOtherDocuments:
    def test_other_document_prefix(self):
        assert is_other_document("other_doc_1")
        assert not is_other_document("cv")


@pytest.mark.asyncio
async def test_requirements_for_stored_offer(make_offer):
    """Stored offers resolve through the same function as the form."""
    offer = await make_offer(
        offer_type=OfferType.TENDER_CALL,
        method=OfferMethod.TENDER_CALL,
        removed=["cover_letter"],
        custom=[("portfolio", "Portfolio", False)],
    )
    requirements = requirements_for_offer(offer)
    keys = [r.key for r in requirements]
    assert "cover_letter" not in keys
    assert keys[-1] == "portfolio"
    assert len(mandatory_keys(requirements)) == 9
