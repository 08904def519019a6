"""Tests for application submission."""

from datetime import timedelta

import pytest

from conftest import NOW, MemoryStorage, RecordingSender, pdf
from portal.core.exceptions import DuplicateApplicationError, OfferClosedError, ValidationError
from portal.models.enums import OfferStatus
from portal.schemas.applications import ApplicantCreate
from portal.services import application_service, email_templates
from portal.services.application_service import submit_application


def applicant(offer_id: int, email: str = "amal@mail.tn") -> ApplicantCreate:
    return ApplicantCreate(
        offer_id=offer_id, full_name="Amal Ben Ali", email=email, tel_number="+216 20 000 000", country="Tunisia"
    )


def base_files():
    return {key: [pdf(key)] for key in ("cv", "diploma", "id_card", "cover_letter")}


class TestSubmitApplication:
    @pytest.mark.asyncio
    async def test_successful_submission(self, db, make_offer, storage, clock, sender):
        offer = await make_offer(custom=[("portfolio", "Portfolio", True)])
        files = base_files()
        files["portfolio"] = [pdf("portfolio")]
        files["other_doc_1"] = [pdf("other_doc_1", display_name="Driving licence")]

        application = await submit_application(db, storage, applicant(offer.id), files, clock=clock, sender=sender)

        kinds = {doc.document_key: (doc.kind, doc.display_name) for doc in application.documents}
        assert kinds["cv"] == ("standard", None)
        assert kinds["portfolio"] == ("custom", "Portfolio")
        assert kinds["other_doc_1"] == ("other", "Driving licence")
        assert len(storage.objects) == 6
        assert all(key.startswith(f"applicants/{offer.id}/amal_ben_ali/") for key in storage.objects)
        assert sender.recipients_for(email_templates.APPLICATION_CONFIRMATION) == ["amal@mail.tn"]

    @pytest.mark.asyncio
    async def test_offer_no_longer_active(self, db, make_offer, storage, clock, sender):
        offer = await make_offer(deadline=NOW - timedelta(days=1), status=OfferStatus.UNDER_EVALUATION)
        with pytest.raises(OfferClosedError):
            await submit_application(db, storage, applicant(offer.id), base_files(), clock=clock, sender=sender)

    @pytest.mark.asyncio
    async def test_deadline_passed_before_sweep(self, db, make_offer, storage, clock, sender):
        """An active offer whose deadline has passed refuses submissions even before the status changes."""
        offer = await make_offer(deadline=NOW - timedelta(seconds=1))
        with pytest.raises(OfferClosedError):
            await submit_application(db, storage, applicant(offer.id), base_files(), clock=clock, sender=sender)

    @pytest.mark.asyncio
    async def test_missing_document_uploads_nothing(self, db, make_offer, storage, clock, sender):
        offer = await make_offer()
        files = base_files()
        del files["id_card"]
        with pytest.raises(ValidationError) as exc_info:
            await submit_application(db, storage, applicant(offer.id), files, clock=clock, sender=sender)
        assert exc_info.value.field == "id_card"
        assert storage.objects == {}
        assert sender.calls == []

    @pytest.mark.asyncio
    async def test_second_application_with_same_email(self, db, make_offer, storage, clock, sender):
        offer = await make_offer()
        await submit_application(db, storage, applicant(offer.id), base_files(), clock=clock, sender=sender)
        with pytest.raises(DuplicateApplicationError):
            await submit_application(db, storage, applicant(offer.id), base_files(), clock=clock, sender=sender)

    @pytest.mark.asyncio
    async def test_confirmation_failure_keeps_application(self, db, make_offer, storage, clock):
        offer = await make_offer()
        sender = RecordingSender(failing={"amal@mail.tn"})
        application = await submit_application(db, storage, applicant(offer.id), base_files(), clock=clock, sender=sender)
        assert application.id is not None
        assert len(application.documents) == 4

    @pytest.mark.asyncio
    async def test_confirmation_exception_keeps_application(self, db, make_offer, storage, clock):
        """A mail gateway that raises does not turn a saved application into an error."""
        offer = await make_offer()

        async def broken_sender(recipient, template_id, params):
            raise RuntimeError("gateway exploded")

        application = await submit_application(
            db, storage, applicant(offer.id), base_files(), clock=clock, sender=broken_sender
        )
        assert application.id is not None
        assert len(storage.objects) == 4


class FlakyStorage(MemoryStorage):
    """Storage whose n-th upload fails."""

    def __init__(self, fail_on: int):
        super().__init__()
        self.fail_on = fail_on
        self.uploads = 0

    async def upload_bytes(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        self.uploads += 1
        if self.uploads == self.fail_on:
            raise ConnectionError("storage unavailable")
        return await super().upload_bytes(key, content, content_type)


class TestUploadCleanup:
    @pytest.mark.asyncio
    async def test_failed_upload_leaves_no_objects(self, db, make_offer, clock, sender):
        offer = await make_offer()
        storage = FlakyStorage(fail_on=3)
        with pytest.raises(ConnectionError):
            await submit_application(db, storage, applicant(offer.id), base_files(), clock=clock, sender=sender)
        assert storage.objects == {}
        assert sender.calls == []

    @pytest.mark.asyncio
    async def test_lost_duplicate_race_leaves_first_files_only(
        self, session_factory, make_offer, storage, clock, sender, monkeypatch
    ):
        """Two submissions pass the duplicate check together; the loser's files are removed."""
        offer = await make_offer()
        offer_id = offer.id
        async with session_factory() as session:
            first = await submit_application(session, storage, applicant(offer_id), base_files(), clock=clock, sender=sender)
            first_keys = {document.storage_key for document in first.documents}

        async def not_seen_yet(db, offer_id, email):
            return False

        monkeypatch.setattr(application_service, "application_exists", not_seen_yet)
        async with session_factory() as session:
            with pytest.raises(DuplicateApplicationError):
                await submit_application(session, storage, applicant(offer_id), base_files(), clock=clock, sender=sender)

        assert set(storage.objects) == first_keys
        assert len(sender.calls) == 1
