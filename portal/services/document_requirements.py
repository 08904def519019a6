"""
Required-document resolution for offers.

The same resolver feeds server-side submission validation and the form the
applicant sees, so both always agree on which files are mandatory.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence

from portal.models.enums import OfferMethod, OfferType

BASE_DOCUMENTS = (
    ("cv", "Curriculum Vitae"),
    ("diploma", "Diploma"),
    ("id_card", "ID Card"),
    ("cover_letter", "Cover Letter"),
)

FORMAL_TENDER_DOCUMENTS = (
    ("sworn_declaration", "Sworn Declaration"),
    ("reference_form", "Reference Form"),
    ("registry_extract", "Registry Extract"),
    ("methodology_note", "Methodology Note"),
    ("reference_list", "Reference List"),
    ("financial_offer", "Financial Offer"),
)

# Типы офферов, для которых добавляется пакет документов формального тендера
CONDITIONAL_DOCUMENTS_BY_TYPE = {
    OfferType.CONSULTATION: FORMAL_TENDER_DOCUMENTS,
    OfferType.TENDER_CALL: FORMAL_TENDER_DOCUMENTS,
    OfferType.EQUIPMENT_CALL: FORMAL_TENDER_DOCUMENTS,
    OfferType.EXPRESSION_OF_INTEREST: FORMAL_TENDER_DOCUMENTS,
}

DEFAULT_DOCUMENT_LABELS = dict(BASE_DOCUMENTS + FORMAL_TENDER_DOCUMENTS)

OTHER_DOCUMENT_PREFIX = "other_doc_"


@dataclass(frozen=True)
class CustomDocumentSpec:
    key: str
    name: str
    required: bool


@dataclass(frozen=True)
class DocumentRequirement:
    key: str
    name: str
    mandatory: bool
    custom: bool = False


def resolve_required_documents(
    offer_type: OfferType,
    method: OfferMethod,
    removed: Iterable[str],
    custom: Sequence[CustomDocumentSpec],
) -> list[DocumentRequirement]:
    """Computes the ordered document list for an offer configuration.

    Base documents always apply; the formal-tender package is added for the
    offer types listed in CONDITIONAL_DOCUMENTS_BY_TYPE. Keys in `removed` are
    dropped from both. Custom documents are appended last and are mandatory
    only when flagged as required. `method` does not change the result today;
    it is part of the signature so callers pass the full configuration.
    """
    removed = frozenset(removed)
    candidates = BASE_DOCUMENTS + CONDITIONAL_DOCUMENTS_BY_TYPE.get(OfferType(offer_type), ())

    requirements = [
        DocumentRequirement(key=key, name=name, mandatory=True)
        for key, name in candidates
        if key not in removed
    ]
    seen = {requirement.key for requirement in requirements}
    for doc in custom:
        if doc.key in seen:
            continue
        seen.add(doc.key)
        requirements.append(DocumentRequirement(key=doc.key, name=doc.name, mandatory=doc.required, custom=True))
    return requirements


def requirements_for_offer(offer) -> list[DocumentRequirement]:
    custom = [
        CustomDocumentSpec(key=doc.document_key, name=doc.document_name, required=doc.required)
        for doc in offer.custom_documents
    ]
    return resolve_required_documents(offer.offer_type, offer.offer_method, offer.removed_documents, custom)


def mandatory_keys(requirements: Iterable[DocumentRequirement]) -> list[str]:
    return [requirement.key for requirement in requirements if requirement.mandatory]


def is_other_document(key: str) -> bool:
    return key.startswith(OTHER_DOCUMENT_PREFIX)
