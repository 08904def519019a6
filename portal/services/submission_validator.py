from dataclasses import dataclass
from typing import Mapping, Sequence

from portal.core.exceptions import ValidationError
from portal.core.logging_config import logger
from portal.services.document_requirements import DocumentRequirement, is_other_document

PDF_MIME_TYPE = "application/pdf"


@dataclass
class UploadedDocument:
    key: str
    file_name: str
    content_type: str
    content: bytes
    display_name: str | None = None


def is_pdf(document: UploadedDocument) -> bool:
    """Проверка MIME-типа файла"""
    return (document.content_type or "").split(";")[0].strip().lower() == PDF_MIME_TYPE


def validate_submission(
    requirements: Sequence[DocumentRequirement],
    files: Mapping[str, Sequence[UploadedDocument]],
) -> list[UploadedDocument]:
    """Checks uploaded files against the resolved requirements.

    Returns the accepted documents in requirement order followed by "other"
    documents. Raises ValidationError for the first offending key.
    """
    accepted = []
    known = set()

    for requirement in requirements:
        known.add(requirement.key)
        uploads = files.get(requirement.key) or []
        if not uploads:
            if requirement.mandatory:
                logger.info(f"Missing required file: {requirement.key}")
                raise ValidationError(missing_field=requirement.key)
            continue
        if len(uploads) > 1:
            raise ValidationError(duplicate_field=requirement.key)
        document = uploads[0]
        if not is_pdf(document):
            logger.info(f"Invalid file type for {requirement.key}: {document.content_type}")
            raise ValidationError(invalid_type=requirement.key)
        accepted.append(document)

    for key in sorted(files):
        if key in known:
            continue
        if not is_other_document(key):
            logger.warning(f"Ignoring unexpected file field {key}")
            continue
        uploads = files[key]
        if len(uploads) > 1:
            raise ValidationError(duplicate_field=key)
        if uploads and not is_pdf(uploads[0]):
            raise ValidationError(invalid_type=key)
        accepted.extend(uploads)

    return accepted
