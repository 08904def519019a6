import uuid
from typing import Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.clock import Clock, default_clock
from portal.core.exceptions import DuplicateApplicationError, OfferClosedError
from portal.core.logging_config import logger
from portal.crud.applications import application_exists, save_application
from portal.crud.offers import get_offer_or_raise
from portal.models.applications import Application, ApplicationDocument
from portal.models.enums import OfferStatus
from portal.schemas.applications import ApplicantCreate
from portal.services import email_templates
from portal.services.document_requirements import is_other_document, requirements_for_offer
from portal.services.notifications import send_notification
from portal.services.storage import sanitize
from portal.services.submission_validator import UploadedDocument, validate_submission


async def discard_uploads(storage, keys: Sequence[str]) -> None:
    for key in keys:
        try:
            await storage.delete(key)
        except Exception as e:
            logger.error(f"Could not delete orphaned upload {key}: {str(e)}")
    if keys:
        logger.info(f"Discarded {len(keys)} uploads of a rejected application")


async def submit_application(
    db: AsyncSession,
    storage,
    applicant: ApplicantCreate,
    files: Mapping[str, Sequence[UploadedDocument]],
    clock: Clock = default_clock,
    sender=send_notification,
) -> Application:
    offer = await get_offer_or_raise(db, applicant.offer_id)
    offer_id, offer_title = offer.id, offer.title
    logger.info(f"Received application from {applicant.email} for offer {offer_id} with {len(files)} file fields")

    if offer.status != OfferStatus.ACTIVE.value:
        raise OfferClosedError(offer_id, "This offer is no longer accepting applications.")
    if clock.now() >= offer.deadline:
        raise OfferClosedError(offer_id, "Application deadline has passed.")

    requirements = requirements_for_offer(offer)
    accepted = validate_submission(requirements, files)

    if await application_exists(db, offer_id, applicant.email):
        raise DuplicateApplicationError(offer_id, applicant.email)

    custom_keys = {requirement.key: requirement.name for requirement in requirements if requirement.custom}
    folder = f"applicants/{offer_id}/{sanitize(applicant.full_name).lower()}"
    documents = []
    uploaded = []
    try:
        for upload in accepted:
            storage_key = f"{folder}/{upload.key}-{uuid.uuid4().hex}.pdf"
            await storage.upload_bytes(storage_key, upload.content, upload.content_type)
            uploaded.append(storage_key)
            if is_other_document(upload.key):
                kind, display_name = "other", upload.display_name or upload.key
            elif upload.key in custom_keys:
                kind, display_name = "custom", custom_keys[upload.key]
            else:
                kind, display_name = "standard", None
            documents.append(
                ApplicationDocument(
                    document_key=upload.key,
                    kind=kind,
                    display_name=display_name,
                    file_name=upload.file_name,
                    storage_key=storage_key,
                )
            )

        application = Application(
            offer_id=offer_id,
            full_name=applicant.full_name,
            email=applicant.email,
            tel_number=applicant.tel_number,
            country=applicant.country,
        )
        application = await save_application(db, application, documents)
    except Exception:
        # Заявка не сохранена: загруженные файлы никому не принадлежат
        await discard_uploads(storage, uploaded)
        raise

    try:
        result = await sender(
            applicant.email,
            email_templates.APPLICATION_CONFIRMATION,
            {
                "recipient_name": applicant.full_name,
                "offer_title": offer_title,
                "submitted_at": clock.now().strftime("%Y-%m-%d"),
            },
        )
    except Exception as e:
        logger.error(f"Application {application.id} saved but confirmation to {applicant.email} raised: {str(e)}")
        return application
    if not result.delivered:
        logger.warning(f"Application {application.id} saved but confirmation to {applicant.email} failed: {result.reason}")
    return application
