import io
import re
import zipfile
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.clock import Clock, default_clock
from portal.core.config import settings
from portal.core.exceptions import ArchiveWindowClosedError, InvalidStateTransition, NotFound
from portal.core.logging_config import logger
from portal.crud.applications import list_applications, mark_archived
from portal.crud.offers import get_offer_or_raise
from portal.models.applications import Application
from portal.models.enums import ArchiveWindowStatus, OfferStatus
from portal.models.offers import Offer
from portal.services.document_requirements import DEFAULT_DOCUMENT_LABELS
from portal.services.storage import sanitize

ARCHIVE_FOLDER = "archives"
ARCHIVE_NAME_PREFIX = "archived_applications_"


def archive_window() -> timedelta:
    return timedelta(hours=settings.ARCHIVE_WINDOW_HOURS)


def archive_window_status(offer: Offer, now: datetime) -> ArchiveWindowStatus:
    if now < offer.deadline:
        return ArchiveWindowStatus.NOT_YET_EXPIRED
    if now - offer.deadline <= archive_window():
        return ArchiveWindowStatus.OPEN
    return ArchiveWindowStatus.CLOSED


def can_archive(offer: Offer, now: datetime) -> bool:
    return offer.status != OfferStatus.ACTIVE.value and now - offer.deadline <= archive_window()


@dataclass
class ArchiveResult:
    offer_id: int
    total_applications: int
    newly_archived: int
    archive_key: str | None = None
    skipped_documents: int = 0


def _document_label(document) -> str:
    if document.kind == "other":
        return f"Other_{sanitize(document.display_name or document.document_key)}"
    if document.kind == "custom":
        return f"Custom_{sanitize(document.display_name or document.document_key)}"
    return sanitize(DEFAULT_DOCUMENT_LABELS.get(document.document_key, document.document_key))


def _candidate_info(offer: Offer, application: Application, document_count: int) -> str:
    applied_on = application.created_at.strftime("%Y-%m-%d") if application.created_at else "N/A"
    return (
        "Candidate Information:\n"
        f"- Name: {application.full_name}\n"
        f"- Email: {application.email}\n"
        f"- Phone: {application.tel_number or 'N/A'}\n"
        f"- Country: {application.country or 'N/A'}\n"
        f"- Applied for: {offer.title}\n"
        f"- Offer Type: {offer.type}\n"
        f"- Application Date: {applied_on}\n"
        f"- Total Documents: {document_count}\n"
    )


async def build_bundle(storage, offer: Offer, applications: list[Application]) -> tuple[bytes, int]:
    """Zips every application's documents; unreadable files are logged and skipped."""
    buffer = io.BytesIO()
    skipped = 0
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as bundle:
        for application in applications:
            folder = f"{sanitize(offer.title)}/{sanitize(application.full_name)}"
            included = 0
            for document in application.documents:
                try:
                    content = await storage.download_bytes(document.storage_key)
                except Exception as e:
                    logger.error(
                        f"Error reading {document.document_key} for application {application.id}: {str(e)}"
                    )
                    skipped += 1
                    continue
                extension = document.file_name.rsplit(".", 1)[-1] if "." in document.file_name else "pdf"
                bundle.writestr(f"{folder}/{_document_label(document)}.{extension}", content)
                included += 1
            bundle.writestr(f"{folder}/candidate_info.txt", _candidate_info(offer, application, included))
    return buffer.getvalue(), skipped


async def archive_applications(db: AsyncSession, storage, offer_id: int, clock: Clock = default_clock) -> ArchiveResult:
    """Exports all applications of an offer and stamps the ones not archived before.

    Inside the window every call re-exports everything; only applications with
    no `archived_at` get stamped. Once the window has closed the call is a
    no-op if nothing is pending and an error otherwise.
    """
    now = clock.now()
    offer = await get_offer_or_raise(db, offer_id)
    applications = await list_applications(db, offer_id)
    if not applications:
        raise NotFound("Applications for offer", offer_id)

    pending = sum(1 for application in applications if application.archived_at is None)
    if not can_archive(offer, now):
        if offer.status == OfferStatus.ACTIVE.value:
            raise InvalidStateTransition(offer_id, offer.status, "archive applications of")
        if pending == 0:
            logger.info(f"Archive window closed for offer {offer_id}, all {len(applications)} applications already archived")
            return ArchiveResult(offer_id=offer_id, total_applications=len(applications), newly_archived=0)
        raise ArchiveWindowClosedError(offer_id, pending)

    content, skipped = await build_bundle(storage, offer, applications)
    archive_key = f"{ARCHIVE_FOLDER}/{ARCHIVE_NAME_PREFIX}{sanitize(offer.title)}_{now:%Y-%m-%dT%H-%M-%S}.zip"
    await storage.upload_bytes(archive_key, content, "application/zip")

    newly_archived = await mark_archived(db, offer_id, now) if pending else 0
    logger.info(
        f"Archived {len(applications)} applications ({newly_archived} newly archived) for offer {offer_id} into {archive_key}"
    )
    return ArchiveResult(
        offer_id=offer_id,
        total_applications=len(applications),
        newly_archived=newly_archived,
        archive_key=archive_key,
        skipped_documents=skipped,
    )


def archive_key_for(filename: str) -> str:
    """Maps a bundle file name back to its storage key; anything else is unknown."""
    if not re.fullmatch(rf"{ARCHIVE_NAME_PREFIX}[A-Za-z0-9_\-]+\.zip", filename):
        raise NotFound("Archive", filename)
    return f"{ARCHIVE_FOLDER}/{filename}"


async def read_archive(storage, filename: str) -> bytes:
    key = archive_key_for(filename)
    content = await storage.download_bytes(key)
    logger.info(f"Serving archive {key} ({len(content)} bytes)")
    return content
