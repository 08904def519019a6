import io
from collections import defaultdict

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from portal.api.deps import get_clock, get_scheduler, get_sender, get_storage
from portal.core.clock import Clock
from portal.core.exceptions import (
    ArchiveWindowClosedError,
    DuplicateApplicationError,
    InvalidStateTransition,
    NotFound,
    OfferClosedError,
    ValidationError,
)
from portal.core.logging_config import logger
from portal.db.database import get_db
from portal.schemas.applications import ApplicantCreate, ApplicationResponse, ArchiveResponse
from portal.services.application_service import submit_application
from portal.services.archive_service import archive_applications, read_archive
from portal.services.deadline_scheduler import DeadlineScheduler
from portal.services.document_requirements import OTHER_DOCUMENT_PREFIX
from portal.services.storage import S3Storage
from portal.services.submission_validator import UploadedDocument

router = APIRouter()

APPLICANT_FIELDS = ("offer_id", "full_name", "email", "tel_number", "country")
OTHER_NAME_PREFIX = "other_doc_name_"


async def read_uploads(form) -> dict[str, list[UploadedDocument]]:
    """Собирает файлы из multipart-формы, сгруппированные по имени поля."""
    files = defaultdict(list)
    for key, value in form.multi_items():
        if not isinstance(value, UploadFile):
            continue
        display_name = None
        if key.startswith(OTHER_DOCUMENT_PREFIX):
            suffix = key[len(OTHER_DOCUMENT_PREFIX):]
            display_name = form.get(f"{OTHER_NAME_PREFIX}{suffix}") or None
        files[key].append(
            UploadedDocument(
                key=key,
                file_name=value.filename or f"{key}.pdf",
                content_type=value.content_type,
                content=await value.read(),
                display_name=display_name,
            )
        )
    return dict(files)


@router.post(
    "/",
    response_model=ApplicationResponse,
    summary="Подача заявки",
    description="Multipart-форма: поля кандидата и по одному PDF на каждый документ из требований оффера.",
    responses={
        403: {"description": "Оффер закрыт для заявок"},
        409: {"description": "Кандидат уже подал заявку"},
        422: {"description": "Не хватает документа или файл не PDF"},
    }
)
async def apply(
        request: Request,
        db: AsyncSession = Depends(get_db),
        storage: S3Storage = Depends(get_storage),
        clock: Clock = Depends(get_clock),
        sender=Depends(get_sender),
):
    form = await request.form()
    missing = [field for field in APPLICANT_FIELDS if not form.get(field)]
    if missing:
        raise HTTPException(status_code=422, detail={"message": "Missing applicant fields", "fields": missing})
    try:
        applicant = ApplicantCreate(**{field: form.get(field) for field in APPLICANT_FIELDS})
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    files = await read_uploads(form)
    try:
        application = await submit_application(db, storage, applicant, files, clock=clock, sender=sender)
    except NotFound:
        raise HTTPException(status_code=404, detail="Offer not found")
    except OfferClosedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "field": e.field})
    except DuplicateApplicationError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info(f"Application {application.id} stored for offer {application.offer_id}")
    return application


@router.post(
    "/archive/{offer_id}",
    response_model=ArchiveResponse,
    summary="Архивация заявок оффера",
    description="Собирает все заявки в zip и отмечает ещё не архивированные. Доступно 14 дней после дедлайна.",
)
async def archive_offer_applications(
        offer_id: int,
        db: AsyncSession = Depends(get_db),
        storage: S3Storage = Depends(get_storage),
        clock: Clock = Depends(get_clock),
        scheduler: DeadlineScheduler = Depends(get_scheduler),
):
    try:
        # Оффер с истёкшим дедлайном мог ещё не перейти в under_evaluation
        await scheduler.evaluate_offer(offer_id)
        result = await archive_applications(db, storage, offer_id, clock)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateTransition as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "state": e.current_status})
    except ArchiveWindowClosedError as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "pending": e.pending})

    if result.archive_key:
        message = f"Archived {result.total_applications} applications ({result.newly_archived} newly)"
    else:
        message = "Archive window closed, all applications already archived"
    return ArchiveResponse(
        offer_id=result.offer_id,
        archive_key=result.archive_key,
        total_applications=result.total_applications,
        newly_archived=result.newly_archived,
        skipped_documents=result.skipped_documents,
        message=message,
    )


@router.get(
    "/archive/{filename}",
    summary="Скачивание архива заявок",
    description="Отдаёт zip, созданный архивацией заявок оффера.",
    responses={404: {"description": "Архив не найден"}},
)
async def download_archive(filename: str, storage: S3Storage = Depends(get_storage)):
    try:
        content = await read_archive(storage, filename)
    except NotFound:
        raise HTTPException(status_code=404, detail="Archive not found")
    return StreamingResponse(
        io.BytesIO(content),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
