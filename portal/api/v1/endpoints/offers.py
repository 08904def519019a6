from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.deps import get_clock, get_lifecycle, get_scheduler
from portal.core.clock import Clock
from portal.core.exceptions import InvalidStateTransition, NotExpiredError, NotFound
from portal.core.logging_config import logger
from portal.crud.offers import create_offer, get_offer_by_id, list_offers_matching
from portal.db.database import get_db
from portal.models.enums import OfferStatus
from portal.models.offers import Offer
from portal.schemas.offers import (
    DocumentRequirementOut,
    ExpiryCheckResponse,
    OfferCreate,
    OfferDetail,
    OfferStatusResponse,
    WinnerRequest,
)
from portal.services.archive_service import archive_window_status, can_archive
from portal.services.deadline_scheduler import DeadlineScheduler
from portal.services.document_requirements import requirements_for_offer
from portal.services.offer_lifecycle import OfferLifecycleManager

router = APIRouter()


async def load_offer(offer_id: int, db: AsyncSession) -> Offer:
    offer = await get_offer_by_id(db, offer_id)
    if not offer:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer


def offer_to_detail(offer: Offer, clock: Clock) -> OfferDetail:
    now = clock.now()
    return OfferDetail(
        id=offer.id,
        title=offer.title,
        reference=offer.reference,
        description=offer.description,
        type=offer.type,
        method=offer.method,
        deadline=offer.deadline,
        status=offer.status,
        winner_name=offer.winner_name,
        notification_emails=offer.notification_recipients,
        removed_default_documents=sorted(offer.removed_documents),
        archive_window_status=archive_window_status(offer, now),
        can_archive=can_archive(offer, now),
        required_documents=[DocumentRequirementOut.model_validate(r) for r in requirements_for_offer(offer)],
    )


@router.post(
    "/",
    response_model=OfferDetail,
    summary="Создание оффера",
    description="Создаёт оффер в статусе active. Автор указывается заголовками X-User-Name / X-User-Email.",
)
async def create_new_offer(
        data: OfferCreate,
        db: AsyncSession = Depends(get_db),
        clock: Clock = Depends(get_clock),
        x_user_name: str = Header("Committee"),
        x_user_email: Optional[str] = Header(None),
):
    logger.info(f"Creating offer '{data.title}' with deadline {data.deadline}")
    try:
        offer = await create_offer(db, data, x_user_name, x_user_email)
    except Exception as e:
        logger.error(f"Error creating offer: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save offer")
    return offer_to_detail(offer, clock)


@router.get(
    "/",
    response_model=List[OfferDetail],
    summary="Список офферов",
    description="Офферы по возрастанию дедлайна, со статусом архивного окна. Можно отфильтровать по статусу.",
)
async def list_offers(
        status: Optional[OfferStatus] = Query(None),
        db: AsyncSession = Depends(get_db),
        clock: Clock = Depends(get_clock),
):
    criteria = [Offer.status == status.value] if status else []
    offers = await list_offers_matching(db, *criteria)
    logger.info(f"Listing {len(offers)} offers (status filter: {status.value if status else 'none'})")
    return [offer_to_detail(offer, clock) for offer in offers]


@router.get("/{offer_id}", response_model=OfferDetail)
async def get_offer_detail(offer_id: int, db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)):
    logger.info(f"Fetching details for offer {offer_id}")
    offer = await load_offer(offer_id, db)
    return offer_to_detail(offer, clock)


@router.get("/{offer_id}/requirements", response_model=List[DocumentRequirementOut])
async def get_offer_requirements(offer_id: int, db: AsyncSession = Depends(get_db)):
    offer = await load_offer(offer_id, db)
    return [DocumentRequirementOut.model_validate(r) for r in requirements_for_offer(offer)]


@router.post(
    "/{offer_id}/set-winner",
    response_model=OfferStatusResponse,
    summary="Выбор победителя",
    responses={
        409: {"description": "Оффер не в статусе under_evaluation"},
        404: {"description": "Оффер не найден"},
    }
)
async def set_offer_winner(
        offer_id: int,
        data: WinnerRequest,
        db: AsyncSession = Depends(get_db),
        lifecycle: OfferLifecycleManager = Depends(get_lifecycle),
):
    offer = await load_offer(offer_id, db)
    try:
        offer = await lifecycle.set_winner(db, offer, data.winner_name)
    except InvalidStateTransition as e:
        logger.warning(str(e))
        raise HTTPException(status_code=409, detail={"message": str(e), "state": e.current_status})
    return OfferStatusResponse(
        status="success",
        offer_id=offer.id,
        state=offer.status,
        winner_name=offer.winner_name,
        message=f"Winner \"{offer.winner_name}\" has been set for offer \"{offer.title}\"",
    )


@router.post(
    "/{offer_id}/set-unsuccessful",
    response_model=OfferStatusResponse,
    summary="Оффер без результата",
    responses={
        409: {"description": "Неверный статус или дедлайн ещё не наступил"},
        404: {"description": "Оффер не найден"},
    }
)
async def set_offer_unsuccessful(
        offer_id: int,
        db: AsyncSession = Depends(get_db),
        lifecycle: OfferLifecycleManager = Depends(get_lifecycle),
):
    offer = await load_offer(offer_id, db)
    try:
        offer = await lifecycle.set_unsuccessful(db, offer)
    except InvalidStateTransition as e:
        logger.warning(str(e))
        raise HTTPException(status_code=409, detail={"message": str(e), "state": e.current_status})
    except NotExpiredError as e:
        logger.warning(str(e))
        raise HTTPException(status_code=409, detail={"message": "Offer must be expired to mark as unsuccessful"})
    return OfferStatusResponse(status="success", offer_id=offer.id, state=offer.status)


@router.post(
    "/{offer_id}/update-expired-status",
    response_model=ExpiryCheckResponse,
    summary="Проверка дедлайна по запросу",
    description="Вызывается клиентом, когда таймер оффера дошёл до нуля. Повторные вызовы безопасны.",
)
async def update_expired_status(offer_id: int, scheduler: DeadlineScheduler = Depends(get_scheduler)):
    try:
        check = await scheduler.evaluate_offer(offer_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Offer not found")
    return ExpiryCheckResponse(
        offer_id=offer_id,
        state=check.status,
        transitioned=check.transitioned,
        notified=[threshold.value for threshold in check.notified],
    )
