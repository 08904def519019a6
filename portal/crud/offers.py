from datetime import datetime

from sqlalchemy import exists, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from portal.core.exceptions import NotFound
from portal.core.logging_config import logger
from portal.models.applications import Application
from portal.models.enums import OfferStatus, Threshold
from portal.models.notifications import OfferNotification
from portal.models.offers import CustomRequiredDocument, Offer
from portal.schemas.offers import OfferCreate


async def get_offer_by_id(db: AsyncSession, offer_id: int) -> Offer | None:
    """Загружает оффер заново из базы, перезаписывая состояние в сессии."""
    result = await db.execute(
        select(Offer)
        .filter(Offer.id == offer_id)
        .execution_options(populate_existing=True)
    )
    offer = result.scalars().first()
    if not offer:
        logger.warning(f"Offer {offer_id} not found")
    return offer


async def get_offer_or_raise(db: AsyncSession, offer_id: int) -> Offer:
    offer = await get_offer_by_id(db, offer_id)
    if offer is None:
        raise NotFound("Offer", offer_id)
    return offer


async def list_offers_matching(db: AsyncSession, *criteria) -> list[Offer]:
    result = await db.execute(select(Offer).where(*criteria).order_by(Offer.deadline, Offer.id))
    return list(result.scalars().all())


async def list_offers_due_for_notification(db: AsyncSession, horizon: datetime) -> list[Offer]:
    """Offers whose deadline falls before `horizon` and that still owe a deadline notification or a transition."""
    deadline_fired = exists().where(
        OfferNotification.offer_id == Offer.id,
        OfferNotification.threshold == Threshold.DEADLINE.value,
    )
    return await list_offers_matching(
        db,
        Offer.deadline <= horizon,
        (Offer.status == OfferStatus.ACTIVE.value) | ~deadline_fired,
    )


async def update_offer_if(db: AsyncSession, offer_id: int, expected: dict, values: dict) -> bool:
    """Conditional write: applies `values` only while every column in `expected` still holds.

    Returns True when the row was updated, False when another actor changed it first.
    """
    conditions = [getattr(Offer, column) == value for column, value in expected.items()]
    result = await db.execute(
        update(Offer)
        .where(Offer.id == offer_id, *conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    updated = result.rowcount == 1
    logger.debug(f"Conditional update of offer {offer_id} expecting {expected}: {'applied' if updated else 'skipped'}")
    return updated


async def get_notification_ledger(db: AsyncSession, offer_id: int) -> frozenset[Threshold]:
    result = await db.execute(
        select(OfferNotification.threshold).filter(OfferNotification.offer_id == offer_id)
    )
    return frozenset(Threshold(value) for value in result.scalars().all())


async def claim_notification(db: AsyncSession, offer_id: int, threshold: Threshold) -> bool:
    """Adds `threshold` to the offer's ledger. False means it was already there."""
    db.add(OfferNotification(offer_id=offer_id, threshold=threshold.value))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Threshold {threshold.value} already claimed for offer {offer_id}")
        return False
    return True


async def record_notification_recipients(db: AsyncSession, offer_id: int, threshold: Threshold, count: int) -> None:
    await db.execute(
        update(OfferNotification)
        .where(OfferNotification.offer_id == offer_id, OfferNotification.threshold == threshold.value)
        .values(recipients_count=count)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def count_applications(db: AsyncSession, offer_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Application).filter(Application.offer_id == offer_id)
    )
    return result.scalar()


async def create_offer(db: AsyncSession, offer_data: OfferCreate, creator_name: str, creator_email: str) -> Offer:
    db_offer = Offer(
        title=offer_data.title,
        reference=offer_data.reference,
        description=offer_data.description,
        type=offer_data.type.value,
        method=offer_data.method.value,
        deadline=offer_data.deadline,
        status=OfferStatus.ACTIVE.value,
        creator_name=creator_name,
        creator_email=creator_email,
        notification_emails=list(offer_data.notification_emails),
        removed_default_documents=list(offer_data.removed_default_documents),
    )
    for position, doc in enumerate(offer_data.custom_documents):
        db_offer.custom_documents.append(
            CustomRequiredDocument(
                document_key=doc.key,
                document_name=doc.name,
                required=doc.required,
                position=position,
            )
        )
    db.add(db_offer)
    try:
        await db.commit()
    except Exception as e:
        logger.error(f"Error saving offer '{offer_data.title}': {str(e)}")
        await db.rollback()
        raise
    logger.info(f"Created offer {db_offer.id} '{db_offer.title}' with deadline {db_offer.deadline}")
    return await get_offer_or_raise(db, db_offer.id)
