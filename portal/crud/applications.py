from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from portal.core.exceptions import DuplicateApplicationError
from portal.core.logging_config import logger
from portal.models.applications import Application, ApplicationDocument


async def list_applications(db: AsyncSession, offer_id: int) -> list[Application]:
    result = await db.execute(
        select(Application)
        .filter(Application.offer_id == offer_id)
        .order_by(Application.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def application_exists(db: AsyncSession, offer_id: int, email: str) -> bool:
    result = await db.execute(
        select(Application.id).filter(Application.offer_id == offer_id, Application.email == email)
    )
    return result.scalars().first() is not None


async def save_application(db: AsyncSession, application: Application, documents: list[ApplicationDocument]) -> Application:
    application.documents.extend(documents)
    db.add(application)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Application from {application.email} for offer {application.offer_id} already exists")
        raise DuplicateApplicationError(application.offer_id, application.email)
    await db.refresh(application)
    logger.info(f"Saved application {application.id} with {len(documents)} documents for offer {application.offer_id}")
    return application


async def mark_archived(db: AsyncSession, offer_id: int, archived_at: datetime) -> int:
    """Stamps `archived_at` on every not-yet-archived application of the offer; returns how many changed."""
    result = await db.execute(
        update(Application)
        .where(Application.offer_id == offer_id, Application.archived_at.is_(None))
        .values(archived_at=archived_at)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
