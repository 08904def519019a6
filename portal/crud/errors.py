from sqlalchemy.ext.asyncio import AsyncSession
from portal.models.errors import Error

async def log_offer_error(db: AsyncSession, offer_id: int | None, error_message: str, module: str = "deadline_scheduler"):
    error = Error(offer_id=offer_id, module=module, error_message=error_message)
    db.add(error)
    await db.commit()
