from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from portal.core.config import settings
from portal.db import base  # noqa: F401

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
