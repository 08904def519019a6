"""Shared fixtures: a throwaway SQLite database, a frozen clock and in-memory fakes for mail and storage."""

import os
import tempfile
from datetime import datetime, timedelta

# Настройки читаются при импорте portal.core.config
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TIMEZONE", "Africa/Tunis")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "portal-tests.log"))

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from portal.core.clock import FrozenClock
from portal.core.exceptions import NotFound
from portal.crud.offers import get_offer_or_raise
from portal.db.base import Base
from portal.models.enums import OfferMethod, OfferStatus, OfferType
from portal.models.offers import CustomRequiredDocument, Offer
from portal.services.notifications import DeliveryResult
from portal.services.submission_validator import UploadedDocument

NOW = datetime(2026, 3, 10, 12, 0)


class RecordingSender:
    """Stands in for the mail gateway; records every call and fails for selected recipients."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    async def __call__(self, recipient: str, template_id: str, params: dict) -> DeliveryResult:
        self.calls.append((recipient, template_id, dict(params)))
        if recipient in self.failing:
            return DeliveryResult(recipient, template_id, delivered=False, reason="mailbox unavailable")
        return DeliveryResult(recipient, template_id, delivered=True)

    def recipients_for(self, template_id: str) -> list[str]:
        return [recipient for recipient, template, _ in self.calls if template == template_id]


class MemoryStorage:
    """In-memory replacement for S3Storage."""

    def __init__(self):
        self.objects = {}

    async def upload_bytes(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        self.objects[key] = (content, content_type)
        return key

    async def download_bytes(self, key: str) -> bytes:
        if key not in self.objects:
            raise NotFound("Object", key)
        return self.objects[key][0]

    async def delete(self, key: str) -> None:
        self.objects.pop(key, None)


def pdf(key: str, name: str = None, display_name: str = None) -> UploadedDocument:
    return UploadedDocument(
        key=key,
        file_name=name or f"{key}.pdf",
        content_type="application/pdf",
        content=b"%PDF-1.4 " + key.encode(),
        display_name=display_name,
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest_asyncio.fixture
async def make_offer(db):
    """Factory inserting an offer; deadline defaults to ten days after NOW."""

    async def _make(
        deadline: datetime = NOW + timedelta(days=10),
        status: OfferStatus = OfferStatus.ACTIVE,
        offer_type: OfferType = OfferType.RECRUITMENT,
        method: OfferMethod = OfferMethod.DIRECT_AGREEMENT,
        title: str = "Data Analyst",
        creator_email: str = "creator@portal.tn",
        notification_emails=(),
        removed=(),
        custom=(),
    ) -> Offer:
        offer = Offer(
            title=title,
            type=offer_type.value,
            method=method.value,
            deadline=deadline,
            status=status.value,
            creator_name="Committee Chair",
            creator_email=creator_email,
            notification_emails=list(notification_emails),
            removed_default_documents=list(removed),
        )
        for position, (key, name, required) in enumerate(custom):
            offer.custom_documents.append(
                CustomRequiredDocument(document_key=key, document_name=name, required=required, position=position)
            )
        db.add(offer)
        await db.commit()
        return await get_offer_or_raise(db, offer.id)

    return _make
