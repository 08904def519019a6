from fastapi import Depends

from portal.core.clock import Clock, default_clock
from portal.db.database import AsyncSessionLocal
from portal.services.deadline_scheduler import DeadlineScheduler
from portal.services.notifications import send_notification
from portal.services.offer_lifecycle import OfferLifecycleManager
from portal.services.storage import S3Storage

_scheduler: DeadlineScheduler = None
_storage: S3Storage = None


def get_clock() -> Clock:
    return default_clock


def get_storage() -> S3Storage:
    global _storage
    if _storage is None:
        _storage = S3Storage()
    return _storage


def get_lifecycle(clock: Clock = Depends(get_clock)) -> OfferLifecycleManager:
    return OfferLifecycleManager(clock)


def get_scheduler() -> DeadlineScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = DeadlineScheduler(AsyncSessionLocal, default_clock)
    return _scheduler


def get_sender():
    return send_notification
