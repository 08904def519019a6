"""
Deadline Scheduler

Turns deadline proximity into one-shot notifications and the automatic
active -> under_evaluation transition. The periodic sweep and the on-demand
single-offer check share `process_offer`, and the notification ledger makes
repeated or concurrent runs safe no-ops.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.core.clock import Clock, default_clock
from portal.core.config import settings
from portal.core.logging_config import logger
from portal.crud.errors import log_offer_error
from portal.crud.offers import (
    claim_notification,
    count_applications,
    get_notification_ledger,
    get_offer_or_raise,
    list_offers_due_for_notification,
    list_offers_matching,
    record_notification_recipients,
)
from portal.models.enums import OfferStatus, Threshold
from portal.models.offers import Offer
from portal.services.notification_dispatcher import DispatchReport, NotificationDispatcher, OfferSnapshot
from portal.services.offer_lifecycle import OfferLifecycleManager

# Верхние границы окон напоминаний относительно дедлайна
REMINDER_WINDOWS = (
    (timedelta(days=1), Threshold.ONE_DAY),
    (timedelta(days=2), Threshold.TWO_DAY),
    (timedelta(days=5), Threshold.FIVE_DAY),
)
NOTIFICATION_HORIZON = timedelta(days=5)


def due_threshold(deadline: datetime, now: datetime) -> Threshold | None:
    """Threshold whose window contains `deadline - now`, or None when the deadline is further than five days away."""
    remaining = deadline - now
    if remaining <= timedelta(0):
        return Threshold.DEADLINE
    for upper_bound, threshold in REMINDER_WINDOWS:
        if remaining <= upper_bound:
            return threshold
    return None


@dataclass
class OfferCheckResult:
    """Result of evaluating one offer."""

    offer_id: int
    status: OfferStatus
    threshold: Threshold | None = None
    transitioned: bool = False
    report: DispatchReport | None = None

    @property
    def notified(self) -> list[Threshold]:
        return [self.report.threshold] if self.report else []


@dataclass
class SweepResult:
    """Result of one periodic sweep."""

    offers_checked: int = 0
    transitions: int = 0
    notifications: int = 0
    deliveries_failed: int = 0
    failed_offers: list[int] = field(default_factory=list)


class DeadlineScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Clock = default_clock,
        lifecycle: OfferLifecycleManager = None,
        dispatcher: NotificationDispatcher = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.lifecycle = lifecycle or OfferLifecycleManager(clock)
        self.dispatcher = dispatcher or NotificationDispatcher()
        self._task: asyncio.Task | None = None

    async def process_offer(self, db: AsyncSession, offer: Offer) -> OfferCheckResult:
        """Single transition+notify routine used by both the sweep and the on-demand check."""
        offer_id = offer.id
        threshold = due_threshold(offer.deadline, self.clock.now())
        result = OfferCheckResult(offer_id=offer_id, status=offer.offer_status, threshold=threshold)
        if threshold is None:
            return result

        ledger = await get_notification_ledger(db, offer_id)
        if threshold is Threshold.DEADLINE:
            result.transitioned = await self.lifecycle.try_expire(db, offer)
            offer = await get_offer_or_raise(db, offer_id)
            result.status = offer.offer_status
            if offer.offer_status is OfferStatus.ACTIVE:
                return result

        if threshold in ledger:
            return result

        result.report = await self._notify(db, offer, threshold)
        return result

    async def _notify(self, db: AsyncSession, offer: Offer, threshold: Threshold) -> DispatchReport | None:
        snapshot = OfferSnapshot.from_offer(offer)
        applicant_count = await count_applications(db, snapshot.id)

        # Порог фиксируется до отправки: второй вызов получит отказ и ничего не пошлёт
        if not await claim_notification(db, snapshot.id, threshold):
            return None
        logger.info(f"Claimed {threshold.value} notification for offer {snapshot.id}")

        report = await self.dispatcher.dispatch(snapshot, threshold, applicant_count)
        await record_notification_recipients(db, snapshot.id, threshold, report.attempted)
        return report

    async def evaluate_offer(self, offer_id: int) -> OfferCheckResult:
        """On-demand check for one offer, e.g. when a client sees its countdown reach zero."""
        async with self.session_factory() as db:
            offer = await get_offer_or_raise(db, offer_id)
            return await self.process_offer(db, offer)

    async def _record_failure(self, offer_id: int, message: str) -> None:
        try:
            async with self.session_factory() as db:
                await log_offer_error(db, offer_id, message)
        except Exception as e:
            logger.error(f"Could not record failure for offer {offer_id}: {str(e)}")

    async def sweep(self) -> SweepResult:
        now = self.clock.now()
        summary = SweepResult()

        async with self.session_factory() as db:
            offers = await list_offers_due_for_notification(db, now + NOTIFICATION_HORIZON)
            offer_ids = [offer.id for offer in offers]
        logger.info(f"Deadline sweep at {now}: {len(offer_ids)} offers to check")

        for offer_id in offer_ids:
            try:
                check = await self.evaluate_offer(offer_id)
            except Exception as e:
                logger.error(f"Error processing offer {offer_id} during sweep: {str(e)}")
                summary.failed_offers.append(offer_id)
                await self._record_failure(offer_id, f"Deadline sweep failed: {str(e)}")
                continue
            summary.offers_checked += 1
            summary.transitions += int(check.transitioned)
            if check.report:
                summary.notifications += 1
                summary.deliveries_failed += check.report.failed

        # Статус меняется даже если обработка уведомлений выше не прошла
        async with self.session_factory() as db:
            overdue = await list_offers_matching(db, Offer.status == OfferStatus.ACTIVE.value, Offer.deadline <= now)
            overdue_ids = [offer.id for offer in overdue]
        for offer_id in overdue_ids:
            try:
                async with self.session_factory() as db:
                    offer = await get_offer_or_raise(db, offer_id)
                    summary.transitions += int(await self.lifecycle.try_expire(db, offer))
            except Exception as e:
                logger.error(f"Error expiring offer {offer_id} during sweep: {str(e)}")
                if offer_id not in summary.failed_offers:
                    summary.failed_offers.append(offer_id)
                await self._record_failure(offer_id, f"Expiry transition failed: {str(e)}")

        logger.info(
            f"Deadline sweep finished: {summary.offers_checked} checked, {summary.transitions} transitions, "
            f"{summary.notifications} notifications, {summary.deliveries_failed} failed deliveries, "
            f"{len(summary.failed_offers)} failed offers"
        )
        return summary

    async def run_periodic(self, interval_seconds: float = None) -> None:
        interval = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
        while True:
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Deadline sweep crashed: {str(e)}")
            await asyncio.sleep(interval)

    def start(self, interval_seconds: float = None) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_periodic(interval_seconds))
            logger.info("Deadline scheduler started")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Deadline scheduler stopped")
