import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable

from portal.core.config import settings
from portal.core.logging_config import logger
from portal.models.enums import OfferStatus, Threshold
from portal.models.offers import Offer
from portal.services import email_templates
from portal.services.notifications import DeliveryResult, send_notification

Sender = Callable[[str, str, dict], Awaitable[DeliveryResult]]

TEMPLATE_BY_THRESHOLD = {
    Threshold.FIVE_DAY: email_templates.FIVE_DAY_REMINDER,
    Threshold.TWO_DAY: email_templates.TWO_DAY_REMINDER,
    Threshold.ONE_DAY: email_templates.ONE_DAY_REMINDER,
    Threshold.DEADLINE: email_templates.OFFER_EXPIRED,
}

OTHER_RECIPIENT_NAME = "Notification Recipient"


@dataclass(frozen=True)
class OfferSnapshot:
    """Detached copy of the offer fields a notification needs."""

    id: int
    title: str
    deadline: datetime
    creator_name: str | None
    creator_email: str | None
    recipients: tuple[str, ...]
    status: str = OfferStatus.UNDER_EVALUATION.value

    @classmethod
    def from_offer(cls, offer: Offer) -> "OfferSnapshot":
        return cls(
            id=offer.id,
            title=offer.title,
            deadline=offer.deadline,
            creator_name=offer.creator_name,
            creator_email=offer.creator_email,
            recipients=tuple(offer.notification_recipients),
            status=offer.status,
        )


@dataclass
class DispatchReport:
    offer_id: int
    threshold: Threshold
    template_id: str
    attempted: int = 0
    delivered: int = 0
    failures: list[DeliveryResult] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


def resolve_recipients(creator_email: str | None, extra: list[str] | tuple[str, ...]) -> list[str]:
    """Creator first when missing from the list, then the extra addresses without duplicates."""
    emails = list(extra)
    if creator_email and creator_email.lower() not in {email.lower() for email in emails}:
        emails.insert(0, creator_email)

    recipients, seen = [], set()
    for email in emails:
        normalized = email.strip().lower()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        recipients.append(email.strip())
    return recipients


class NotificationDispatcher:
    def __init__(self, sender: Sender = send_notification, timeout: float = None):
        self.sender = sender
        self.timeout = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT_SECONDS

    async def _deliver(self, recipient: str, template_id: str, params: dict) -> DeliveryResult:
        try:
            return await asyncio.wait_for(self.sender(recipient, template_id, params), timeout=self.timeout)
        except asyncio.TimeoutError:
            return DeliveryResult(recipient, template_id, delivered=False, reason="timeout")
        except Exception as e:
            return DeliveryResult(recipient, template_id, delivered=False, reason=str(e))

    async def dispatch(self, offer: OfferSnapshot, threshold: Threshold, applicant_count: int) -> DispatchReport:
        template_id = TEMPLATE_BY_THRESHOLD[threshold]
        report = DispatchReport(offer_id=offer.id, threshold=threshold, template_id=template_id)
        recipients = resolve_recipients(offer.creator_email, offer.recipients)
        if not recipients:
            logger.warning(f"Offer {offer.id} has no notification recipients for {threshold.value}")
            return report

        base_params = {
            "offer_title": offer.title,
            "deadline": offer.deadline.strftime("%Y-%m-%d %H:%M"),
            "applicant_count": applicant_count,
            "status": offer.status,
        }
        calls = []
        for recipient in recipients:
            is_creator = bool(offer.creator_email) and recipient.lower() == offer.creator_email.lower()
            params = dict(base_params, recipient_name=(offer.creator_name if is_creator else None) or OTHER_RECIPIENT_NAME)
            calls.append(self._deliver(recipient, template_id, params))

        results = await asyncio.gather(*calls)
        report.attempted = len(results)
        for result in results:
            if result.delivered:
                report.delivered += 1
            else:
                report.failures.append(result)
                logger.error(
                    f"Notification '{template_id}' for offer {offer.id} not delivered to {result.recipient}: {result.reason}"
                )

        logger.info(
            f"Processed {threshold.value} notification for offer {offer.id} '{offer.title}': "
            f"{report.delivered}/{report.attempted} delivered, {applicant_count} candidates"
        )
        return report
