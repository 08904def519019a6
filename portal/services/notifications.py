import asyncio
from dataclasses import dataclass

import aiohttp
from portal.core.config import settings
from portal.core.exceptions import NotificationDeliveryError
from portal.core.logging_config import logger
from portal.services.email_templates import render

GRAPH_API_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"


@dataclass
class DeliveryResult:
    recipient: str
    template_id: str
    delivered: bool
    reason: str | None = None


async def get_access_token(session: aiohttp.ClientSession) -> str:
    payload = {
        "client_id": settings.GRAPH_CLIENT_ID,
        "client_secret": settings.GRAPH_CLIENT_SECRET,
        "scope": "https://graph.microsoft.com/.default",
        "grant_type": "client_credentials",
    }
    async with session.post(TOKEN_URL.format(tenant=settings.GRAPH_TENANT_ID), data=payload) as response:
        if response.status != 200:
            raise NotificationDeliveryError("-", "-", f"token request failed: HTTP {response.status}")
        data = await response.json()
        return data["access_token"]


async def send_email(recipient: str, subject: str, html_content: str, template_id: str = "-") -> None:
    if not settings.GRAPH_CLIENT_ID or not settings.GRAPH_SENDER_EMAIL:
        raise NotificationDeliveryError(recipient, template_id, "mail credentials not configured")

    message = {
        "message": {
            "subject": subject,
            "body": {"contentType": "HTML", "content": html_content},
            "toRecipients": [{"emailAddress": {"address": recipient}}],
        },
        "saveToSentItems": False,
    }
    timeout = aiohttp.ClientTimeout(total=settings.NOTIFICATION_TIMEOUT_SECONDS)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            token = await get_access_token(session)
            async with session.post(
                f"{GRAPH_API_URL}/users/{settings.GRAPH_SENDER_EMAIL}/sendMail",
                json=message,
                headers={"Authorization": f"Bearer {token}"},
            ) as response:
                if response.status not in (200, 202):
                    raise NotificationDeliveryError(
                        recipient, template_id, f"HTTP {response.status}, {await response.text()}"
                    )
    except NotificationDeliveryError as e:
        e.recipient, e.template_id = recipient, template_id
        raise
    except aiohttp.ClientError as e:
        raise NotificationDeliveryError(recipient, template_id, str(e))


async def send_notification(recipient: str, template_id: str, params: dict) -> DeliveryResult:
    """Renders and sends one templated email. Failures are reported in the result, never raised."""
    try:
        subject, body = render(template_id, params)
        await send_email(recipient, subject, body, template_id)
    except NotificationDeliveryError as e:
        logger.error(f"Failed to send '{template_id}' to {recipient}: {e.reason}")
        return DeliveryResult(recipient, template_id, delivered=False, reason=e.reason)
    except asyncio.TimeoutError:
        logger.error(f"Timed out sending '{template_id}' to {recipient}")
        return DeliveryResult(recipient, template_id, delivered=False, reason="timeout")
    except Exception as e:
        logger.error(f"Unexpected error sending '{template_id}' to {recipient}: {str(e)}")
        return DeliveryResult(recipient, template_id, delivered=False, reason=str(e))
    logger.info(f"Sent '{template_id}' to {recipient}")
    return DeliveryResult(recipient, template_id, delivered=True)
