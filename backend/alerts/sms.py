"""
SMS delivery through an HTTP gateway.
"""

import httpx
import structlog

from alerts.messages import Notification
from core.config import get_settings

logger = structlog.get_logger()

SMS_MAX_LENGTH = 320


async def send_sms_notification(notification: Notification) -> bool:
    settings = get_settings()
    if not settings.sms_gateway_url:
        logger.warning("sms.not_configured", recipient=notification.recipient)
        return False

    text = f"{notification.subject}\n{notification.body}"[:SMS_MAX_LENGTH]
    async with httpx.AsyncClient() as client:
        response = await client.post(
            settings.sms_gateway_url,
            json={"to": notification.recipient, "message": text},
            headers={"Authorization": f"Bearer {settings.sms_api_key}"},
        )
    return response.status_code in (200, 201, 202)
