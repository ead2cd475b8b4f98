"""
System (dashboard) notifications over Redis pub/sub.

Messages published here are streamed to dashboard clients by
alerts.websocket.
"""

import json

import redis.asyncio as aioredis

from alerts.messages import Notification
from core.config import get_settings
from inventory.models import utcnow


def build_payload(notification: Notification) -> str:
    return json.dumps(
        {
            "type": notification.kind,
            "payload": {
                "subject": notification.subject,
                "body": notification.body,
                "alert_ids": [str(event_id) for event_id in notification.event_ids],
                "sent_at": utcnow().isoformat(),
            },
        }
    )


async def publish_system_notification(notification: Notification) -> bool:
    """Publish to the dashboard channel. Zero subscribers still counts as delivered."""
    settings = get_settings()
    redis = aioredis.from_url(settings.redis_url)
    try:
        await redis.publish(settings.system_channel, build_payload(notification))
        return True
    finally:
        await redis.aclose()
