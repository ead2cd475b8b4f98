"""
Notification payloads and their text rendering.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from inventory.models import AlertEvent, AlertType, Channel, Frequency, utcnow

TYPE_LABELS = {
    AlertType.LOW_STOCK: "Low Stock",
    AlertType.HIGH_STOCK: "Overstock",
}


@dataclass(frozen=True)
class Notification:
    channel: Channel
    recipient: str | None
    subject: str
    body: str
    event_ids: tuple[uuid.UUID, ...]
    kind: str = "alert"  # "alert" or "digest"


@dataclass(frozen=True)
class DeliveryRecord:
    channel: Channel
    recipient: str | None
    kind: str
    event_ids: tuple[uuid.UUID, ...]
    success: bool
    error: str | None = None
    at: datetime = field(default_factory=utcnow)


def describe_event(event: AlertEvent, product_name: str | None = None) -> str:
    name = product_name or event.product_id
    if event.type == AlertType.LOW_STOCK:
        return (
            f"{name}: stock {event.stock_at_trigger} fell below the minimum of "
            f"{event.threshold_at_trigger}"
        )
    return f"{name}: stock {event.stock_at_trigger} exceeds the maximum of {event.threshold_at_trigger}"


def render_alert(event: AlertEvent, product_name: str | None = None) -> tuple[str, str]:
    subject = f"PharmaStock Alert: {TYPE_LABELS[event.type]} — {product_name or event.product_id}"
    body = f"{describe_event(event, product_name)} at {event.timestamp:%Y-%m-%d %H:%M} UTC."
    return subject, body


def render_digest(
    events: list[AlertEvent],
    frequency: Frequency,
    product_names: dict[str, str] | None = None,
) -> tuple[str, str]:
    product_names = product_names or {}
    noun = "alert" if len(events) == 1 else "alerts"
    subject = f"PharmaStock {frequency.value} digest: {len(events)} stock {noun}"
    lines = [
        f"- [{e.timestamp:%Y-%m-%d %H:%M}] {describe_event(e, product_names.get(e.product_id))}"
        for e in events
    ]
    return subject, "\n".join(lines)
