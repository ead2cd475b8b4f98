"""
Alert Ledger — append-only record of alert occurrences.

Lifecycle:
  pending → processed
  pending → ignored

Terminal statuses are final. Entries keep their trigger snapshot
(stock and threshold at trigger time) even when thresholds change later.
"""

import dataclasses
import threading
import uuid
from collections import Counter
from datetime import datetime

import structlog

from core.errors import InvalidTransition, NotFound
from inventory.models import AlertEvent, AlertStatus, AlertType, as_utc, utcnow

logger = structlog.get_logger()

ALLOWED_TRANSITIONS = {
    AlertStatus.PENDING: {AlertStatus.PROCESSED, AlertStatus.IGNORED},
    AlertStatus.PROCESSED: set(),
    AlertStatus.IGNORED: set(),
}


class AlertLedger:
    def __init__(self):
        # dict keeps insertion order; status updates replace in place
        self._events: dict[uuid.UUID, AlertEvent] = {}
        self._lock = threading.Lock()

    def append(self, event: AlertEvent) -> AlertEvent:
        with self._lock:
            if event.id in self._events:
                raise ValueError(f"Alert {event.id} already recorded")
            self._events[event.id] = event
        logger.info(
            "ledger.appended",
            alert_id=str(event.id),
            product_id=event.product_id,
            alert_type=event.type.value,
            stock=event.stock_at_trigger,
            threshold=event.threshold_at_trigger,
        )
        return event

    def get(self, alert_id: uuid.UUID) -> AlertEvent:
        with self._lock:
            event = self._events.get(alert_id)
        if event is None:
            raise NotFound("Alert", alert_id)
        return event

    def list_events(
        self,
        product_id: str | None = None,
        status: AlertStatus | None = None,
        since: datetime | None = None,
        alert_type: AlertType | None = None,
    ) -> list[AlertEvent]:
        with self._lock:
            events = list(self._events.values())
        if product_id is not None:
            events = [e for e in events if e.product_id == product_id]
        if status is not None:
            events = [e for e in events if e.status == status]
        if since is not None:
            since = as_utc(since)
            events = [e for e in events if e.timestamp >= since]
        if alert_type is not None:
            events = [e for e in events if e.type == alert_type]
        return events

    def update_status(self, alert_id: uuid.UUID, new_status: AlertStatus) -> AlertEvent:
        new_status = AlertStatus(new_status)
        with self._lock:
            event = self._events.get(alert_id)
            if event is None:
                raise NotFound("Alert", alert_id)
            if new_status not in ALLOWED_TRANSITIONS[event.status]:
                raise InvalidTransition("alert", event.status.value, new_status.value)
            updated = dataclasses.replace(event, status=new_status, resolved_at=utcnow())
            self._events[alert_id] = updated

        logger.info("ledger.status_updated", alert_id=str(alert_id), status=new_status.value)
        return updated

    def summary(self) -> dict[str, int]:
        with self._lock:
            events = list(self._events.values())
        by_status = Counter(e.status for e in events)
        by_type = Counter(e.type for e in events)
        return {
            "total": len(events),
            "pending": by_status[AlertStatus.PENDING],
            "processed": by_status[AlertStatus.PROCESSED],
            "ignored": by_status[AlertStatus.IGNORED],
            "low_stock": by_type[AlertType.LOW_STOCK],
            "high_stock": by_type[AlertType.HIGH_STOCK],
        }
