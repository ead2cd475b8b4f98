"""
Notification Dispatcher — fan alert events out to email / system / SMS.

Frequency policy (per threshold):
  - realtime: delivered from the engine's hook as soon as the event exists
  - daily:    queued, flushed at the first tick after UTC midnight
  - weekly:   queued, flushed at the first tick after Monday 00:00 UTC

A digest is one message per (channel, contact) covering every queued event
for that contact, not one message per event. The system channel has no
contact and gets one digest per flush.

Delivery:
  Channels are sent concurrently and independently. A failing, slow or
  misconfigured channel is a ChannelDeliveryFailure that is logged and
  recorded, never raised to the caller.

Claiming:
  Events are marked dispatched before any send starts, so a second tick or
  a repeated notify() never sends them again. A crash after claiming loses
  that batch rather than duplicating it within the process; there is no
  cross-process idempotency key.
"""

import asyncio
import threading
import uuid
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from alerts.email import send_email_notification
from alerts.ledger import AlertLedger
from alerts.messages import DeliveryRecord, Notification, render_alert, render_digest
from alerts.sms import send_sms_notification
from alerts.system import publish_system_notification
from core.errors import ChannelDeliveryFailure, NotFound
from inventory.catalog import ProductCatalog
from inventory.models import AlertEvent, AlertStatus, AlertThreshold, Channel, Frequency, as_utc, utcnow

logger = structlog.get_logger()

ChannelSender = Callable[[Notification], Awaitable[bool]]

DIGEST_FREQUENCIES = (Frequency.DAILY, Frequency.WEEKLY)


def default_senders() -> dict[Channel, ChannelSender]:
    return {
        Channel.EMAIL: send_email_notification,
        Channel.SYSTEM: publish_system_notification,
        Channel.SMS: send_sms_notification,
    }


def recipients_for(channel: Channel, contacts: tuple[str, ...]) -> list[str | None]:
    """E-mail gets addresses with '@', SMS gets the rest, system gets one unaddressed message."""
    if channel == Channel.SYSTEM:
        return [None]
    if channel == Channel.EMAIL:
        return [c for c in contacts if "@" in c]
    return [c for c in contacts if "@" not in c]


def period_start(frequency: Frequency, now: datetime) -> datetime:
    """Start of the digest period containing `now` (UTC)."""
    start = as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
    if frequency == Frequency.WEEKLY:
        start -= timedelta(days=start.weekday())
    return start


@dataclass(frozen=True)
class _QueuedEvent:
    event: AlertEvent
    threshold: AlertThreshold


class NotificationDispatcher:
    def __init__(
        self,
        senders: dict[Channel, ChannelSender] | None = None,
        ledger: AlertLedger | None = None,
        catalog: ProductCatalog | None = None,
        timeout_seconds: float = 10.0,
        delivery_log_size: int = 1000,
    ):
        self.senders = senders if senders is not None else default_senders()
        self.ledger = ledger
        self.catalog = catalog
        self.timeout_seconds = timeout_seconds
        self._queue: list[_QueuedEvent] = []
        # alert id -> event timestamp, pruned once older than the last weekly period
        self._dispatched: dict[uuid.UUID, datetime] = {}
        self._deliveries: deque[DeliveryRecord] = deque(maxlen=delivery_log_size)
        self._lock = threading.Lock()

    @property
    def deliveries(self) -> list[DeliveryRecord]:
        with self._lock:
            return list(self._deliveries)

    def pending_count(self, frequency: Frequency | None = None) -> int:
        with self._lock:
            return sum(1 for q in self._queue if frequency is None or q.threshold.frequency == frequency)

    # ── Entry points ────────────────────────────────────────────────────

    async def notify(self, event: AlertEvent, threshold: AlertThreshold) -> list[DeliveryRecord]:
        """Hook called once per new alert event."""
        with self._lock:
            if event.id in self._dispatched or any(q.event.id == event.id for q in self._queue):
                logger.info("dispatcher.duplicate_ignored", alert_id=str(event.id))
                return []
            if threshold.frequency != Frequency.REALTIME:
                self._queue.append(_QueuedEvent(event, threshold))
                logger.info(
                    "dispatcher.queued",
                    alert_id=str(event.id),
                    frequency=threshold.frequency.value,
                )
                return []
            self._dispatched[event.id] = as_utc(event.timestamp)

        subject, body = render_alert(event, self._product_name(event.product_id))
        notifications = [
            Notification(channel, recipient, subject, body, (event.id,), kind="alert")
            for channel in threshold.notify_methods.enabled()
            for recipient in recipients_for(channel, threshold.contacts)
        ]
        if not notifications:
            logger.warning("dispatcher.no_recipients", alert_id=str(event.id))
            return []
        return await self._send_all(notifications)

    async def tick(self, now: datetime | None = None) -> dict:
        """Flush digests whose period has closed. Invoked by a periodic scheduler."""
        now = as_utc(now) if now else utcnow()
        summary = {"claimed": 0, "skipped": 0, "digests": 0, "delivered": 0, "failed": 0}

        for frequency in DIGEST_FREQUENCIES:
            boundary = period_start(frequency, now)
            with self._lock:
                claimed = [
                    q
                    for q in self._queue
                    if q.threshold.frequency == frequency and as_utc(q.event.timestamp) < boundary
                ]
                if not claimed:
                    continue
                claimed_ids = {q.event.id for q in claimed}
                self._queue = [q for q in self._queue if q.event.id not in claimed_ids]
                self._dispatched.update((q.event.id, as_utc(q.event.timestamp)) for q in claimed)

            live = [q for q in claimed if self._still_pending(q.event)]
            summary["claimed"] += len(claimed)
            summary["skipped"] += len(claimed) - len(live)

            notifications = self._build_digests(live, frequency)
            records = await self._send_all(notifications)
            summary["digests"] += len(notifications)
            summary["delivered"] += sum(1 for r in records if r.success)
            summary["failed"] += sum(1 for r in records if not r.success)

        summary["pruned"] = self._prune_dispatched(now)
        logger.info("dispatcher.tick_complete", at=now.isoformat(), **summary)
        return summary

    async def dispatch(self, notification: Notification) -> bool:
        """Deliver one notification over its channel. Never raises."""
        record = await self._deliver(notification)
        return record.success

    async def _deliver(self, notification: Notification) -> DeliveryRecord:
        sender = self.senders.get(notification.channel)
        error = None
        try:
            if sender is None:
                raise ChannelDeliveryFailure(notification.channel.value, notification.recipient, "no sender configured")
            delivered = await asyncio.wait_for(sender(notification), timeout=self.timeout_seconds)
            if not delivered:
                raise ChannelDeliveryFailure(notification.channel.value, notification.recipient, "rejected by channel")
        except asyncio.TimeoutError:
            error = ChannelDeliveryFailure(
                notification.channel.value,
                notification.recipient,
                f"timed out after {self.timeout_seconds}s",
            )
        except ChannelDeliveryFailure as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001
            error = ChannelDeliveryFailure(notification.channel.value, notification.recipient, str(exc))

        record = DeliveryRecord(
            channel=notification.channel,
            recipient=notification.recipient,
            kind=notification.kind,
            event_ids=notification.event_ids,
            success=error is None,
            error=error.reason if error else None,
        )
        with self._lock:
            self._deliveries.append(record)

        if error is None:
            logger.info(
                "dispatcher.delivered",
                channel=notification.channel.value,
                recipient=notification.recipient,
                kind=notification.kind,
                alerts=len(notification.event_ids),
            )
        else:
            logger.warning(
                "dispatcher.channel_failed",
                channel=notification.channel.value,
                recipient=notification.recipient,
                kind=notification.kind,
                error=error.reason,
            )
        return record

    # ── Internals ───────────────────────────────────────────────────────

    def _prune_dispatched(self, now: datetime) -> int:
        """Forget claimed ids from before the previous weekly period."""
        horizon = period_start(Frequency.WEEKLY, now) - timedelta(days=7)
        with self._lock:
            stale = [alert_id for alert_id, at in self._dispatched.items() if at < horizon]
            for alert_id in stale:
                del self._dispatched[alert_id]
        return len(stale)

    async def _send_all(self, notifications: list[Notification]) -> list[DeliveryRecord]:
        if not notifications:
            return []
        return list(await asyncio.gather(*(self._deliver(n) for n in notifications)))

    def _build_digests(self, queued: list[_QueuedEvent], frequency: Frequency) -> list[Notification]:
        groups: dict[tuple[Channel, str | None], list[AlertEvent]] = defaultdict(list)
        for item in sorted(queued, key=lambda q: q.event.timestamp):
            for channel in item.threshold.notify_methods.enabled():
                for recipient in recipients_for(channel, item.threshold.contacts):
                    groups[(channel, recipient)].append(item.event)

        names = {q.event.product_id: self._product_name(q.event.product_id) for q in queued}
        notifications = []
        for (channel, recipient), events in groups.items():
            subject, body = render_digest(events, frequency, {k: v for k, v in names.items() if v})
            notifications.append(
                Notification(channel, recipient, subject, body, tuple(e.id for e in events), kind="digest")
            )
        return notifications

    def _still_pending(self, event: AlertEvent) -> bool:
        if self.ledger is None:
            return True
        try:
            return self.ledger.get(event.id).status == AlertStatus.PENDING
        except NotFound:
            return True

    def _product_name(self, product_id: str) -> str | None:
        if self.catalog is None:
            return None
        try:
            return self.catalog.get(product_id).name
        except NotFound:
            return None
