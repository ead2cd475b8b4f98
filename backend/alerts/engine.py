"""
Alert Engine — stock readings in, alerts, notifications and plans out.

Flow for one stock reading:
  1. Journal the reading in the product catalog
  2. Evaluate against the resolved threshold (edge-triggered); the evaluator
     hands back the threshold it used so later steps never re-resolve it
  3. Append the new AlertEvent to the ledger (inside the evaluator's product lock)
  4. Hand the event to the notification dispatcher (realtime send or digest queue)
  5. Low stock under an auto-replenish threshold → draft replenishment plan

The engine owns every store; nothing lives at module level.
"""

from datetime import datetime, timedelta

import structlog

from alerts.dispatcher import ChannelSender, NotificationDispatcher
from alerts.evaluator import Evaluator
from alerts.ledger import AlertLedger
from alerts.templates import TemplateLibrary
from core.config import Settings
from inventory.advisor import ReplenishmentAdvisor
from inventory.catalog import ProductCatalog
from inventory.models import (
    AlertEvent,
    AlertThreshold,
    AlertType,
    Channel,
    Priority,
    ReplenishmentPlan,
    utcnow,
)
from inventory.plans import ReplenishmentPlanBook
from inventory.thresholds import ThresholdStore

logger = structlog.get_logger()


class AlertEngine:
    def __init__(
        self,
        catalog: ProductCatalog,
        thresholds: ThresholdStore,
        ledger: AlertLedger,
        dispatcher: NotificationDispatcher,
        advisor: ReplenishmentAdvisor,
        plans: ReplenishmentPlanBook,
        templates: TemplateLibrary,
    ):
        self.catalog = catalog
        self.thresholds = thresholds
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.advisor = advisor
        self.plans = plans
        self.templates = templates
        self.evaluator = Evaluator(thresholds, catalog=catalog, ledger=ledger)

    def threshold_for(self, product_id: str) -> AlertThreshold | None:
        return self.thresholds.resolve(product_id, self.catalog.category_of(product_id))

    async def process_stock_update(
        self,
        product_id: str,
        new_stock: int,
        at: datetime | None = None,
    ) -> AlertEvent | None:
        """Record a stock reading and run it through the alert pipeline."""
        self.catalog.set_stock(product_id, new_stock, at)
        event, threshold = self.evaluator.check(product_id, new_stock)
        if event is None:
            return None

        # Notify under the band that produced the event, even if it changed since.
        await self.dispatcher.notify(event, threshold)
        if event.type == AlertType.LOW_STOCK and threshold.auto_replenish:
            self._auto_replenish(event, threshold)
        return event

    async def run_alert_sweep(self) -> dict[str, int]:
        """
        Re-evaluate every product at its current stock, e.g. after thresholds
        change. Edge-triggering still applies, so already-flagged products
        stay quiet.

        Returns counts of alerts created by type.
        """
        created = []
        for product in self.catalog.list_products():
            event = await self.process_stock_update(product.product_id, product.stock, product.last_update)
            if event is not None:
                created.append(event)

        counts = {
            "low_stock": sum(1 for e in created if e.type == AlertType.LOW_STOCK),
            "high_stock": sum(1 for e in created if e.type == AlertType.HIGH_STOCK),
            "total": len(created),
        }
        logger.info("engine.sweep_complete", **counts)
        return counts

    def _auto_replenish(self, event: AlertEvent, threshold: AlertThreshold) -> ReplenishmentPlan:
        product = self.catalog.get(event.product_id)
        estimated_cost = product.unit_cost * threshold.replenish_amount if product.unit_cost is not None else None
        return self.plans.create(
            product_id=event.product_id,
            plan_amount=threshold.replenish_amount,
            expected_date=utcnow().date() + timedelta(days=self.plans.default_lead_days),
            priority=Priority.HIGH,
            supplier=product.supplier,
            estimated_cost=estimated_cost,
            notes=f"Auto-replenish: stock {event.stock_at_trigger} below minimum {event.threshold_at_trigger}",
            stock_at_creation=event.stock_at_trigger,
            alert_id=event.id,
        )


def build_engine(
    settings: Settings,
    senders: dict[Channel, ChannelSender] | None = None,
) -> AlertEngine:
    """Construct a fresh engine with empty stores."""
    catalog = ProductCatalog()
    thresholds = ThresholdStore()
    ledger = AlertLedger()
    dispatcher = NotificationDispatcher(
        senders=senders,
        ledger=ledger,
        catalog=catalog,
        timeout_seconds=settings.channel_timeout_seconds,
        delivery_log_size=settings.delivery_log_size,
    )
    advisor = ReplenishmentAdvisor(
        catalog,
        thresholds,
        window_days=settings.consumption_window_days,
        safety_days=settings.safety_days,
    )
    return AlertEngine(
        catalog=catalog,
        thresholds=thresholds,
        ledger=ledger,
        dispatcher=dispatcher,
        advisor=advisor,
        plans=ReplenishmentPlanBook(default_lead_days=settings.default_lead_days),
        templates=TemplateLibrary(thresholds),
    )
