"""
Evaluator — classify stock readings against thresholds, edge-triggered.

A product that is already flagged low (or high) does not re-alert on every
reading that stays in that state. Returning to normal clears the flag
without emitting; a direct low ↔ high flip emits for the new state.

All state for one product is guarded by that product's lock, so concurrent
readings for the same product cannot double-emit. Different products never
contend.
"""

import threading

import structlog

from alerts.ledger import AlertLedger
from inventory.catalog import ProductCatalog
from inventory.models import AlertEvent, AlertThreshold, AlertType, StockState, utcnow
from inventory.thresholds import ThresholdStore

logger = structlog.get_logger()

_BREACH_TYPES = {
    StockState.LOW: AlertType.LOW_STOCK,
    StockState.HIGH: AlertType.HIGH_STOCK,
}


class Evaluator:
    def __init__(
        self,
        thresholds: ThresholdStore,
        catalog: ProductCatalog | None = None,
        ledger: AlertLedger | None = None,
    ):
        self.thresholds = thresholds
        self.catalog = catalog
        self.ledger = ledger
        self._states: dict[str, StockState] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, product_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = self._locks[product_id] = threading.Lock()
            return lock

    def state_of(self, product_id: str) -> StockState:
        return self._states.get(product_id, StockState.NORMAL)

    def reset(self, product_id: str) -> None:
        with self._lock_for(product_id):
            self._states.pop(product_id, None)

    def evaluate(self, product_id: str, new_stock: int) -> AlertEvent | None:
        """Return a new AlertEvent on a transition into a breach state, else None."""
        event, _ = self.check(product_id, new_stock)
        return event

    def check(self, product_id: str, new_stock: int) -> tuple[AlertEvent | None, AlertThreshold | None]:
        """Like evaluate(), also returning the threshold the reading was judged against."""
        category = self.catalog.category_of(product_id) if self.catalog else None

        with self._lock_for(product_id):
            threshold = self.thresholds.resolve(product_id, category)
            if threshold is None or not threshold.is_enabled:
                self._states.pop(product_id, None)
                return None, threshold

            previous = self._states.get(product_id, StockState.NORMAL)
            current = threshold.classify(new_stock)

            if current == StockState.NORMAL:
                self._states.pop(product_id, None)
                return None, threshold
            if current == previous:
                return None, threshold

            self._states[product_id] = current
            event = AlertEvent(
                product_id=product_id,
                type=_BREACH_TYPES[current],
                stock_at_trigger=new_stock,
                threshold_at_trigger=threshold.min_stock if current == StockState.LOW else threshold.max_stock,
                timestamp=utcnow(),
            )
            if self.ledger is not None:
                self.ledger.append(event)

        logger.info(
            "evaluator.breach",
            product_id=product_id,
            previous=previous.value,
            state=current.value,
            stock=new_stock,
        )
        return event, threshold
