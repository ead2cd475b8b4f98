"""
Threshold Store — per-product and per-category stock bands.

Resolution order: product → category → none (alerting disabled).
A product-level record overrides the category record as a whole; fields
are never mixed between the two.
"""

import dataclasses
import threading

import structlog

from core.errors import InvalidAmount, InvalidRange
from inventory.models import AlertThreshold, ThresholdKey

logger = structlog.get_logger()

_THRESHOLD_FIELDS = {f.name for f in dataclasses.fields(AlertThreshold)}


def validate_band(
    min_stock: int,
    max_stock: int,
    auto_replenish: bool = False,
    replenish_amount: int = 0,
) -> None:
    """Raise InvalidAmount / InvalidRange for an unusable band."""
    if min_stock < 0 or max_stock < 0:
        raise InvalidAmount(f"Stock thresholds must be non-negative (min={min_stock}, max={max_stock})")
    if replenish_amount < 0:
        raise InvalidAmount(f"Replenish amount must be non-negative, got {replenish_amount}")
    if auto_replenish and replenish_amount <= 0:
        raise InvalidAmount("Replenish amount must be positive when auto-replenish is enabled")
    if min_stock >= max_stock:
        raise InvalidRange(f"min_stock ({min_stock}) must be below max_stock ({max_stock})")


def validate_threshold(threshold: AlertThreshold) -> None:
    validate_band(
        threshold.min_stock,
        threshold.max_stock,
        threshold.auto_replenish,
        threshold.replenish_amount,
    )


class ThresholdStore:
    """Holds AlertThresholds keyed by ThresholdKey."""

    def __init__(self):
        self._thresholds: dict[ThresholdKey, AlertThreshold] = {}
        self._lock = threading.Lock()

    def set_threshold(self, key: ThresholdKey, threshold: AlertThreshold) -> AlertThreshold:
        if key.scope not in ("product", "category"):
            raise ValueError(f"Unknown threshold scope '{key.scope}'")
        validate_threshold(threshold)
        threshold = dataclasses.replace(threshold, contacts=tuple(dict.fromkeys(threshold.contacts)))
        with self._lock:
            self._thresholds[key] = threshold
        logger.info(
            "thresholds.set",
            scope=key.scope,
            key=key.value,
            min_stock=threshold.min_stock,
            max_stock=threshold.max_stock,
            enabled=threshold.is_enabled,
        )
        return threshold

    def get_threshold(self, key: ThresholdKey) -> AlertThreshold | None:
        with self._lock:
            return self._thresholds.get(key)

    def set_batch(self, category_ids: list[str], partial: dict) -> int:
        """
        Apply the same field overrides to several categories.

        Every merged record is validated before any is written, so a bad
        value leaves all categories untouched. Returns the number updated.
        """
        unknown = set(partial) - _THRESHOLD_FIELDS
        if unknown:
            raise ValueError(f"Unknown threshold field(s): {', '.join(sorted(unknown))}")

        categories = list(dict.fromkeys(category_ids))
        with self._lock:
            merged = {}
            for category_id in categories:
                key = ThresholdKey.category(category_id)
                base = self._thresholds.get(key, AlertThreshold())
                candidate = dataclasses.replace(base, **partial)
                validate_threshold(candidate)
                merged[key] = dataclasses.replace(candidate, contacts=tuple(dict.fromkeys(candidate.contacts)))
            self._thresholds.update(merged)

        logger.info("thresholds.batch_set", categories=categories, fields=sorted(partial))
        return len(merged)

    def resolve(self, product_id: str, category: str | None = None) -> AlertThreshold | None:
        with self._lock:
            threshold = self._thresholds.get(ThresholdKey.product(product_id))
            if threshold is None and category is not None:
                threshold = self._thresholds.get(ThresholdKey.category(category))
            return threshold

    def list_thresholds(self) -> list[tuple[ThresholdKey, AlertThreshold]]:
        with self._lock:
            return list(self._thresholds.items())
