"""
Replenishment Advisor — reorder suggestions from recent consumption.

Algorithm:
  avg_daily = outbound units over trailing window / days observed in window
  days_of_cover = current_stock / avg_daily
  target = ⌈avg_daily × (safety_days + horizon_days)⌉, clamped to [min_stock, max_stock]

  cover < safety_days      → priority high, suggest target − stock
  cover < 2 × safety_days  → priority medium, nothing to order yet
  otherwise                → priority low

No consumption history never divides by zero: priority low, and the only
suggestion is topping up to min_stock when a threshold exists.

History series (per day in the window):
  sales, end-of-day stock, 7-day rolling average of sales, and
  stockout_risk = clip(1 − cover_7d / (2 × safety_days), 0, 1)
"""

import math
from datetime import datetime, timedelta

import pandas as pd
import structlog

from core.errors import InvalidAmount
from inventory.catalog import ProductCatalog
from inventory.models import (
    HistoryPoint,
    MovementDirection,
    Priority,
    Product,
    ReplenishmentSuggestion,
    as_utc,
    utcnow,
)
from inventory.thresholds import ThresholdStore

logger = structlog.get_logger()

NO_HISTORY_REASON = "no consumption history"
ROLLING_DAYS = 7
PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class ReplenishmentAdvisor:
    def __init__(
        self,
        catalog: ProductCatalog,
        thresholds: ThresholdStore,
        window_days: int = 30,
        safety_days: int = 30,
    ):
        if window_days <= 0 or safety_days <= 0:
            raise InvalidAmount("window_days and safety_days must be positive")
        self.catalog = catalog
        self.thresholds = thresholds
        self.window_days = window_days
        self.safety_days = safety_days

    def suggest(
        self,
        product_id: str,
        horizon_days: int,
        as_of: datetime | None = None,
    ) -> ReplenishmentSuggestion:
        if horizon_days < 0:
            raise InvalidAmount(f"horizon_days must be non-negative, got {horizon_days}")
        as_of = as_utc(as_of) if as_of else utcnow()
        product = self.catalog.get(product_id)
        threshold = self.thresholds.resolve(product_id, product.category)

        daily = self._daily_frame(product, as_of)
        observed_days = self._observed_days(product_id, as_of)
        avg_daily = float(daily["sales"].sum()) / observed_days
        history = self._history_points(daily)
        current = product.stock

        if avg_daily <= 0:
            amount = max(0, threshold.min_stock - current) if threshold else 0
            logger.info("advisor.no_history", product_id=product_id, suggested=amount)
            return ReplenishmentSuggestion(
                product_id=product_id,
                current_stock=current,
                suggested_amount=amount,
                reason=NO_HISTORY_REASON,
                priority=Priority.LOW,
                avg_daily_consumption=0.0,
                days_of_cover=None,
                history=history,
            )

        days_of_cover = current / avg_daily
        target = math.ceil(avg_daily * (self.safety_days + horizon_days))
        if threshold is not None:
            target = min(max(target, threshold.min_stock), threshold.max_stock)

        if days_of_cover < self.safety_days:
            priority = Priority.HIGH
            amount = max(0, target - current)
            reason = (
                f"Stock covers {days_of_cover:.1f} days, below the {self.safety_days}-day safety window; "
                f"restock toward {target} units"
            )
        elif days_of_cover < 2 * self.safety_days:
            priority = Priority.MEDIUM
            amount = 0
            reason = (
                f"Stock covers {days_of_cover:.1f} days; "
                f"reorder within {days_of_cover - self.safety_days:.0f} days"
            )
        else:
            priority = Priority.LOW
            amount = 0
            reason = f"Stock covers {days_of_cover:.1f} days"

        logger.info(
            "advisor.suggested",
            product_id=product_id,
            avg_daily=round(avg_daily, 2),
            days_of_cover=round(days_of_cover, 1),
            priority=priority.value,
            suggested=amount,
        )
        return ReplenishmentSuggestion(
            product_id=product_id,
            current_stock=current,
            suggested_amount=amount,
            reason=reason,
            priority=priority,
            avg_daily_consumption=avg_daily,
            days_of_cover=days_of_cover,
            history=history,
        )

    def suggest_all(self, horizon_days: int, as_of: datetime | None = None) -> list[ReplenishmentSuggestion]:
        """Suggestions for every product, most urgent first."""
        suggestions = [self.suggest(p.product_id, horizon_days, as_of) for p in self.catalog.list_products()]
        return sorted(
            suggestions,
            key=lambda s: (
                PRIORITY_ORDER[s.priority],
                s.days_of_cover if s.days_of_cover is not None else math.inf,
            ),
        )

    # ── Internals ───────────────────────────────────────────────────────

    def _observed_days(self, product_id: str, as_of: datetime) -> int:
        # Back-dated readings extend what has been observed past registration.
        first_seen = self.catalog.first_seen(product_id)
        journal = self.catalog.movements(product_id)
        if journal:
            first_seen = min(first_seen, min(m.at for m in journal))
        return max(1, min(self.window_days, (as_of.date() - first_seen.date()).days + 1))

    def _daily_frame(self, product: Product, as_of: datetime) -> pd.DataFrame:
        end = as_of.date()
        start = end - timedelta(days=self.window_days - 1)
        days = pd.date_range(start, end, freq="D")

        moves = sorted(
            (m for m in self.catalog.movements(product.product_id) if m.at.date() <= end),
            key=lambda m: m.at,
        )
        frame = pd.DataFrame(
            [
                {
                    "date": pd.Timestamp(m.at.date()),
                    "outbound": m.quantity if m.direction == MovementDirection.OUTBOUND else 0,
                    "stock_after": m.stock_after,
                }
                for m in moves
            ],
            columns=["date", "outbound", "stock_after"],
        )

        opening = self._opening_stock(product, moves, start)
        sales = frame.groupby("date")["outbound"].sum().reindex(days, fill_value=0)
        stock = frame.groupby("date")["stock_after"].last().reindex(days).ffill().fillna(opening)

        daily = pd.DataFrame({"sales": sales.astype(int), "stock": stock.astype(int)}, index=days)
        rolling = daily["sales"].rolling(ROLLING_DAYS, min_periods=1).mean()
        cover = daily["stock"] / rolling.where(rolling > 0)
        daily["avg_daily_sales"] = rolling
        daily["stockout_risk"] = (1 - cover / (2 * self.safety_days)).clip(0, 1).fillna(0.0)
        return daily

    @staticmethod
    def _opening_stock(product: Product, moves: list, start) -> int:
        before = [m for m in moves if m.at.date() < start]
        if before:
            return before[-1].stock_after
        if moves:
            first = moves[0]
            if first.direction == MovementDirection.OUTBOUND:
                return first.stock_after + first.quantity
            return first.stock_after - first.quantity
        return product.stock

    @staticmethod
    def _history_points(daily: pd.DataFrame) -> list[HistoryPoint]:
        return [
            HistoryPoint(
                date=ts.date(),
                sales=int(row.sales),
                stock=int(row.stock),
                avg_daily_sales=round(float(row.avg_daily_sales), 2),
                stockout_risk=round(float(row.stockout_risk), 3),
            )
            for ts, row in daily.iterrows()
        ]
