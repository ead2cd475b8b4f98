"""
Tests for the Replenishment Advisor.

Covers:
  - Priority bands by days of cover
  - Target clamping to the threshold band
  - No-history fallback (no division by zero)
  - Daily history series
"""

from datetime import timedelta

import pytest

from core.errors import InvalidAmount, NotFound
from inventory.advisor import NO_HISTORY_REASON, ReplenishmentAdvisor
from inventory.catalog import ProductCatalog
from inventory.models import AlertThreshold, MovementDirection, Priority, Product, ThresholdKey
from inventory.thresholds import ThresholdStore


@pytest.fixture
def catalog():
    return ProductCatalog()


@pytest.fixture
def thresholds():
    return ThresholdStore()


@pytest.fixture
def advisor(catalog, thresholds):
    return ReplenishmentAdvisor(catalog, thresholds, window_days=30, safety_days=30)


class TestPriority:
    def test_short_cover_is_high_priority(self, advisor, catalog, seed_consumption, as_of):
        """3 units/day, 85 in stock → 28.3 days of cover; target 3 × (30 + 30) = 180."""
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)

        suggestion = advisor.suggest("P1", horizon_days=30, as_of=as_of)

        assert suggestion.current_stock == 85
        assert suggestion.avg_daily_consumption == pytest.approx(3.0)
        assert suggestion.days_of_cover == pytest.approx(85 / 3)
        assert suggestion.priority == Priority.HIGH
        assert suggestion.suggested_amount == 95

    def test_medium_cover_orders_nothing_yet(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=225)

        suggestion = advisor.suggest("P1", horizon_days=30, as_of=as_of)

        assert suggestion.days_of_cover == pytest.approx(45.0)
        assert suggestion.priority == Priority.MEDIUM
        assert suggestion.suggested_amount == 0

    def test_long_cover_is_low_priority(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=390)

        suggestion = advisor.suggest("P1", horizon_days=30, as_of=as_of)

        assert suggestion.priority == Priority.LOW
        assert suggestion.suggested_amount == 0

    def test_target_clamped_to_max_stock(self, advisor, catalog, thresholds, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)
        thresholds.set_threshold(ThresholdKey.product("P1"), AlertThreshold(min_stock=10, max_stock=150))

        suggestion = advisor.suggest("P1", horizon_days=30, as_of=as_of)

        assert suggestion.suggested_amount == 65

    def test_target_raised_to_min_stock(self, advisor, catalog, thresholds, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)
        thresholds.set_threshold(ThresholdKey.category("antibiotics"), AlertThreshold(min_stock=400, max_stock=1000))

        suggestion = advisor.suggest("P1", horizon_days=0, as_of=as_of)

        assert suggestion.suggested_amount == 400 - 85

    def test_horizon_extends_target(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)

        short = advisor.suggest("P1", horizon_days=0, as_of=as_of)
        long = advisor.suggest("P1", horizon_days=60, as_of=as_of)

        assert short.suggested_amount == 90 - 85
        assert long.suggested_amount == 270 - 85


class TestConsumption:
    def test_no_history_low_priority(self, advisor, catalog, thresholds, as_of):
        catalog.register(Product(product_id="P2", name="Zinc", stock=40, last_update=as_of - timedelta(days=10)))
        thresholds.set_threshold(ThresholdKey.product("P2"), AlertThreshold(min_stock=100, max_stock=1000))

        suggestion = advisor.suggest("P2", horizon_days=30, as_of=as_of)

        assert suggestion.priority == Priority.LOW
        assert suggestion.reason == NO_HISTORY_REASON
        assert suggestion.days_of_cover is None
        assert suggestion.suggested_amount == 60

    def test_no_history_without_threshold(self, advisor, catalog, as_of):
        catalog.register(Product(product_id="P2", name="Zinc", stock=40, last_update=as_of))
        assert advisor.suggest("P2", horizon_days=30, as_of=as_of).suggested_amount == 0

    def test_inbound_movements_are_not_consumption(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)
        catalog.apply_movement("P1", 500, MovementDirection.INBOUND, at=as_of - timedelta(days=3))

        suggestion = advisor.suggest("P1", horizon_days=30, as_of=as_of)

        assert suggestion.avg_daily_consumption == pytest.approx(3.0)

    def test_young_product_averages_over_days_seen(self, advisor, catalog, seed_consumption, as_of):
        """Registered 9 days ago: 10 observed days, not 30."""
        seed_consumption(catalog, "P1", daily=6, days=9, opening=200)

        suggestion = advisor.suggest("P1", horizon_days=30, as_of=as_of)

        assert suggestion.avg_daily_consumption == pytest.approx(54 / 10)

    def test_backfilled_readings_average_over_their_span(self, advisor, catalog, as_of):
        """Registered today, then 30 back-dated readings falling 3/day."""
        catalog.register(Product(product_id="P4", name="Backfilled", stock=300, last_update=as_of))
        for offset in range(29, -1, -1):
            catalog.set_stock("P4", 300 - 3 * (30 - offset), at=as_of - timedelta(days=offset))

        suggestion = advisor.suggest("P4", horizon_days=30, as_of=as_of)

        assert catalog.get("P4").stock == 210
        assert suggestion.avg_daily_consumption == pytest.approx(3.0)

    def test_naive_timestamps_are_read_as_utc(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)
        naive = as_of.replace(tzinfo=None)
        catalog.set_stock("P1", 80, at=naive)

        suggestion = advisor.suggest("P1", horizon_days=30, as_of=naive)

        assert catalog.get("P1").last_update.tzinfo is not None
        assert suggestion.current_stock == 80
        assert suggestion.avg_daily_consumption == pytest.approx(95 / 30)
        assert catalog.movements("P1", since=naive)[-1].stock_after == 80

    def test_sales_outside_window_ignored(self, advisor, catalog, as_of):
        catalog.register(Product(product_id="P3", name="Old", stock=500, last_update=as_of - timedelta(days=90)))
        catalog.apply_movement("P3", 100, MovementDirection.OUTBOUND, at=as_of - timedelta(days=60))

        suggestion = advisor.suggest("P3", horizon_days=30, as_of=as_of)

        assert suggestion.reason == NO_HISTORY_REASON


class TestHistory:
    def test_one_point_per_window_day(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)

        history = advisor.suggest("P1", horizon_days=30, as_of=as_of).history

        assert len(history) == 30
        assert history[-1].date == as_of.date()
        assert history[-1].stock == 85
        assert history[0].stock == 172
        assert all(point.sales == 3 for point in history)
        assert history[-1].avg_daily_sales == pytest.approx(3.0)

    def test_stockout_risk_rises_as_cover_falls(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)

        history = advisor.suggest("P1", horizon_days=30, as_of=as_of).history

        assert 0.0 <= history[0].stockout_risk <= history[-1].stockout_risk <= 1.0
        # cover 85 / 3 against a 60-day double safety window
        assert history[-1].stockout_risk == pytest.approx(1 - (85 / 3) / 60, abs=1e-3)


class TestSuggestAll:
    def test_most_urgent_first(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "LOW", daily=3, days=30, opening=390)
        seed_consumption(catalog, "HIGH", daily=3, days=30, opening=175)
        seed_consumption(catalog, "MED", daily=3, days=30, opening=225)

        ranked = advisor.suggest_all(horizon_days=30, as_of=as_of)

        assert [s.product_id for s in ranked] == ["HIGH", "MED", "LOW"]

    def test_empty_catalog(self, advisor, as_of):
        assert advisor.suggest_all(horizon_days=30, as_of=as_of) == []


class TestErrors:
    def test_unknown_product(self, advisor, as_of):
        with pytest.raises(NotFound):
            advisor.suggest("NOPE", horizon_days=30, as_of=as_of)

    def test_negative_horizon(self, advisor, catalog, seed_consumption, as_of):
        seed_consumption(catalog, "P1", daily=3, days=30, opening=175)
        with pytest.raises(InvalidAmount):
            advisor.suggest("P1", horizon_days=-1, as_of=as_of)

    def test_window_must_be_positive(self, catalog, thresholds):
        with pytest.raises(InvalidAmount):
            ReplenishmentAdvisor(catalog, thresholds, window_days=0)
