"""
Tests for the Alert Engine — the full stock-update pipeline.
"""

from datetime import datetime, timedelta, timezone

import pytest

from inventory.models import (
    AlertStatus,
    AlertThreshold,
    AlertType,
    Channel,
    Frequency,
    PlanStatus,
    Priority,
    Product,
    ThresholdKey,
)


@pytest.fixture
def amoxicillin(engine):
    engine.catalog.register(
        Product(
            product_id="P1",
            name="Amoxicillin 500mg",
            category="antibiotics",
            stock=150,
            unit_cost=0.4,
            supplier="Cardinal",
        )
    )
    engine.thresholds.set_threshold(
        ThresholdKey.product("P1"),
        AlertThreshold(min_stock=100, max_stock=1000, contacts=("pharmacist@clinic.test",)),
    )
    return engine.catalog.get("P1")


@pytest.mark.asyncio
class TestStockUpdates:
    async def test_drop_below_min_alerts_once(self, engine, amoxicillin, channels):
        events = [await engine.process_stock_update("P1", s) for s in (90, 85, 80, 95)]

        assert events[0] is not None
        assert events[1:] == [None, None, None]
        assert len(engine.ledger.list_events(product_id="P1")) == 1
        assert len(channels[Channel.EMAIL].sent) == 1
        assert "Amoxicillin 500mg" in channels[Channel.EMAIL].sent[0].subject

    async def test_stock_is_journaled(self, engine, amoxicillin):
        await engine.process_stock_update("P1", 120)
        await engine.process_stock_update("P1", 140)
        assert engine.catalog.get("P1").stock == 140
        assert len(engine.catalog.movements("P1")) == 2

    async def test_snapshot_survives_threshold_change(self, engine, amoxicillin):
        event = await engine.process_stock_update("P1", 85)
        engine.thresholds.set_threshold(ThresholdKey.product("P1"), AlertThreshold(min_stock=50, max_stock=500))

        stored = engine.ledger.get(event.id)

        assert stored.threshold_at_trigger == 100
        assert stored.stock_at_trigger == 85

    async def test_overstock(self, engine, amoxicillin):
        event = await engine.process_stock_update("P1", 1200)
        assert event.type == AlertType.HIGH_STOCK
        assert engine.plans.list_plans() == []

    async def test_notifies_under_the_evaluated_threshold(self, engine, amoxicillin, channels, monkeypatch):
        check = engine.evaluator.check

        def check_then_reconfigure(product_id, new_stock):
            result = check(product_id, new_stock)
            engine.thresholds.set_threshold(
                ThresholdKey.product("P1"),
                AlertThreshold(min_stock=100, max_stock=1000, is_enabled=False, frequency=Frequency.WEEKLY),
            )
            return result

        monkeypatch.setattr(engine.evaluator, "check", check_then_reconfigure)

        await engine.process_stock_update("P1", 85)

        assert len(channels[Channel.EMAIL].sent) == 1
        assert engine.dispatcher.pending_count() == 0

    async def test_no_threshold_no_alert(self, engine):
        engine.catalog.register(Product(product_id="P7", name="Saline", stock=10))
        assert await engine.process_stock_update("P7", 0) is None
        assert engine.ledger.list_events() == []


@pytest.mark.asyncio
class TestAutoReplenish:
    async def test_low_stock_creates_draft_plan(self, engine, amoxicillin):
        engine.thresholds.set_threshold(
            ThresholdKey.product("P1"),
            AlertThreshold(min_stock=100, max_stock=1000, auto_replenish=True, replenish_amount=400),
        )

        event = await engine.process_stock_update("P1", 60)

        [plan] = engine.plans.list_plans(product_id="P1")
        assert plan.status == PlanStatus.DRAFT
        assert plan.priority == Priority.HIGH
        assert plan.plan_amount == 400
        assert plan.alert_id == event.id
        assert plan.stock_at_creation == 60
        assert plan.supplier == "Cardinal"
        assert plan.estimated_cost == pytest.approx(160.0)

    async def test_no_plan_without_auto_replenish(self, engine, amoxicillin):
        await engine.process_stock_update("P1", 60)
        assert engine.plans.list_plans() == []


@pytest.mark.asyncio
class TestDigestsThroughEngine:
    async def test_daily_threshold_waits_for_tick(self, engine, amoxicillin, channels):
        engine.thresholds.set_threshold(
            ThresholdKey.category("antibiotics"),
            AlertThreshold(min_stock=100, max_stock=1000, frequency=Frequency.DAILY),
        )
        engine.thresholds.set_threshold(
            ThresholdKey.product("P1"),
            AlertThreshold(min_stock=100, max_stock=1000, frequency=Frequency.DAILY),
        )
        engine.catalog.register(Product(product_id="P2", name="Cefalexin", category="antibiotics", stock=300))

        await engine.process_stock_update("P1", 50)
        await engine.process_stock_update("P2", 20)
        assert channels[Channel.SYSTEM].sent == []

        tomorrow = datetime.now(timezone.utc) + timedelta(days=1)
        summary = await engine.dispatcher.tick(tomorrow)

        assert summary["claimed"] == 2
        [digest] = channels[Channel.SYSTEM].sent
        assert len(digest.event_ids) == 2

    async def test_processed_alert_left_out_of_digest(self, engine, amoxicillin, channels):
        engine.thresholds.set_threshold(
            ThresholdKey.product("P1"),
            AlertThreshold(min_stock=100, max_stock=1000, frequency=Frequency.DAILY),
        )
        event = await engine.process_stock_update("P1", 50)
        engine.ledger.update_status(event.id, AlertStatus.PROCESSED)

        summary = await engine.dispatcher.tick(datetime.now(timezone.utc) + timedelta(days=1))

        assert summary["skipped"] == 1
        assert channels[Channel.SYSTEM].sent == []


@pytest.mark.asyncio
class TestSweep:
    async def test_sweep_flags_products_after_threshold_change(self, engine, amoxicillin):
        engine.catalog.register(Product(product_id="P2", name="Cefalexin", category="antibiotics", stock=5000))
        engine.thresholds.set_threshold(ThresholdKey.category("antibiotics"), AlertThreshold(min_stock=10, max_stock=2000))
        engine.thresholds.set_threshold(ThresholdKey.product("P1"), AlertThreshold(min_stock=200, max_stock=1000))

        counts = await engine.run_alert_sweep()

        assert counts == {"low_stock": 1, "high_stock": 1, "total": 2}

    async def test_second_sweep_is_quiet(self, engine, amoxicillin):
        engine.thresholds.set_threshold(ThresholdKey.product("P1"), AlertThreshold(min_stock=200, max_stock=1000))
        await engine.run_alert_sweep()
        assert (await engine.run_alert_sweep())["total"] == 0
