"""
Test Configuration — Fixtures for a fresh engine, fake channels and the API client.

Every test gets its own AlertEngine with empty stores; channel senders are
recorders so nothing leaves the process.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from alerts.engine import build_engine
from api.deps import get_engine
from api.main import app
from core.config import Settings
from inventory.models import Channel, MovementDirection, Product

AS_OF = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)


class FakeChannel:
    """Channel sender that records every attempt and can fail or stall on demand."""

    def __init__(self, result: bool = True, delay: float = 0.0, error: Exception | None = None):
        self.result = result
        self.delay = delay
        self.error = error
        self.sent = []

    async def __call__(self, notification) -> bool:
        self.sent.append(notification)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def channels():
    return {
        Channel.EMAIL: FakeChannel(),
        Channel.SYSTEM: FakeChannel(),
        Channel.SMS: FakeChannel(),
    }


@pytest.fixture
def test_settings():
    return Settings(
        app_env="test",
        digest_tick_seconds=0,
        channel_timeout_seconds=0.2,
        consumption_window_days=30,
        safety_days=30,
        default_lead_days=7,
    )


@pytest.fixture
def engine(test_settings, channels):
    return build_engine(test_settings, senders=channels)


@pytest.fixture
async def client(engine):
    """Async test client bound to the per-test engine."""
    app.dependency_overrides[get_engine] = lambda: engine

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def seed_consumption():
    """
    Register a product `days` days before `as_of` and ship `daily` units on
    each of the last `days` days.
    """

    def _seed(catalog, product_id: str, daily: int, days: int, opening: int, as_of: datetime = AS_OF):
        catalog.register(
            Product(
                product_id=product_id,
                name=f"Product {product_id}",
                category="antibiotics",
                stock=opening,
                last_update=as_of - timedelta(days=days),
            )
        )
        for offset in range(days - 1, -1, -1):
            catalog.apply_movement(
                product_id,
                daily,
                MovementDirection.OUTBOUND,
                at=as_of - timedelta(days=offset),
            )
        return catalog.get(product_id)

    return _seed
