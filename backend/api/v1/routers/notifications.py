"""
Notifications Router — Delivery log and manual digest flush.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from alerts.engine import AlertEngine
from api.deps import get_engine
from inventory.models import Channel, Frequency

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


class DeliveryResponse(BaseModel):
    channel: Channel
    recipient: str | None
    kind: str
    event_ids: list[UUID]
    success: bool
    error: str | None
    at: datetime

    model_config = {"from_attributes": True}


class TickRequest(BaseModel):
    now: datetime | None = None


class TickSummary(BaseModel):
    claimed: int
    skipped: int
    digests: int
    delivered: int
    failed: int
    pruned: int = 0


class PendingDigests(BaseModel):
    daily: int
    weekly: int


@router.get("/deliveries", response_model=list[DeliveryResponse])
async def list_deliveries(
    failed_only: bool = False,
    limit: int = Query(100, ge=1, le=500),
    engine: AlertEngine = Depends(get_engine),
):
    """Most recent deliveries first."""
    records = engine.dispatcher.deliveries
    if failed_only:
        records = [r for r in records if not r.success]
    return list(reversed(records))[:limit]


@router.get("/pending", response_model=PendingDigests)
async def get_pending_digests(engine: AlertEngine = Depends(get_engine)):
    return PendingDigests(
        daily=engine.dispatcher.pending_count(Frequency.DAILY),
        weekly=engine.dispatcher.pending_count(Frequency.WEEKLY),
    )


@router.post("/tick", response_model=TickSummary)
async def run_tick(body: TickRequest, engine: AlertEngine = Depends(get_engine)):
    """Flush closed digest periods now instead of waiting for the ticker."""
    return TickSummary(**await engine.dispatcher.tick(body.now))
