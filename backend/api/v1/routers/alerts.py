"""
Alerts Router — Alert history and status management.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from alerts.engine import AlertEngine
from api.deps import domain_errors, get_engine
from inventory.models import AlertStatus, AlertType

router = APIRouter(prefix="/api/v1/alerts", tags=["alerts"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class AlertResponse(BaseModel):
    id: UUID
    product_id: str
    type: AlertType
    stock_at_trigger: int
    threshold_at_trigger: int
    timestamp: datetime
    status: AlertStatus
    resolved_at: datetime | None

    model_config = {"from_attributes": True}


class AlertStatusUpdate(BaseModel):
    status: AlertStatus


class AlertSummary(BaseModel):
    total: int
    pending: int
    processed: int
    ignored: int
    low_stock: int
    high_stock: int


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[AlertResponse])
async def list_alerts(
    product_id: str | None = None,
    status: AlertStatus | None = None,
    alert_type: AlertType | None = None,
    since: datetime | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    engine: AlertEngine = Depends(get_engine),
):
    """List alerts in the order they were raised."""
    events = engine.ledger.list_events(product_id=product_id, status=status, since=since, alert_type=alert_type)
    return events[skip : skip + limit]


@router.get("/summary", response_model=AlertSummary)
async def get_alert_summary(engine: AlertEngine = Depends(get_engine)):
    """Alert counts by status and type."""
    return AlertSummary(**engine.ledger.summary())


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(alert_id: UUID, engine: AlertEngine = Depends(get_engine)):
    with domain_errors():
        return engine.ledger.get(alert_id)


@router.patch("/{alert_id}/status", response_model=AlertResponse)
async def update_alert_status(
    alert_id: UUID,
    body: AlertStatusUpdate,
    engine: AlertEngine = Depends(get_engine),
):
    """Mark a pending alert processed or ignored. Terminal statuses are final (409)."""
    with domain_errors():
        return engine.ledger.update_status(alert_id, body.status)
