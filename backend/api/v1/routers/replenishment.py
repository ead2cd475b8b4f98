"""
Replenishment Router — Advisor suggestions and the plan workflow.

  1. Advisor suggests a quantity per product (transient)
  2. Operator confirms a suggestion or drafts a plan by hand → 'draft'
  3. draft → scheduled → in_progress → completed, or → cancelled before work starts
"""

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from alerts.engine import AlertEngine
from api.deps import domain_errors, get_engine
from inventory.models import PlanStatus, Priority

router = APIRouter(prefix="/api/v1/replenishment", tags=["replenishment"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class HistoryPointResponse(BaseModel):
    date: date
    sales: int
    stock: int
    avg_daily_sales: float
    stockout_risk: float

    model_config = {"from_attributes": True}


class SuggestionResponse(BaseModel):
    product_id: str
    current_stock: int
    suggested_amount: int
    reason: str
    priority: Priority
    avg_daily_consumption: float
    days_of_cover: float | None
    history: list[HistoryPointResponse]

    model_config = {"from_attributes": True}


class PlanCreate(BaseModel):
    product_id: str
    plan_amount: int
    expected_date: date
    priority: Priority = Priority.MEDIUM
    supplier: str | None = None
    estimated_cost: float | None = None
    notes: str | None = None


class PlanConfirmRequest(BaseModel):
    """Confirm the advisor's current suggestion for a product into a draft plan."""

    product_id: str
    horizon_days: int = Field(30, ge=0)
    expected_date: date | None = None
    supplier: str | None = None
    unit_cost: float | None = Field(None, ge=0)
    notes: str | None = None


class PlanStatusUpdate(BaseModel):
    status: PlanStatus


class PlanResponse(BaseModel):
    id: UUID
    product_id: str
    plan_amount: int
    expected_date: date
    status: PlanStatus
    priority: Priority
    supplier: str | None
    estimated_cost: float | None
    notes: str | None
    stock_at_creation: int | None
    alert_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PlanSummary(BaseModel):
    total: int
    draft: int
    scheduled: int
    in_progress: int
    completed: int
    cancelled: int
    total_estimated_cost: float


# ─── Suggestions ────────────────────────────────────────────────────────────


@router.get("/suggestions", response_model=list[SuggestionResponse])
async def list_suggestions(
    horizon_days: int = Query(30, ge=0),
    engine: AlertEngine = Depends(get_engine),
):
    """Suggestions for every product, most urgent first."""
    with domain_errors():
        return engine.advisor.suggest_all(horizon_days)


@router.get("/suggestions/{product_id}", response_model=SuggestionResponse)
async def get_suggestion(
    product_id: str,
    horizon_days: int = Query(30, ge=0),
    engine: AlertEngine = Depends(get_engine),
):
    with domain_errors():
        return engine.advisor.suggest(product_id, horizon_days)


# ─── Plans ──────────────────────────────────────────────────────────────────


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(
    product_id: str | None = None,
    status: PlanStatus | None = None,
    engine: AlertEngine = Depends(get_engine),
):
    return engine.plans.list_plans(product_id=product_id, status=status)


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(body: PlanCreate, engine: AlertEngine = Depends(get_engine)):
    """Draft a plan by hand."""
    with domain_errors():
        product = engine.catalog.get(body.product_id)
        return engine.plans.create(**body.model_dump(), stock_at_creation=product.stock)


@router.post("/plans/confirm", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def confirm_suggestion(body: PlanConfirmRequest, engine: AlertEngine = Depends(get_engine)):
    """Re-run the advisor and turn its suggestion into a draft plan (422 if nothing to order)."""
    with domain_errors():
        product = engine.catalog.get(body.product_id)
        suggestion = engine.advisor.suggest(body.product_id, body.horizon_days)
        return engine.plans.confirm(
            suggestion,
            expected_date=body.expected_date,
            supplier=body.supplier or product.supplier,
            unit_cost=body.unit_cost if body.unit_cost is not None else product.unit_cost,
            notes=body.notes,
        )


@router.get("/plans/summary", response_model=PlanSummary)
async def get_plan_summary(engine: AlertEngine = Depends(get_engine)):
    """Plan counts by status and total estimated cost."""
    return PlanSummary(**engine.plans.summary())


@router.get("/plans/history", response_model=list[PlanResponse])
async def get_plan_history(
    product_id: str | None = None,
    engine: AlertEngine = Depends(get_engine),
):
    """Completed and cancelled plans, most recently closed first."""
    return engine.plans.history(product_id=product_id)


@router.get("/plans/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: UUID, engine: AlertEngine = Depends(get_engine)):
    with domain_errors():
        return engine.plans.get(plan_id)


@router.patch("/plans/{plan_id}/status", response_model=PlanResponse)
async def update_plan_status(
    plan_id: UUID,
    body: PlanStatusUpdate,
    engine: AlertEngine = Depends(get_engine),
):
    """Advance a plan. Backward moves and moves out of terminal states return 409."""
    with domain_errors():
        return engine.plans.update_status(plan_id, body.status)
