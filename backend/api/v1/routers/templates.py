"""
Templates Router — Reusable alert threshold presets for categories.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from alerts.engine import AlertEngine
from api.deps import domain_errors, get_engine
from api.v1.routers.thresholds import NotifyMethodsSchema
from inventory.models import AlertTemplate, Frequency, NotifyMethods

router = APIRouter(prefix="/api/v1/templates", tags=["templates"])


class TemplateCreate(BaseModel):
    name: str
    description: str = ""
    min_stock: int = 100
    max_stock: int = 1000
    notify_methods: NotifyMethodsSchema = NotifyMethodsSchema()
    frequency: Frequency = Frequency.REALTIME
    auto_replenish: bool = False
    replenish_amount: int = 500
    categories: list[str] = []
    is_active: bool = True


class TemplateResponse(TemplateCreate):
    id: UUID

    model_config = {"from_attributes": True}


class TemplateApplyRequest(BaseModel):
    categories: list[str] | None = None


class TemplateApplyResult(BaseModel):
    updated: int


@router.get("/", response_model=list[TemplateResponse])
async def list_templates(active_only: bool = False, engine: AlertEngine = Depends(get_engine)):
    return engine.templates.list_templates(active_only=active_only)


@router.post("/", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def save_template(body: TemplateCreate, engine: AlertEngine = Depends(get_engine)):
    fields = body.model_dump()
    fields["notify_methods"] = NotifyMethods(**fields["notify_methods"])
    fields["categories"] = tuple(fields["categories"])
    with domain_errors():
        return engine.templates.save(AlertTemplate(**fields))


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: UUID, engine: AlertEngine = Depends(get_engine)):
    with domain_errors():
        return engine.templates.get(template_id)


@router.post("/{template_id}/apply", response_model=TemplateApplyResult)
async def apply_template(
    template_id: UUID,
    body: TemplateApplyRequest,
    engine: AlertEngine = Depends(get_engine),
):
    """Write the template's thresholds to the given categories (or its own list)."""
    with domain_errors():
        updated = engine.templates.apply(template_id, body.categories)
    return TemplateApplyResult(updated=updated)
