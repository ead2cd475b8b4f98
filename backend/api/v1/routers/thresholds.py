"""
Thresholds Router — Per-product and per-category stock alert settings.

Product settings override category settings as a whole record.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from alerts.engine import AlertEngine
from api.deps import domain_errors, get_engine
from inventory.models import AlertThreshold, Frequency, NotifyMethods, ThresholdKey

router = APIRouter(prefix="/api/v1/thresholds", tags=["thresholds"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class NotifyMethodsSchema(BaseModel):
    email: bool = True
    system: bool = True
    sms: bool = False

    model_config = {"from_attributes": True}


class ThresholdPayload(BaseModel):
    min_stock: int = 100
    max_stock: int = 1000
    is_enabled: bool = True
    notify_methods: NotifyMethodsSchema = NotifyMethodsSchema()
    frequency: Frequency = Frequency.REALTIME
    auto_replenish: bool = False
    replenish_amount: int = 500
    contacts: list[str] = []

    def to_threshold(self) -> AlertThreshold:
        return AlertThreshold(
            min_stock=self.min_stock,
            max_stock=self.max_stock,
            is_enabled=self.is_enabled,
            notify_methods=NotifyMethods(**self.notify_methods.model_dump()),
            frequency=self.frequency,
            auto_replenish=self.auto_replenish,
            replenish_amount=self.replenish_amount,
            contacts=tuple(self.contacts),
        )


class ThresholdResponse(ThresholdPayload):
    scope: str
    key: str


class BatchThresholdRequest(BaseModel):
    """Fields left unset keep each category's current value."""

    categories: list[str] = Field(..., min_length=1)
    min_stock: int | None = None
    max_stock: int | None = None
    is_enabled: bool | None = None
    notify_methods: NotifyMethodsSchema | None = None
    frequency: Frequency | None = None
    auto_replenish: bool | None = None
    replenish_amount: int | None = None
    contacts: list[str] | None = None


class BatchThresholdResult(BaseModel):
    updated: int


def _to_response(key: ThresholdKey, threshold: AlertThreshold) -> ThresholdResponse:
    return ThresholdResponse(
        scope=key.scope,
        key=key.value,
        min_stock=threshold.min_stock,
        max_stock=threshold.max_stock,
        is_enabled=threshold.is_enabled,
        notify_methods=NotifyMethodsSchema.model_validate(threshold.notify_methods),
        frequency=threshold.frequency,
        auto_replenish=threshold.auto_replenish,
        replenish_amount=threshold.replenish_amount,
        contacts=list(threshold.contacts),
    )


def _get_or_404(engine: AlertEngine, key: ThresholdKey) -> ThresholdResponse:
    threshold = engine.thresholds.get_threshold(key)
    if threshold is None:
        raise HTTPException(status_code=404, detail=f"No {key.scope} threshold for '{key.value}'")
    return _to_response(key, threshold)


def _put(engine: AlertEngine, key: ThresholdKey, body: ThresholdPayload) -> ThresholdResponse:
    with domain_errors():
        threshold = engine.thresholds.set_threshold(key, body.to_threshold())
    return _to_response(key, threshold)


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[ThresholdResponse])
async def list_thresholds(engine: AlertEngine = Depends(get_engine)):
    return [_to_response(key, threshold) for key, threshold in engine.thresholds.list_thresholds()]


@router.get("/products/{product_id}", response_model=ThresholdResponse)
async def get_product_threshold(product_id: str, engine: AlertEngine = Depends(get_engine)):
    return _get_or_404(engine, ThresholdKey.product(product_id))


@router.put("/products/{product_id}", response_model=ThresholdResponse)
async def set_product_threshold(
    product_id: str,
    body: ThresholdPayload,
    engine: AlertEngine = Depends(get_engine),
):
    return _put(engine, ThresholdKey.product(product_id), body)


@router.get("/categories/{category}", response_model=ThresholdResponse)
async def get_category_threshold(category: str, engine: AlertEngine = Depends(get_engine)):
    return _get_or_404(engine, ThresholdKey.category(category))


@router.put("/categories/{category}", response_model=ThresholdResponse)
async def set_category_threshold(
    category: str,
    body: ThresholdPayload,
    engine: AlertEngine = Depends(get_engine),
):
    return _put(engine, ThresholdKey.category(category), body)


@router.post("/batch", response_model=BatchThresholdResult)
async def set_batch_thresholds(body: BatchThresholdRequest, engine: AlertEngine = Depends(get_engine)):
    """Apply the same settings to several categories at once (all or nothing)."""
    partial = body.model_dump(exclude_unset=True, exclude={"categories"})
    if "notify_methods" in partial and partial["notify_methods"] is not None:
        partial["notify_methods"] = NotifyMethods(**partial["notify_methods"])
    if "contacts" in partial and partial["contacts"] is not None:
        partial["contacts"] = tuple(partial["contacts"])
    partial = {k: v for k, v in partial.items() if v is not None}

    with domain_errors():
        updated = engine.thresholds.set_batch(body.categories, partial)
    return BatchThresholdResult(updated=updated)


@router.get("/resolve/{product_id}", response_model=ThresholdResponse)
async def resolve_threshold(product_id: str, engine: AlertEngine = Depends(get_engine)):
    """The threshold that actually applies to a product (product, then category)."""
    category = engine.catalog.category_of(product_id)
    product_key = ThresholdKey.product(product_id)
    if engine.thresholds.get_threshold(product_key) is not None:
        return _get_or_404(engine, product_key)
    if category is not None and engine.thresholds.get_threshold(ThresholdKey.category(category)) is not None:
        return _get_or_404(engine, ThresholdKey.category(category))
    raise HTTPException(status_code=404, detail=f"No threshold applies to product '{product_id}'")
