"""
Products Router — Catalog, current stock and stock readings.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from alerts.engine import AlertEngine
from api.deps import domain_errors, get_engine
from api.v1.routers.alerts import AlertResponse
from inventory.catalog import stock_status
from inventory.models import Product

router = APIRouter(prefix="/api/v1/products", tags=["products"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class ProductCreate(BaseModel):
    product_id: str = Field(..., min_length=1)
    name: str
    category: str | None = None
    stock: int = Field(0, ge=0)
    unit_cost: float | None = Field(None, ge=0)
    supplier: str | None = None


class ProductResponse(BaseModel):
    product_id: str
    name: str
    category: str | None
    stock: int
    last_update: datetime
    unit_cost: float | None
    supplier: str | None
    status: str  # "normal", "low", "overstock"


class StockUpdateRequest(BaseModel):
    stock: int
    at: datetime | None = None


class StockUpdateResponse(BaseModel):
    product: ProductResponse
    alert: AlertResponse | None


def _to_response(engine: AlertEngine, product: Product) -> ProductResponse:
    threshold = engine.threshold_for(product.product_id)
    return ProductResponse(
        product_id=product.product_id,
        name=product.name,
        category=product.category,
        stock=product.stock,
        last_update=product.last_update,
        unit_cost=product.unit_cost,
        supplier=product.supplier,
        status=stock_status(product.stock, threshold),
    )


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[ProductResponse])
async def list_products(
    category: str | None = None,
    engine: AlertEngine = Depends(get_engine),
):
    return [_to_response(engine, p) for p in engine.catalog.list_products(category=category)]


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def register_product(body: ProductCreate, engine: AlertEngine = Depends(get_engine)):
    """Register a product. Duplicate ids are rejected with 409."""
    with domain_errors():
        try:
            product = engine.catalog.register(Product(**body.model_dump()))
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _to_response(engine, product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, engine: AlertEngine = Depends(get_engine)):
    with domain_errors():
        product = engine.catalog.get(product_id)
    return _to_response(engine, product)


@router.post("/{product_id}/stock", response_model=StockUpdateResponse)
async def update_stock(
    product_id: str,
    body: StockUpdateRequest,
    engine: AlertEngine = Depends(get_engine),
):
    """
    Record a stock reading. Returns the new alert if this reading moved the
    product into a low or high stock state.
    """
    with domain_errors():
        event = await engine.process_stock_update(product_id, body.stock, body.at)
        product = engine.catalog.get(product_id)
    return StockUpdateResponse(
        product=_to_response(engine, product),
        alert=AlertResponse.model_validate(event) if event else None,
    )
