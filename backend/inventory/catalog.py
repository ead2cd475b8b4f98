"""
Product Catalog — current stock per product plus the movement journal.

Every stock change is journaled as an inbound or outbound movement; the
replenishment advisor reads outbound movements as consumption.
"""

import threading
from datetime import datetime

import structlog

from core.errors import InvalidAmount, NotFound
from inventory.models import (
    AlertThreshold,
    MovementDirection,
    Product,
    StockMovement,
    as_utc,
    utcnow,
)

logger = structlog.get_logger()


def stock_status(stock: int, threshold: AlertThreshold | None) -> str:
    """Inventory list status: 'normal', 'low' or 'overstock'."""
    if threshold is None or not threshold.is_enabled:
        return "normal"
    if stock < threshold.min_stock:
        return "low"
    if stock > threshold.max_stock:
        return "overstock"
    return "normal"


class ProductCatalog:
    def __init__(self):
        self._products: dict[str, Product] = {}
        self._movements: dict[str, list[StockMovement]] = {}
        self._first_seen: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def register(self, product: Product) -> Product:
        if product.stock < 0:
            raise InvalidAmount(f"Stock must be non-negative, got {product.stock}")
        product.last_update = as_utc(product.last_update)
        with self._lock:
            if product.product_id in self._products:
                raise ValueError(f"Product {product.product_id} already registered")
            self._products[product.product_id] = product
            self._movements[product.product_id] = []
            self._first_seen[product.product_id] = product.last_update
        logger.info("catalog.registered", product_id=product.product_id, category=product.category)
        return product

    def get(self, product_id: str) -> Product:
        with self._lock:
            product = self._products.get(product_id)
        if product is None:
            raise NotFound("Product", product_id)
        return product

    def category_of(self, product_id: str) -> str | None:
        with self._lock:
            product = self._products.get(product_id)
        return product.category if product else None

    def first_seen(self, product_id: str) -> datetime:
        with self._lock:
            if product_id not in self._first_seen:
                raise NotFound("Product", product_id)
            return self._first_seen[product_id]

    def list_products(self, category: str | None = None) -> list[Product]:
        with self._lock:
            products = list(self._products.values())
        if category is not None:
            products = [p for p in products if p.category == category]
        return products

    def set_stock(self, product_id: str, new_stock: int, at: datetime | None = None) -> Product:
        """Record an absolute stock reading; the delta is journaled."""
        if new_stock < 0:
            raise InvalidAmount(f"Stock must be non-negative, got {new_stock}")
        at = as_utc(at) if at else utcnow()
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                raise NotFound("Product", product_id)
            delta = new_stock - product.stock
            if delta:
                direction = MovementDirection.INBOUND if delta > 0 else MovementDirection.OUTBOUND
                self._movements[product_id].append(
                    StockMovement(product_id, abs(delta), direction, new_stock, at)
                )
            product.stock = new_stock
            product.last_update = at
            return product

    def apply_movement(
        self,
        product_id: str,
        quantity: int,
        direction: MovementDirection,
        at: datetime | None = None,
    ) -> Product:
        if quantity <= 0:
            raise InvalidAmount(f"Movement quantity must be positive, got {quantity}")
        at = as_utc(at) if at else utcnow()
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                raise NotFound("Product", product_id)
            if direction == MovementDirection.OUTBOUND:
                if quantity > product.stock:
                    raise InvalidAmount(
                        f"Cannot ship {quantity} units of {product_id}; only {product.stock} in stock"
                    )
                product.stock -= quantity
            else:
                product.stock += quantity
            product.last_update = at
            self._movements[product_id].append(StockMovement(product_id, quantity, direction, product.stock, at))
            return product

    def movements(self, product_id: str, since: datetime | None = None) -> list[StockMovement]:
        with self._lock:
            if product_id not in self._movements:
                raise NotFound("Product", product_id)
            journal = list(self._movements[product_id])
        if since is not None:
            journal = [m for m in journal if m.at >= as_utc(since)]
        return journal
