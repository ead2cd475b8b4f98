"""
PharmaStock Domain Models

In-memory records for the stock alerting core. Nothing here is persisted;
the store objects that own these records live on one AlertEngine.

Records:
  1. Product                  - Catalog entry with current stock
  2. StockMovement            - Journal of inbound/outbound stock changes
  3. AlertThreshold           - Min/max band + notification preferences
  4. AlertEvent               - Edge-triggered breach record (ledger entry)
  5. ReplenishmentSuggestion  - Transient advisor output
  6. ReplenishmentPlan        - Operator-confirmed reorder plan
  7. AlertTemplate            - Named threshold preset applied to categories
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ──────────────────────────────────────────────────────────────────────────
# Tagged variants
# ──────────────────────────────────────────────────────────────────────────


class StockState(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    HIGH = "high"


class AlertType(str, Enum):
    LOW_STOCK = "low_stock"
    HIGH_STOCK = "high_stock"


class AlertStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    IGNORED = "ignored"


class Frequency(str, Enum):
    REALTIME = "realtime"
    DAILY = "daily"
    WEEKLY = "weekly"


class Channel(str, Enum):
    EMAIL = "email"
    SYSTEM = "system"
    SMS = "sms"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PlanStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MovementDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


# ──────────────────────────────────────────────────────────────────────────
# Catalog
# ──────────────────────────────────────────────────────────────────────────


@dataclass
class Product:
    product_id: str
    name: str
    category: str | None = None
    stock: int = 0
    last_update: datetime = field(default_factory=utcnow)
    unit_cost: float | None = None
    supplier: str | None = None


@dataclass(frozen=True)
class StockMovement:
    product_id: str
    quantity: int
    direction: MovementDirection
    stock_after: int
    at: datetime


# ──────────────────────────────────────────────────────────────────────────
# Thresholds
# ──────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class NotifyMethods:
    email: bool = True
    system: bool = True
    sms: bool = False

    def enabled(self) -> list[Channel]:
        return [channel for channel in Channel if getattr(self, channel.value)]


@dataclass(frozen=True)
class AlertThreshold:
    """Stock band for a product or category. Defaults mirror the alert settings form."""

    min_stock: int = 100
    max_stock: int = 1000
    is_enabled: bool = True
    notify_methods: NotifyMethods = field(default_factory=NotifyMethods)
    frequency: Frequency = Frequency.REALTIME
    auto_replenish: bool = False
    replenish_amount: int = 500
    contacts: tuple[str, ...] = ()

    def classify(self, stock: int) -> StockState:
        if stock < self.min_stock:
            return StockState.LOW
        if stock > self.max_stock:
            return StockState.HIGH
        return StockState.NORMAL


@dataclass(frozen=True)
class ThresholdKey:
    """Either a product id or a category id. Product keys win on resolution."""

    scope: str
    value: str

    @classmethod
    def product(cls, product_id: str) -> "ThresholdKey":
        return cls("product", product_id)

    @classmethod
    def category(cls, category_id: str) -> "ThresholdKey":
        return cls("category", category_id)


# ──────────────────────────────────────────────────────────────────────────
# Alerts
# ──────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlertEvent:
    product_id: str
    type: AlertType
    stock_at_trigger: int
    threshold_at_trigger: int
    timestamp: datetime = field(default_factory=utcnow)
    status: AlertStatus = AlertStatus.PENDING
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    resolved_at: datetime | None = None


@dataclass(frozen=True)
class AlertTemplate:
    name: str
    min_stock: int = 100
    max_stock: int = 1000
    description: str = ""
    notify_methods: NotifyMethods = field(default_factory=NotifyMethods)
    frequency: Frequency = Frequency.REALTIME
    auto_replenish: bool = False
    replenish_amount: int = 500
    categories: tuple[str, ...] = ()
    is_active: bool = True
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def threshold_fields(self) -> dict:
        return {
            "min_stock": self.min_stock,
            "max_stock": self.max_stock,
            "notify_methods": self.notify_methods,
            "frequency": self.frequency,
            "auto_replenish": self.auto_replenish,
            "replenish_amount": self.replenish_amount,
        }


# ──────────────────────────────────────────────────────────────────────────
# Replenishment
# ──────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HistoryPoint:
    date: date
    sales: int
    stock: int
    avg_daily_sales: float
    stockout_risk: float


@dataclass
class ReplenishmentSuggestion:
    """Result of a replenishment advisor run. Never persisted."""

    product_id: str
    current_stock: int
    suggested_amount: int
    reason: str
    priority: Priority
    avg_daily_consumption: float
    days_of_cover: float | None
    history: list[HistoryPoint] = field(default_factory=list)


@dataclass
class ReplenishmentPlan:
    product_id: str
    plan_amount: int
    expected_date: date
    priority: Priority = Priority.MEDIUM
    status: PlanStatus = PlanStatus.DRAFT
    supplier: str | None = None
    estimated_cost: float | None = None
    notes: str | None = None
    stock_at_creation: int | None = None
    alert_id: uuid.UUID | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
