"""
Replenishment Plans — the human-in-the-loop side of replenishment.

  1. Advisor suggests a quantity (transient)
  2. Operator confirms → plan in 'draft'
  3. draft → scheduled → in_progress → completed
  4. draft | scheduled → cancelled

Transitions only move forward; completed and cancelled are terminal.
"""

import threading
import uuid
from collections import Counter
from datetime import date, timedelta

import structlog

from core.errors import InvalidAmount, InvalidTransition, NotFound
from inventory.models import (
    PlanStatus,
    Priority,
    ReplenishmentPlan,
    ReplenishmentSuggestion,
    utcnow,
)

logger = structlog.get_logger()

PLAN_TRANSITIONS = {
    PlanStatus.DRAFT: {PlanStatus.SCHEDULED, PlanStatus.CANCELLED},
    PlanStatus.SCHEDULED: {PlanStatus.IN_PROGRESS, PlanStatus.CANCELLED},
    PlanStatus.IN_PROGRESS: {PlanStatus.COMPLETED},
    PlanStatus.COMPLETED: set(),
    PlanStatus.CANCELLED: set(),
}
TERMINAL_STATUSES = (PlanStatus.COMPLETED, PlanStatus.CANCELLED)


class ReplenishmentPlanBook:
    def __init__(self, default_lead_days: int = 7):
        self.default_lead_days = default_lead_days
        self._plans: dict[uuid.UUID, ReplenishmentPlan] = {}
        self._lock = threading.Lock()

    def create(
        self,
        product_id: str,
        plan_amount: int,
        expected_date: date,
        priority: Priority = Priority.MEDIUM,
        supplier: str | None = None,
        estimated_cost: float | None = None,
        notes: str | None = None,
        stock_at_creation: int | None = None,
        alert_id: uuid.UUID | None = None,
    ) -> ReplenishmentPlan:
        if plan_amount <= 0:
            raise InvalidAmount(f"Plan amount must be positive, got {plan_amount}")
        if estimated_cost is not None and estimated_cost < 0:
            raise InvalidAmount(f"Estimated cost must be non-negative, got {estimated_cost}")

        plan = ReplenishmentPlan(
            product_id=product_id,
            plan_amount=plan_amount,
            expected_date=expected_date,
            priority=Priority(priority),
            supplier=supplier,
            estimated_cost=estimated_cost,
            notes=notes,
            stock_at_creation=stock_at_creation,
            alert_id=alert_id,
        )
        with self._lock:
            self._plans[plan.id] = plan
        logger.info(
            "plans.created",
            plan_id=str(plan.id),
            product_id=product_id,
            amount=plan_amount,
            priority=plan.priority.value,
            alert_id=str(alert_id) if alert_id else None,
        )
        return plan

    def confirm(
        self,
        suggestion: ReplenishmentSuggestion,
        expected_date: date | None = None,
        supplier: str | None = None,
        unit_cost: float | None = None,
        notes: str | None = None,
    ) -> ReplenishmentPlan:
        """Turn an advisor suggestion into a draft plan."""
        if suggestion.suggested_amount <= 0:
            raise InvalidAmount(f"Nothing to order for {suggestion.product_id}: {suggestion.reason}")
        estimated_cost = unit_cost * suggestion.suggested_amount if unit_cost is not None else None
        return self.create(
            product_id=suggestion.product_id,
            plan_amount=suggestion.suggested_amount,
            expected_date=expected_date or (utcnow().date() + timedelta(days=self.default_lead_days)),
            priority=suggestion.priority,
            supplier=supplier,
            estimated_cost=estimated_cost,
            notes=notes or suggestion.reason,
            stock_at_creation=suggestion.current_stock,
        )

    def get(self, plan_id: uuid.UUID) -> ReplenishmentPlan:
        with self._lock:
            plan = self._plans.get(plan_id)
        if plan is None:
            raise NotFound("Replenishment plan", plan_id)
        return plan

    def list_plans(self, product_id: str | None = None, status: PlanStatus | None = None) -> list[ReplenishmentPlan]:
        with self._lock:
            plans = list(self._plans.values())
        if product_id is not None:
            plans = [p for p in plans if p.product_id == product_id]
        if status is not None:
            plans = [p for p in plans if p.status == status]
        return plans

    def update_status(self, plan_id: uuid.UUID, new_status: PlanStatus) -> ReplenishmentPlan:
        new_status = PlanStatus(new_status)
        with self._lock:
            plan = self._plans.get(plan_id)
            if plan is None:
                raise NotFound("Replenishment plan", plan_id)
            if new_status not in PLAN_TRANSITIONS[plan.status]:
                raise InvalidTransition("replenishment plan", plan.status.value, new_status.value)
            previous = plan.status
            plan.status = new_status
            plan.updated_at = utcnow()

        logger.info("plans.status_updated", plan_id=str(plan_id), previous=previous.value, status=new_status.value)
        return plan

    def summary(self) -> dict:
        with self._lock:
            plans = list(self._plans.values())
        counts = Counter(p.status for p in plans)
        return {
            "total": len(plans),
            **{status.value: counts.get(status, 0) for status in PlanStatus},
            "total_estimated_cost": sum(p.estimated_cost or 0.0 for p in plans),
        }

    def history(self, product_id: str | None = None) -> list[ReplenishmentPlan]:
        """Completed and cancelled plans, most recently closed first."""
        closed = [p for p in self.list_plans(product_id=product_id) if p.status in TERMINAL_STATUSES]
        return sorted(closed, key=lambda p: p.updated_at, reverse=True)
