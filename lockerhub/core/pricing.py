from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from lockerhub.core.entities.rental_plan import RentalPlan
from lockerhub.core.errors import UnknownPlan

_HOUR = timedelta(hours=1)


@dataclass(frozen=True, slots=True)
class Overtime:
    is_overtime: bool
    overtime_hours: int


class PricingTable:
    """
    Static mapping from plan id to RentalPlan. Built once at startup, never mutated.
    """

    def __init__(self, plans: Iterable[RentalPlan]) -> None:
        self._plans: dict[str, RentalPlan] = {}
        for plan in plans:
            if plan.plan_id in self._plans:
                raise ValueError(f"Duplicate rental plan id: {plan.plan_id!r}")
            self._plans[plan.plan_id] = plan

        if not self._plans:
            raise ValueError("Pricing table needs at least one rental plan")

    def plan_for(self, plan_id: str) -> RentalPlan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise UnknownPlan(f"Unknown rental plan: {plan_id!r}")
        return plan

    def plans(self) -> list[RentalPlan]:
        return list(self._plans.values())


def compute_deadline(deposit_time: datetime, plan: RentalPlan) -> datetime:
    return deposit_time + timedelta(hours=plan.included_hours)


def compute_overtime(deadline: datetime, now: datetime) -> Overtime:
    """
    Whole overtime hours past `deadline`, rounded up: one minute late bills a full hour.
    """
    if now <= deadline:
        return Overtime(is_overtime=False, overtime_hours=0)

    # timedelta // timedelta is exact integer division on microseconds
    late = now - deadline
    hours = late // _HOUR
    if late % _HOUR:
        hours += 1
    return Overtime(is_overtime=True, overtime_hours=hours)


def compute_overtime_fee(plan: RentalPlan, overtime_hours: int) -> Decimal:
    # No ceiling is applied to the fee.
    return plan.overtime_rate_per_hour * overtime_hours
