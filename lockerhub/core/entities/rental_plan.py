from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class RentalPlan:
    plan_id: str
    label: str
    included_hours: int
    base_price: Decimal
    overtime_rate_per_hour: Decimal

    def __post_init__(self) -> None:
        if isinstance(self.included_hours, bool) or not isinstance(self.included_hours, int):
            raise ValueError(f"included_hours for plan {self.plan_id!r} must be an int")
        if self.included_hours <= 0:
            raise ValueError(f"included_hours for plan {self.plan_id!r} must be positive")
        if self.base_price < 0:
            raise ValueError(f"base_price for plan {self.plan_id!r} must not be negative")
        if self.overtime_rate_per_hour < 0:
            raise ValueError(f"overtime_rate_per_hour for plan {self.plan_id!r} must not be negative")
