from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Size(Enum):
    S = 'S'
    M = 'M'
    L = 'L'
    XL = 'XL'


class Status(Enum):
    reserved = 'reserved'
    deposited = 'deposited'
    completed = 'completed'


class Category(Enum):
    auth = 'auth'
    request = 'request'
    locker = 'locker'
    payment = 'payment'
    rider = 'rider'
    admin = 'admin'
    system = 'system'


class Level(Enum):
    info = 'info'
    warning = 'warning'
    error = 'error'
    success = 'success'


class RentalPlan(BaseModel):
    plan_id: str
    label: str
    included_hours: int
    base_price: Decimal
    overtime_rate_per_hour: Decimal


class Locker(BaseModel):
    locker_id: str
    size: Size
    available: bool
    name: str | None = None
    location: str | None = None


class ReserveRequest(BaseModel):
    locker_id: str = Field(min_length=1)
    plan_id: str = Field(min_length=1)


class DepositRequest(BaseModel):
    handoff_token: str = Field(min_length=1)
    evidence_ref: str = Field(min_length=1, description="Reference to the drop-off photo proof")


class PickupRequest(BaseModel):
    otp: str = Field(min_length=1)


class RentalRecord(BaseModel):
    rental_id: str
    locker_id: str
    customer_id: str
    plan_id: str
    status: Status
    locked: bool
    price: Decimal
    handoff_token: str | None
    pickup_otp: str | None
    rider_id: str | None
    evidence_ref: str | None
    reserved_at: datetime
    deposited_at: datetime | None
    deadline: datetime | None
    completed_at: datetime | None
    overtime_hours: int
    overtime_fee: Decimal
    overtime_paid: bool


class ActivityLog(BaseModel):
    entry_id: str
    actor_id: str
    category: Category
    action: str
    level: Level
    details: dict[str, Any]
    created_at: datetime
