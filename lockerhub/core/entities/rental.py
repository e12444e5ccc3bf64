from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from lockerhub.core.errors import (
    AlreadyCompleted,
    AlreadyDeposited,
    InvalidOtp,
    Locked,
    NotLocked,
    NotReady,
)

RENTAL_SCHEMA_VERSION = 1


class RentalStatus(str, Enum):
    RESERVED = "reserved"
    DEPOSITED = "deposited"
    COMPLETED = "completed"


@dataclass(slots=True)
class Rental:
    """
    Aggregate root of one locker rental.

    Status only moves forward: reserved -> deposited -> completed. `locked` is an overlay
    on `deposited` that blocks pickup until the overtime fee is paid.
    """
    rental_id: str
    locker_id: str
    customer_id: str
    plan_id: str
    handoff_token: str
    reserved_at: datetime
    price: Decimal
    status: RentalStatus = RentalStatus.RESERVED
    locked: bool = False
    pickup_otp: str | None = None
    rider_id: str | None = None
    evidence_ref: str | None = None
    deposited_at: datetime | None = None
    deadline: datetime | None = None
    completed_at: datetime | None = None
    overtime_hours: int = 0
    overtime_fee: Decimal = Decimal("0")
    overtime_paid: bool = False
    version: int = 0
    schema_version: int = RENTAL_SCHEMA_VERSION

    @property
    def is_terminal(self) -> bool:
        return self.status is RentalStatus.COMPLETED

    @property
    def can_lock(self) -> bool:
        return self.status is RentalStatus.DEPOSITED and not self.locked and not self.overtime_paid

    def mark_deposited(
        self,
        *,
        pickup_otp: str,
        rider_id: str,
        evidence_ref: str,
        deposited_at: datetime,
        deadline: datetime,
    ) -> None:
        if self.status is RentalStatus.DEPOSITED:
            raise AlreadyDeposited()
        if self.status is RentalStatus.COMPLETED:
            raise AlreadyCompleted()

        self.status = RentalStatus.DEPOSITED
        self.pickup_otp = pickup_otp
        self.rider_id = rider_id
        self.evidence_ref = evidence_ref
        self.deposited_at = deposited_at
        self.deadline = deadline

    def mark_locked(self, *, overtime_hours: int, overtime_fee: Decimal) -> None:
        if not self.can_lock:
            raise ValueError(f"Rental {self.rental_id!r} cannot be locked in its current state")
        if overtime_hours <= 0 or overtime_fee <= 0:
            raise ValueError("A locked rental must carry a positive overtime charge")

        self.locked = True
        self.overtime_hours = overtime_hours
        self.overtime_fee = overtime_fee

    def mark_overtime_paid(self) -> None:
        if not self.locked:
            raise NotLocked()

        # fee and hours stay as the record of what was charged
        self.locked = False
        self.overtime_paid = True

    def mark_completed(self, *, supplied_otp: str, completed_at: datetime) -> None:
        if self.status is RentalStatus.COMPLETED:
            raise NotReady("Parcel has already been picked up")
        if self.status is not RentalStatus.DEPOSITED:
            raise NotReady()
        if self.locked:
            raise Locked()
        if supplied_otp != self.pickup_otp:
            raise InvalidOtp()

        self.status = RentalStatus.COMPLETED
        self.completed_at = completed_at
