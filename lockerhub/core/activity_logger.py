from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable
from uuid import uuid4

from lockerhub.core.entities.activity_log import ActivityLogEntry, LogCategory, LogLevel
from lockerhub.core.entities.actor import SYSTEM_ACTOR_ID
from lockerhub.core.entities.rental import Rental, RentalStatus
from lockerhub.core.repositories.activity_log_repository import ActivityLogRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _money(value: Decimal) -> str:
    return str(value)


class ActivityLogger:
    """
    Fire-and-forget writer for the audit trail.

    A failed write is reported to the process log and swallowed: the state transition
    being described has already committed and must not be reported as failed.
    """

    def __init__(self, repo: ActivityLogRepository, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._repo = repo
        self._clock = clock

    def log(
        self,
        *,
        actor_id: str,
        category: LogCategory,
        action: str,
        level: LogLevel = LogLevel.INFO,
        details: dict[str, Any] | None = None,
    ) -> ActivityLogEntry | None:
        entry = ActivityLogEntry(
            entry_id=uuid4().hex,
            actor_id=actor_id,
            category=category,
            action=action,
            level=level,
            created_at=self._clock(),
            details=details or {},
        )
        try:
            self._repo.append(entry)
        except Exception:
            logger.exception("Failed to write activity log %s/%s for actor %s", category.value, action, actor_id)
            return None
        return entry

    # -----------------------------
    # One helper per core operation
    # -----------------------------
    def rental_created(self, rental: Rental) -> ActivityLogEntry | None:
        return self.log(
            actor_id=rental.customer_id,
            category=LogCategory.REQUEST,
            action="create_request",
            level=LogLevel.SUCCESS,
            details={
                "rental_id": rental.rental_id,
                "locker_id": rental.locker_id,
                "plan_id": rental.plan_id,
                "amount": _money(rental.price),
            },
        )

    def rider_dropoff(self, rental: Rental) -> ActivityLogEntry | None:
        return self.log(
            actor_id=rental.rider_id or SYSTEM_ACTOR_ID,
            category=LogCategory.RIDER,
            action="dropoff_completed",
            level=LogLevel.SUCCESS,
            details={
                "rental_id": rental.rental_id,
                "locker_id": rental.locker_id,
                "rider_id": rental.rider_id,
                "evidence_ref": rental.evidence_ref,
            },
        )

    def locker_locked(self, rental: Rental) -> ActivityLogEntry | None:
        return self.log(
            actor_id=SYSTEM_ACTOR_ID,
            category=LogCategory.LOCKER,
            action="auto_locked",
            level=LogLevel.WARNING,
            details={
                "rental_id": rental.rental_id,
                "locker_id": rental.locker_id,
                "overtime_hours": rental.overtime_hours,
                "amount": _money(rental.overtime_fee),
            },
        )

    def overtime_payment(self, rental: Rental, *, actor_id: str) -> ActivityLogEntry | None:
        return self.log(
            actor_id=actor_id,
            category=LogCategory.PAYMENT,
            action="overtime_payment",
            level=LogLevel.SUCCESS,
            details={
                "rental_id": rental.rental_id,
                "locker_id": rental.locker_id,
                "amount": _money(rental.overtime_fee),
            },
        )

    def status_updated(
        self,
        rental: Rental,
        *,
        actor_id: str,
        old_status: RentalStatus,
    ) -> ActivityLogEntry | None:
        return self.log(
            actor_id=actor_id,
            category=LogCategory.REQUEST,
            action="update_status",
            level=LogLevel.INFO,
            details={
                "rental_id": rental.rental_id,
                "locker_id": rental.locker_id,
                "old_status": old_status.value,
                "new_status": rental.status.value,
            },
        )
