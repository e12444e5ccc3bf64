from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from lockerhub.core.activity_logger import ActivityLogger
from lockerhub.core.entities.rental import Rental
from lockerhub.core.errors import LifecycleError
from lockerhub.core.pricing import PricingTable, compute_overtime, compute_overtime_fee
from lockerhub.core.repositories.unit_of_work import UnitOfWork
from lockerhub.core.use_cases.rental_transition import Clock, load_rental, require_aware, save_transition, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EvaluateOvertimeResult:
    rental: Rental
    locked_now: bool


def _no_conflict_to_explain(fresh: Rental) -> None:
    return None


class EvaluateOvertimeUseCase:
    """
    Idempotent check-and-lock for one deposited rental.

    The fee is fixed from the hour count seen at first detection; later calls never
    recompute it, however often they run. Rentals that are not deposited, already
    locked, or whose overtime was already paid are left untouched.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        pricing: PricingTable,
        activity: ActivityLogger,
        clock: Clock = utcnow,
    ) -> None:
        self._uow = uow
        self._pricing = pricing
        self._activity = activity
        self._clock = clock

    def execute(self, *, rental_id: str, now: datetime | None = None) -> EvaluateOvertimeResult:
        rental = load_rental(self._uow, rental_id)
        return self.apply(rental, now=now or self._clock())

    def apply(self, rental: Rental, *, now: datetime) -> EvaluateOvertimeResult:
        now = require_aware(now)
        if not rental.can_lock or rental.deadline is None:
            return EvaluateOvertimeResult(rental=rental, locked_now=False)

        overtime = compute_overtime(rental.deadline, now)
        if not overtime.is_overtime:
            return EvaluateOvertimeResult(rental=rental, locked_now=False)

        plan = self._pricing.plan_for(rental.plan_id)
        fee = compute_overtime_fee(plan, overtime.overtime_hours)
        if fee <= 0:
            # Nothing to collect, so nothing to lock for.
            return EvaluateOvertimeResult(rental=rental, locked_now=False)

        expected_status, expected_version = rental.status, rental.version
        rental.mark_locked(overtime_hours=overtime.overtime_hours, overtime_fee=fee)

        try:
            save_transition(
                self._uow,
                rental,
                expected_status=expected_status,
                expected_version=expected_version,
                explain_conflict=_no_conflict_to_explain,
            )
            self._uow.commit()
        except LifecycleError:
            self._uow.rollback()
            fresh = load_rental(self._uow, rental.rental_id)
            if fresh.can_lock:
                raise
            # Someone else locked, paid or completed it first: evaluation is a no-op.
            return EvaluateOvertimeResult(rental=fresh, locked_now=False)

        logger.warning("Rental %s in locker %s locked: %d overtime hour(s), fee %s", rental.rental_id,
                       rental.locker_id, rental.overtime_hours, rental.overtime_fee)
        self._activity.locker_locked(rental)
        return EvaluateOvertimeResult(rental=rental, locked_now=True)
