from __future__ import annotations

import logging
from datetime import datetime

from lockerhub.core.activity_logger import ActivityLogger
from lockerhub.core.entities.actor import Actor
from lockerhub.core.entities.rental import Rental, RentalStatus
from lockerhub.core.errors import ConcurrentUpdate, LifecycleError, Locked, NotReady
from lockerhub.core.repositories.unit_of_work import UnitOfWork
from lockerhub.core.use_cases.evaluate_overtime import EvaluateOvertimeUseCase
from lockerhub.core.use_cases.rental_transition import (
    Clock,
    load_rental,
    require_aware,
    require_owner,
    save_transition,
    utcnow,
)

logger = logging.getLogger(__name__)


def _explain_pickup_conflict(fresh: Rental) -> None:
    if fresh.status is RentalStatus.COMPLETED:
        raise NotReady("Parcel has already been picked up")
    if fresh.locked:
        raise Locked()


class CompletePickupUseCase:
    """
    Customer pickup with the OTP issued at drop-off. Completes the rental and hands the
    locker back to the inventory.

    Overtime is evaluated at `now` first, so a late customer is locked out even when no
    monitor sweep has run since the deadline passed.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        activity: ActivityLogger,
        overtime: EvaluateOvertimeUseCase,
        clock: Clock = utcnow,
    ) -> None:
        self._uow = uow
        self._activity = activity
        self._overtime = overtime
        self._clock = clock

    def execute(self, *, rental_id: str, supplied_otp: str, actor: Actor, now: datetime | None = None) -> Rental:
        now = require_aware(now or self._clock())
        rental = load_rental(self._uow, rental_id)
        require_owner(rental, actor)

        if rental.status is RentalStatus.DEPOSITED:
            rental = self._overtime.apply(rental, now=now).rental

        old_status = rental.status
        expected_version = rental.version
        rental.mark_completed(supplied_otp=supplied_otp, completed_at=now)

        try:
            # locker before rental
            if not self._uow.lockers.release(rental.locker_id):
                logger.error("Locker %s was already available while rental %s was open", rental.locker_id,
                             rental.rental_id)
                raise ConcurrentUpdate(f"Locker {rental.locker_id!r} could not be released, retry the request")
            save_transition(
                self._uow,
                rental,
                expected_status=old_status,
                expected_version=expected_version,
                explain_conflict=_explain_pickup_conflict,
            )
            self._uow.commit()
        except LifecycleError:
            self._uow.rollback()
            raise

        logger.info("Rental %s completed, locker %s released", rental.rental_id, rental.locker_id)
        self._activity.status_updated(rental, actor_id=actor.user_id, old_status=old_status)
        return rental
