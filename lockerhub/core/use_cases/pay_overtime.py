from __future__ import annotations

import logging

from lockerhub.core.activity_logger import ActivityLogger
from lockerhub.core.entities.actor import Actor
from lockerhub.core.entities.rental import Rental
from lockerhub.core.errors import LifecycleError, NotLocked
from lockerhub.core.repositories.unit_of_work import UnitOfWork
from lockerhub.core.use_cases.rental_transition import load_rental, require_owner, save_transition

logger = logging.getLogger(__name__)


def _explain_payment_conflict(fresh: Rental) -> None:
    if not fresh.locked:
        raise NotLocked()


class PayOvertimeUseCase:
    """
    Unlocks a rental once the overtime fee is confirmed as paid by the payment provider.

    Payment capture itself happens outside the core. The fee and hour count stay on the
    record as the amount that was charged.
    """

    def __init__(self, *, uow: UnitOfWork, activity: ActivityLogger) -> None:
        self._uow = uow
        self._activity = activity

    def execute(self, *, rental_id: str, actor: Actor) -> Rental:
        rental = load_rental(self._uow, rental_id)
        require_owner(rental, actor)
        expected_status, expected_version = rental.status, rental.version

        rental.mark_overtime_paid()

        try:
            save_transition(
                self._uow,
                rental,
                expected_status=expected_status,
                expected_version=expected_version,
                explain_conflict=_explain_payment_conflict,
            )
            self._uow.commit()
        except LifecycleError:
            self._uow.rollback()
            raise

        logger.info("Overtime fee %s paid for rental %s by %s", rental.overtime_fee, rental.rental_id, actor.user_id)
        self._activity.overtime_payment(rental, actor_id=actor.user_id)
        return rental
