from __future__ import annotations

import logging

from lockerhub.core.activity_logger import ActivityLogger
from lockerhub.core.entities.rental import Rental, RentalStatus
from lockerhub.core.errors import AlreadyCompleted, AlreadyDeposited, LifecycleError, TokenNotFound
from lockerhub.core.pricing import PricingTable, compute_deadline
from lockerhub.core.repositories.unit_of_work import UnitOfWork
from lockerhub.core.tokens import CredentialGenerator
from lockerhub.core.use_cases.rental_transition import Clock, save_transition, utcnow

logger = logging.getLogger(__name__)


def _explain_deposit_conflict(fresh: Rental) -> None:
    if fresh.status is RentalStatus.DEPOSITED:
        raise AlreadyDeposited()
    if fresh.status is RentalStatus.COMPLETED:
        raise AlreadyCompleted()


class DepositParcelUseCase:
    """
    Rider drop-off: the rider presents the customer's handoff token, the parcel goes in
    and a pickup OTP is issued. The rental deadline is anchored at this moment.

    `evidence_ref` is an opaque reference to the photo proof; it is stored for audit
    and never interpreted.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        pricing: PricingTable,
        activity: ActivityLogger,
        pickup_otps: CredentialGenerator,
        clock: Clock = utcnow,
    ) -> None:
        self._uow = uow
        self._pricing = pricing
        self._activity = activity
        self._pickup_otps = pickup_otps
        self._clock = clock

    def execute(self, *, handoff_token: str, rider_id: str, evidence_ref: str) -> Rental:
        rental = self._uow.rentals.get_by_handoff_token(handoff_token)
        if rental is None:
            raise TokenNotFound()

        plan = self._pricing.plan_for(rental.plan_id)
        expected_status, expected_version = rental.status, rental.version

        now = self._clock()
        rental.mark_deposited(
            pickup_otp=self._pickup_otps.generate(),
            rider_id=rider_id,
            evidence_ref=evidence_ref,
            deposited_at=now,
            deadline=compute_deadline(now, plan),
        )

        try:
            save_transition(
                self._uow,
                rental,
                expected_status=expected_status,
                expected_version=expected_version,
                explain_conflict=_explain_deposit_conflict,
            )
            self._uow.commit()
        except LifecycleError:
            self._uow.rollback()
            raise

        logger.info("Rider %s dropped off rental %s in locker %s, deadline %s", rider_id, rental.rental_id,
                    rental.locker_id, rental.deadline.isoformat())
        self._activity.rider_dropoff(rental)
        return rental
