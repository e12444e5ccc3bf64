from __future__ import annotations

import logging
from uuid import uuid4

from lockerhub.core.activity_logger import ActivityLogger
from lockerhub.core.entities.rental import Rental, RentalStatus
from lockerhub.core.errors import LifecycleError, LockerNotFound, LockerUnavailable, TransientStoreFailure
from lockerhub.core.pricing import PricingTable
from lockerhub.core.repositories.unit_of_work import UnitOfWork
from lockerhub.core.tokens import CredentialGenerator
from lockerhub.core.use_cases.rental_transition import Clock, utcnow

logger = logging.getLogger(__name__)

MAX_TOKEN_ATTEMPTS = 5


class ReserveLockerUseCase:
    """
    Claims an available locker for a customer and opens a rental in status `reserved`.

    The locker flip and the rental insert commit together or not at all. There is no
    queue: when two customers race for one locker the loser gets LockerUnavailable.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        pricing: PricingTable,
        activity: ActivityLogger,
        handoff_tokens: CredentialGenerator,
        clock: Clock = utcnow,
    ) -> None:
        self._uow = uow
        self._pricing = pricing
        self._activity = activity
        self._handoff_tokens = handoff_tokens
        self._clock = clock

    def execute(self, *, locker_id: str, customer_id: str, plan_id: str) -> Rental:
        plan = self._pricing.plan_for(plan_id)

        locker = self._uow.lockers.get(locker_id)
        if locker is None:
            raise LockerNotFound(f"Locker not found: {locker_id!r}")
        if not locker.available:
            raise LockerUnavailable(f"Locker {locker_id!r} is already reserved")

        try:
            if not self._uow.lockers.claim(locker_id):
                raise LockerUnavailable(f"Locker {locker_id!r} is already reserved")

            rental = Rental(
                rental_id=uuid4().hex,
                locker_id=locker_id,
                customer_id=customer_id,
                plan_id=plan.plan_id,
                handoff_token=self._new_handoff_token(),
                reserved_at=self._clock(),
                price=plan.base_price,
                status=RentalStatus.RESERVED,
            )
            self._uow.rentals.add(rental)
            self._uow.commit()
        except LifecycleError:
            self._uow.rollback()
            raise

        logger.info("Locker %s reserved by %s as rental %s (plan %s)", locker_id, customer_id, rental.rental_id,
                    plan.plan_id)
        self._activity.rental_created(rental)
        return rental

    def _new_handoff_token(self) -> str:
        for _ in range(MAX_TOKEN_ATTEMPTS):
            token = self._handoff_tokens.generate()
            if not self._uow.rentals.handoff_token_exists(token):
                return token
        raise TransientStoreFailure("Could not allocate a unique handoff token, retry the request")
