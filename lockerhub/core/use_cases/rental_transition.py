from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from lockerhub.core.entities.actor import Actor
from lockerhub.core.entities.rental import Rental, RentalStatus
from lockerhub.core.errors import ConcurrentUpdate, NotRentalOwner, RentalNotFound
from lockerhub.core.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_aware(now: datetime) -> datetime:
    """Stored times are UTC-aware; a naive instant cannot be compared against them."""
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError(f"Expected a timezone-aware datetime, got {now!r}")
    return now


def load_rental(uow: UnitOfWork, rental_id: str) -> Rental:
    rental = uow.rentals.get(rental_id)
    if rental is None:
        raise RentalNotFound(f"Rental not found: {rental_id!r}")
    return rental


def require_owner(rental: Rental, actor: Actor) -> None:
    if not actor.may_act_for(rental.customer_id):
        logger.warning("%s %s refused on rental %s owned by %s", actor.role.value, actor.user_id,
                       rental.rental_id, rental.customer_id)
        raise NotRentalOwner()


def save_transition(
    uow: UnitOfWork,
    rental: Rental,
    *,
    expected_status: RentalStatus,
    expected_version: int,
    explain_conflict: Callable[[Rental], None],
) -> None:
    """
    Conditionally persist a transition already applied to `rental`, without committing.

    If the stored record moved on in the meantime, the transaction is rolled back and
    `explain_conflict` gets the fresh record so it can raise the precise precondition
    error. When it raises nothing the caller gets ConcurrentUpdate and may retry.
    """
    if uow.rentals.update_if_unchanged(rental, expected_status=expected_status, expected_version=expected_version):
        return

    uow.rollback()
    logger.info("Rental %s changed during transition from %s, re-checking", rental.rental_id, expected_status.value)

    fresh = load_rental(uow, rental.rental_id)
    explain_conflict(fresh)
    raise ConcurrentUpdate()
