from __future__ import annotations

from datetime import datetime

from lockerhub.core.entities.rental import Rental
from lockerhub.core.repositories.unit_of_work import UnitOfWork
from lockerhub.core.use_cases.evaluate_overtime import EvaluateOvertimeUseCase
from lockerhub.core.use_cases.rental_transition import Clock, load_rental, utcnow


class GetRentalUseCase:
    """
    Pull API for one rental. Overtime is evaluated on every read, so a client polling
    this endpoint sees the same state a background sweep would have produced.
    """

    def __init__(self, *, uow: UnitOfWork, overtime: EvaluateOvertimeUseCase, clock: Clock = utcnow) -> None:
        self._uow = uow
        self._overtime = overtime
        self._clock = clock

    def execute(self, *, rental_id: str, now: datetime | None = None) -> Rental:
        rental = load_rental(self._uow, rental_id)
        return self._overtime.apply(rental, now=now or self._clock()).rental
