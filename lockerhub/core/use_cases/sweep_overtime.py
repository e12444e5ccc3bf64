from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from lockerhub.core.errors import ConcurrentUpdate
from lockerhub.core.repositories.unit_of_work import UnitOfWork
from lockerhub.core.use_cases.evaluate_overtime import EvaluateOvertimeUseCase

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SweepOvertimeResult:
    evaluated: int
    locked: int


class SweepOvertimeUseCase:
    """
    One pass of the overtime monitor over every rental that could still be locked.
    """

    def __init__(self, *, uow: UnitOfWork, overtime: EvaluateOvertimeUseCase) -> None:
        self._uow = uow
        self._overtime = overtime

    def execute(self, *, now: datetime) -> SweepOvertimeResult:
        evaluated = 0
        locked = 0
        for rental in self._uow.rentals.list_lockable():
            evaluated += 1
            try:
                result = self._overtime.apply(rental, now=now)
            except ConcurrentUpdate:
                logger.warning("Rental %s changed during overtime sweep, deferring to next sweep", rental.rental_id)
                continue
            if result.locked_now:
                locked += 1

        return SweepOvertimeResult(evaluated=evaluated, locked=locked)
