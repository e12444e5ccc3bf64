from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from lockerhub.core.entities.locker import Locker
from lockerhub.core.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProvisionLockersResult:
    created: int
    existing: int


class ProvisionLockersUseCase:
    """
    Registers the locker fleet. Lockers that already exist keep their stored availability,
    so re-running at every start never frees a reserved locker.
    """

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, *, lockers: Iterable[Locker]) -> ProvisionLockersResult:
        created = 0
        existing = 0
        for locker in lockers:
            if self._uow.lockers.add_if_absent(locker):
                created += 1
            else:
                existing += 1
        self._uow.commit()

        logger.info("Locker fleet provisioned: %d created, %d already present", created, existing)
        return ProvisionLockersResult(created=created, existing=existing)
