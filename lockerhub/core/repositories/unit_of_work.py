from __future__ import annotations

from abc import ABC, abstractmethod

from lockerhub.core.repositories.locker_repository import LockerRepository
from lockerhub.core.repositories.rental_repository import RentalRepository


class UnitOfWork(ABC):
    """
    One storage transaction spanning the locker and rental repositories.

    Writes made through `lockers` and `rentals` become visible only on `commit()`;
    `rollback()` discards all of them.
    """
    lockers: LockerRepository
    rentals: RentalRepository

    @abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError
