from __future__ import annotations

from abc import ABC, abstractmethod

from lockerhub.core.entities.locker import Locker, LockerSize


class LockerRepository(ABC):
    @abstractmethod
    def get(self, locker_id: str) -> Locker | None:
        raise NotImplementedError

    @abstractmethod
    def list(self, *, available: bool | None = None, size: LockerSize | None = None) -> list[Locker]:
        raise NotImplementedError

    @abstractmethod
    def add_if_absent(self, locker: Locker) -> bool:
        """Provision a locker. Return True if inserted, False if the id already exists."""
        raise NotImplementedError

    @abstractmethod
    def claim(self, locker_id: str) -> bool:
        """Flip available -> unavailable. Return False if the locker was not available."""
        raise NotImplementedError

    @abstractmethod
    def release(self, locker_id: str) -> bool:
        """Flip unavailable -> available. Return False if the locker was already available."""
        raise NotImplementedError
