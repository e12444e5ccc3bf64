from __future__ import annotations

from lockerhub.core.entities.locker import Locker, LockerSize
from lockerhub.core.errors import LockerNotFound
from lockerhub.core.repositories.locker_repository import LockerRepository


class GetLockerUseCase:
    def __init__(self, *, locker_repo: LockerRepository) -> None:
        self._locker_repo = locker_repo

    def execute(self, *, locker_id: str) -> Locker:
        locker = self._locker_repo.get(locker_id)
        if locker is None:
            raise LockerNotFound(f"Locker not found: {locker_id!r}")
        return locker


class ListLockersUseCase:
    def __init__(self, *, locker_repo: LockerRepository) -> None:
        self._locker_repo = locker_repo

    def execute(self, *, available: bool | None = None, size: LockerSize | None = None) -> list[Locker]:
        return self._locker_repo.list(available=available, size=size)
