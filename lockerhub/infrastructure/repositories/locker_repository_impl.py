from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from lockerhub.core.entities.locker import Locker, LockerSize
from lockerhub.core.repositories.locker_repository import LockerRepository
from lockerhub.infrastructure.models.models import LockerModel
from lockerhub.infrastructure.repositories.conditional_update import execute_conditional_update


class LockerRepositoryImpl(LockerRepository):
    """
    SQLAlchemy implementation for the locker inventory.

    Writes are left uncommitted; the unit of work owning the session commits them.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    @staticmethod
    def _to_entity(row: LockerModel) -> Locker:
        return Locker(
            locker_id=row.locker_id,
            size=LockerSize(row.size),
            available=row.available,
            name=row.name,
            location=row.location,
        )

    def get(self, locker_id: str) -> Locker | None:
        row = self._db.get(LockerModel, locker_id)
        if row is None:
            return None
        return self._to_entity(row)

    def list(self, *, available: bool | None = None, size: LockerSize | None = None) -> list[Locker]:
        stmt = select(LockerModel).order_by(LockerModel.locker_id)
        if available is not None:
            stmt = stmt.where(LockerModel.available.is_(available))
        if size is not None:
            stmt = stmt.where(LockerModel.size == size)
        return [self._to_entity(row) for row in self._db.scalars(stmt)]

    def add_if_absent(self, locker: Locker) -> bool:
        if self._db.get(LockerModel, locker.locker_id) is not None:
            return False

        self._db.add(
            LockerModel(
                locker_id=locker.locker_id,
                size=locker.size,
                available=locker.available,
                name=locker.name,
                location=locker.location,
            )
        )
        self._db.flush()
        return True

    def claim(self, locker_id: str) -> bool:
        stmt = (
            update(LockerModel)
            .where(LockerModel.locker_id == locker_id)
            .where(LockerModel.available.is_(True))
            .values(available=False)
        )
        return execute_conditional_update(self._db, stmt) == 1

    def release(self, locker_id: str) -> bool:
        stmt = (
            update(LockerModel)
            .where(LockerModel.locker_id == locker_id)
            .where(LockerModel.available.is_(False))
            .values(available=True)
        )
        return execute_conditional_update(self._db, stmt) == 1
