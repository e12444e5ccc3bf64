from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from lockerhub.core.errors import TransientStoreFailure
from lockerhub.core.repositories.unit_of_work import UnitOfWork
from lockerhub.infrastructure.repositories.locker_repository_impl import LockerRepositoryImpl
from lockerhub.infrastructure.repositories.rental_repository_impl import RentalRepositoryImpl

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Locker and rental repositories sharing one SQLAlchemy session and transaction."""

    def __init__(self, db: Session) -> None:
        self._db = db
        self.lockers = LockerRepositoryImpl(db)
        self.rentals = RentalRepositoryImpl(db)

    def commit(self) -> None:
        try:
            self._db.commit()
        except (IntegrityError, OperationalError) as e:
            self._db.rollback()
            logger.warning("Store rejected commit, transaction rolled back: %s", e.__class__.__name__)
            raise TransientStoreFailure() from e

    def rollback(self) -> None:
        self._db.rollback()
