from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lockerhub.core.entities.activity_log import ActivityLogEntry, LogCategory, LogLevel
from lockerhub.core.repositories.activity_log_repository import ActivityLogRepository
from lockerhub.infrastructure.models.models import ActivityLogModel
from lockerhub.infrastructure.repositories.conditional_update import as_utc


class ActivityLogRepositoryImpl(ActivityLogRepository):
    """
    SQLAlchemy implementation of the audit trail.

    Each append commits on its own, after the transition it describes has committed.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def append(self, entry: ActivityLogEntry) -> None:
        self._db.add(
            ActivityLogModel(
                entry_id=entry.entry_id,
                actor_id=entry.actor_id,
                category=entry.category,
                action=entry.action,
                level=entry.level,
                details=dict(entry.details),
                created_at=entry.created_at,
            )
        )
        try:
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            raise

    def list(
        self,
        *,
        category: LogCategory | None = None,
        level: LogLevel | None = None,
        actor_id: str | None = None,
        limit: int = 100,
    ) -> list[ActivityLogEntry]:
        stmt = select(ActivityLogModel).order_by(ActivityLogModel.created_at.desc()).limit(limit)
        if category is not None:
            stmt = stmt.where(ActivityLogModel.category == category)
        if level is not None:
            stmt = stmt.where(ActivityLogModel.level == level)
        if actor_id is not None:
            stmt = stmt.where(ActivityLogModel.actor_id == actor_id)

        return [
            ActivityLogEntry(
                entry_id=row.entry_id,
                actor_id=row.actor_id,
                category=LogCategory(row.category),
                action=row.action,
                level=LogLevel(row.level),
                created_at=as_utc(row.created_at),
                details=dict(row.details or {}),
            )
            for row in self._db.scalars(stmt)
        ]
