from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from lockerhub.core.errors import TransientStoreFailure


def execute_conditional_update(db: Session, stmt: Update) -> int:
    """Run a guarded UPDATE and return the number of rows it matched."""
    try:
        result = db.execute(stmt)
    except OperationalError as e:
        db.rollback()
        raise TransientStoreFailure() from e
    return result.rowcount


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on the way back; stored values are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
