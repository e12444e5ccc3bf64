from __future__ import annotations

from abc import ABC, abstractmethod

from lockerhub.core.entities.activity_log import ActivityLogEntry, LogCategory, LogLevel


class ActivityLogRepository(ABC):
    """
    Append-only store for the audit trail. Entries are never updated or deleted.
    """

    @abstractmethod
    def append(self, entry: ActivityLogEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    def list(
        self,
        *,
        category: LogCategory | None = None,
        level: LogLevel | None = None,
        actor_id: str | None = None,
        limit: int = 100,
    ) -> list[ActivityLogEntry]:
        """Newest first."""
        raise NotImplementedError
