from __future__ import annotations

from lockerhub.core.entities.activity_log import ActivityLogEntry, LogCategory, LogLevel
from lockerhub.core.repositories.activity_log_repository import ActivityLogRepository

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000


class ListActivityLogsUseCase:
    """
    Admin view of the audit trail, newest first.
    """

    def __init__(self, *, activity_repo: ActivityLogRepository) -> None:
        self._activity_repo = activity_repo

    def execute(
        self,
        *,
        category: LogCategory | None = None,
        level: LogLevel | None = None,
        actor_id: str | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[ActivityLogEntry]:
        limit = max(1, min(limit, MAX_LIMIT))
        return self._activity_repo.list(category=category, level=level, actor_id=actor_id, limit=limit)
