from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class LogCategory(str, Enum):
    AUTH = "auth"
    REQUEST = "request"
    LOCKER = "locker"
    PAYMENT = "payment"
    RIDER = "rider"
    ADMIN = "admin"
    SYSTEM = "system"


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


@dataclass(frozen=True, slots=True)
class ActivityLogEntry:
    entry_id: str
    actor_id: str
    category: LogCategory
    action: str
    level: LogLevel
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)
