from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LockerSize(str, Enum):
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"


@dataclass(slots=True)
class Locker:
    locker_id: str
    size: LockerSize
    available: bool = True
    name: str | None = None
    location: str | None = None
