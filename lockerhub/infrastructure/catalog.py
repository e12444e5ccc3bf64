from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from lockerhub.core.entities.locker import Locker, LockerSize
from lockerhub.core.entities.rental_plan import RentalPlan


@dataclass(frozen=True, slots=True)
class Catalog:
    plans: list[RentalPlan]
    lockers: list[Locker]


def _require_str(record: dict, key: str) -> str:
    value = record.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"catalog entry {record!r}: {key!r} must be a non-empty string")
    return value


def _require_money(record: dict, key: str) -> Decimal:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f"catalog entry {record!r}: {key!r} must be a string or int amount")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"catalog entry {record!r}: {key!r} is not a valid amount") from e


def _plan_from_record(record: dict[str, Any]) -> RentalPlan:
    return RentalPlan(
        plan_id=_require_str(record, "id"),
        label=_require_str(record, "label"),
        included_hours=record.get("included_hours"),
        base_price=_require_money(record, "base_price"),
        overtime_rate_per_hour=_require_money(record, "overtime_rate_per_hour"),
    )


def _locker_from_record(record: dict[str, Any]) -> Locker:
    return Locker(
        locker_id=_require_str(record, "id"),
        size=LockerSize(_require_str(record, "size")),
        available=True,
        name=record.get("name"),
        location=record.get("location"),
    )


def load_catalog(path: Path) -> Catalog:
    """
    Read rental plans and the locker fleet from a YAML catalog file.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}

    if not isinstance(doc, dict):
        raise ValueError(f"catalog {path} must be a mapping with 'plans' and 'lockers'")

    plans = [_plan_from_record(r) for r in doc.get("plans") or []]
    lockers = [_locker_from_record(r) for r in doc.get("lockers") or []]
    return Catalog(plans=plans, lockers=lockers)
