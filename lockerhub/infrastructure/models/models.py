from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lockerhub.core.entities.activity_log import LogCategory, LogLevel
from lockerhub.core.entities.locker import LockerSize
from lockerhub.core.entities.rental import RentalStatus
from lockerhub.infrastructure.database import Base


class LockerModel(Base):
    __tablename__ = "lockers"

    locker_id: Mapped[str] = mapped_column(String, primary_key=True)
    size: Mapped[LockerSize] = mapped_column(Enum(LockerSize), nullable=False)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)

    rentals = relationship("RentalModel", back_populates="locker")


class RentalModel(Base):
    __tablename__ = "rentals"

    rental_id: Mapped[str] = mapped_column(String, primary_key=True)
    locker_id: Mapped[str] = mapped_column(ForeignKey("lockers.locker_id"), nullable=False, index=True)
    customer_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    plan_id: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[RentalStatus] = mapped_column(Enum(RentalStatus), nullable=False, index=True)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    handoff_token: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    pickup_otp: Mapped[str | None] = mapped_column(String, nullable=True)
    rider_id: Mapped[str | None] = mapped_column(String, nullable=True)
    evidence_ref: Mapped[str | None] = mapped_column(String, nullable=True)

    reserved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deposited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    overtime_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    overtime_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False)

    locker = relationship("LockerModel", back_populates="rentals")


class ActivityLogModel(Base):
    __tablename__ = "activity_logs"
    __table_args__ = (Index("ix_activity_logs_created_at", "created_at"),)

    entry_id: Mapped[str] = mapped_column(String, primary_key=True)
    actor_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    category: Mapped[LogCategory] = mapped_column(Enum(LogCategory), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    level: Mapped[LogLevel] = mapped_column(Enum(LogLevel), nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
