from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterator

# The app-level engine is built at import time; keep it out of the working directory.
os.environ.setdefault(
    "LOCKERHUB_DATABASE_URL",
    f"sqlite+pysqlite:///{Path(tempfile.mkdtemp(prefix='lockerhub-tests-')) / 'lockerhub.db'}",
)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lockerhub.core.activity_logger import ActivityLogger
from lockerhub.core.entities.locker import Locker, LockerSize
from lockerhub.core.entities.rental_plan import RentalPlan
from lockerhub.core.pricing import PricingTable
from lockerhub.core.tokens import CredentialGenerator, CredentialPolicy
from lockerhub.infrastructure.database import Base, make_engine
from lockerhub.infrastructure.models import models  # noqa: F401
from lockerhub.infrastructure.repositories.activity_log_repository_impl import ActivityLogRepositoryImpl
from lockerhub.infrastructure.repositories.unit_of_work_impl import SqlAlchemyUnitOfWork

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable wall clock for time-dependent flows."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> datetime:
        self.now = self.now + delta
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine)
    finally:
        engine.dispose()


@pytest.fixture()
def file_session_factory(tmp_path: Path) -> Iterator[sessionmaker]:
    """Session factory over a file-backed store, built the way the app builds its engine."""
    engine = make_engine(f"sqlite+pysqlite:///{tmp_path / 'store.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine)
    finally:
        engine.dispose()


@pytest.fixture()
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def pricing() -> PricingTable:
    return PricingTable(
        [
            RentalPlan(
                plan_id="3h",
                label="3 hours",
                included_hours=3,
                base_price=Decimal("30"),
                overtime_rate_per_hour=Decimal("15"),
            ),
            RentalPlan(
                plan_id="1d",
                label="1 day",
                included_hours=24,
                base_price=Decimal("120"),
                overtime_rate_per_hour=Decimal("8"),
            ),
            RentalPlan(
                plan_id="free-overtime",
                label="No overtime charge",
                included_hours=1,
                base_price=Decimal("10"),
                overtime_rate_per_hour=Decimal("0"),
            ),
        ]
    )


@pytest.fixture()
def credentials() -> CredentialPolicy:
    return CredentialPolicy(
        handoff_token=CredentialGenerator(),
        pickup_otp=CredentialGenerator(alphabet="0123456789"),
    )


@pytest.fixture()
def uow(db: Session) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(db)


@pytest.fixture()
def activity(db: Session, clock: FakeClock) -> ActivityLogger:
    return ActivityLogger(ActivityLogRepositoryImpl(db), clock=clock)


@pytest.fixture()
def lockers(uow: SqlAlchemyUnitOfWork) -> list[Locker]:
    fleet = [
        Locker(locker_id="A-01", size=LockerSize.S),
        Locker(locker_id="A-02", size=LockerSize.S),
        Locker(locker_id="B-01", size=LockerSize.M),
        Locker(locker_id="X-01", size=LockerSize.XL),
    ]
    for locker in fleet:
        uow.lockers.add_if_absent(locker)
    uow.commit()
    return fleet


@pytest.fixture()
def t0() -> datetime:
    return T0
