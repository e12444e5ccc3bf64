from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Iterable

from sqlalchemy.orm import Session

from lockerhub.core.activity_logger import ActivityLogger
from lockerhub.core.entities.activity_log import ActivityLogEntry, LogCategory, LogLevel
from lockerhub.core.entities.actor import Actor
from lockerhub.core.entities.locker import Locker as CoreLocker
from lockerhub.core.entities.locker import LockerSize
from lockerhub.core.entities.rental import Rental, RentalStatus
from lockerhub.core.entities.rental_plan import RentalPlan as CoreRentalPlan
from lockerhub.core.pricing import PricingTable
from lockerhub.core.tokens import CredentialGenerator, CredentialPolicy
from lockerhub.core.use_cases.complete_pickup import CompletePickupUseCase
from lockerhub.core.use_cases.deposit_parcel import DepositParcelUseCase
from lockerhub.core.use_cases.evaluate_overtime import EvaluateOvertimeUseCase
from lockerhub.core.use_cases.get_locker import GetLockerUseCase, ListLockersUseCase
from lockerhub.core.use_cases.get_rental import GetRentalUseCase
from lockerhub.core.use_cases.list_activity_logs import ListActivityLogsUseCase
from lockerhub.core.use_cases.list_rentals import ListCustomerRentalsUseCase
from lockerhub.core.use_cases.pay_overtime import PayOvertimeUseCase
from lockerhub.core.use_cases.provision_lockers import ProvisionLockersUseCase, ProvisionLockersResult
from lockerhub.core.use_cases.rental_transition import Clock
from lockerhub.core.use_cases.reserve_locker import ReserveLockerUseCase
from lockerhub.core.use_cases.sweep_overtime import SweepOvertimeResult, SweepOvertimeUseCase
from lockerhub.infrastructure.catalog import Catalog, load_catalog
from lockerhub.infrastructure.repositories.activity_log_repository_impl import ActivityLogRepositoryImpl
from lockerhub.infrastructure.repositories.locker_repository_impl import LockerRepositoryImpl
from lockerhub.infrastructure.repositories.unit_of_work_impl import SqlAlchemyUnitOfWork
from lockerhub.schemas.models import (
    ActivityLog,
    DepositRequest,
    Locker,
    PickupRequest,
    RentalPlan,
    RentalRecord,
    ReserveRequest,
)


@lru_cache(maxsize=1)
def default_catalog() -> Catalog:
    from lockerhub.infrastructure.config import settings
    return load_catalog(settings.catalog_path)


@lru_cache(maxsize=1)
def default_pricing_table() -> PricingTable:
    return PricingTable(default_catalog().plans)


@lru_cache(maxsize=1)
def default_credential_policy() -> CredentialPolicy:
    from lockerhub.infrastructure.config import settings
    return CredentialPolicy(
        handoff_token=CredentialGenerator(settings.handoff_token_alphabet, settings.handoff_token_length),
        pickup_otp=CredentialGenerator(settings.pickup_otp_alphabet, settings.pickup_otp_length),
    )


# -----------------------------
# Entity -> API schema
# -----------------------------
def _to_rental_record(rental: Rental, viewer: Actor) -> RentalRecord:
    # handoff token and pickup OTP are bearer credentials: only the owner (or an admin) sees them
    reveal = viewer.may_act_for(rental.customer_id)
    return RentalRecord(
        rental_id=rental.rental_id,
        locker_id=rental.locker_id,
        customer_id=rental.customer_id,
        plan_id=rental.plan_id,
        status=rental.status.value,
        locked=rental.locked,
        price=rental.price,
        handoff_token=rental.handoff_token if reveal else None,
        pickup_otp=rental.pickup_otp if reveal else None,
        rider_id=rental.rider_id,
        evidence_ref=rental.evidence_ref,
        reserved_at=rental.reserved_at,
        deposited_at=rental.deposited_at,
        deadline=rental.deadline,
        completed_at=rental.completed_at,
        overtime_hours=rental.overtime_hours,
        overtime_fee=rental.overtime_fee,
        overtime_paid=rental.overtime_paid,
    )


def _to_locker(locker: CoreLocker) -> Locker:
    return Locker(
        locker_id=locker.locker_id,
        size=locker.size.value,
        available=locker.available,
        name=locker.name,
        location=locker.location,
    )


def _to_plan(plan: CoreRentalPlan) -> RentalPlan:
    return RentalPlan(
        plan_id=plan.plan_id,
        label=plan.label,
        included_hours=plan.included_hours,
        base_price=plan.base_price,
        overtime_rate_per_hour=plan.overtime_rate_per_hour,
    )


def _to_activity_log(entry: ActivityLogEntry) -> ActivityLog:
    return ActivityLog(
        entry_id=entry.entry_id,
        actor_id=entry.actor_id,
        category=entry.category.value,
        action=entry.action,
        level=entry.level.value,
        details=entry.details,
        created_at=entry.created_at,
    )


def _activity_logger(db: Session, clock: Clock) -> ActivityLogger:
    return ActivityLogger(ActivityLogRepositoryImpl(db), clock=clock)


def _overtime_use_case(uow: SqlAlchemyUnitOfWork, db: Session, pricing: PricingTable,
                       clock: Clock) -> EvaluateOvertimeUseCase:
    return EvaluateOvertimeUseCase(uow=uow, pricing=pricing, activity=_activity_logger(db, clock), clock=clock)


# -----------------------------
# Read side
# -----------------------------
def list_plans_service(pricing: PricingTable) -> list[RentalPlan]:
    return [_to_plan(plan) for plan in pricing.plans()]


def list_lockers_service(available: bool | None, size: str | None, db: Session) -> list[Locker]:
    use_case = ListLockersUseCase(locker_repo=LockerRepositoryImpl(db))
    lockers = use_case.execute(available=available, size=LockerSize(size) if size is not None else None)
    return [_to_locker(locker) for locker in lockers]


def get_locker_service(locker_id: str, db: Session) -> Locker:
    use_case = GetLockerUseCase(locker_repo=LockerRepositoryImpl(db))
    return _to_locker(use_case.execute(locker_id=locker_id))


def get_rental_service(rental_id: str, actor: Actor, db: Session, *, pricing: PricingTable,
                       clock: Clock) -> RentalRecord:
    uow = SqlAlchemyUnitOfWork(db)
    use_case = GetRentalUseCase(uow=uow, overtime=_overtime_use_case(uow, db, pricing, clock), clock=clock)
    return _to_rental_record(use_case.execute(rental_id=rental_id), actor)


def list_customer_rentals_service(actor: Actor, status: str | None, db: Session) -> list[RentalRecord]:
    use_case = ListCustomerRentalsUseCase(uow=SqlAlchemyUnitOfWork(db))
    rentals = use_case.execute(
        customer_id=actor.user_id,
        status=RentalStatus(status) if status is not None else None,
    )
    return [_to_rental_record(rental, actor) for rental in rentals]


def list_activity_logs_service(
    category: str | None,
    level: str | None,
    actor_id: str | None,
    limit: int,
    db: Session,
) -> list[ActivityLog]:
    use_case = ListActivityLogsUseCase(activity_repo=ActivityLogRepositoryImpl(db))
    entries = use_case.execute(
        category=LogCategory(category) if category is not None else None,
        level=LogLevel(level) if level is not None else None,
        actor_id=actor_id,
        limit=limit,
    )
    return [_to_activity_log(entry) for entry in entries]


# -----------------------------
# Lifecycle transitions
# -----------------------------
def reserve_locker_service(
    body: ReserveRequest,
    actor: Actor,
    db: Session,
    *,
    pricing: PricingTable,
    credentials: CredentialPolicy,
    clock: Clock,
) -> RentalRecord:
    use_case = ReserveLockerUseCase(
        uow=SqlAlchemyUnitOfWork(db),
        pricing=pricing,
        activity=_activity_logger(db, clock),
        handoff_tokens=credentials.handoff_token,
        clock=clock,
    )
    rental = use_case.execute(locker_id=body.locker_id, customer_id=actor.user_id, plan_id=body.plan_id)
    return _to_rental_record(rental, actor)


def deposit_parcel_service(
    body: DepositRequest,
    actor: Actor,
    db: Session,
    *,
    pricing: PricingTable,
    credentials: CredentialPolicy,
    clock: Clock,
) -> RentalRecord:
    use_case = DepositParcelUseCase(
        uow=SqlAlchemyUnitOfWork(db),
        pricing=pricing,
        activity=_activity_logger(db, clock),
        pickup_otps=credentials.pickup_otp,
        clock=clock,
    )
    rental = use_case.execute(handoff_token=body.handoff_token, rider_id=actor.user_id,
                              evidence_ref=body.evidence_ref)
    return _to_rental_record(rental, actor)


def evaluate_overtime_service(rental_id: str, actor: Actor, db: Session, *, pricing: PricingTable,
                              clock: Clock) -> RentalRecord:
    uow = SqlAlchemyUnitOfWork(db)
    result = _overtime_use_case(uow, db, pricing, clock).execute(rental_id=rental_id)
    return _to_rental_record(result.rental, actor)


def pay_overtime_service(rental_id: str, actor: Actor, db: Session, *, clock: Clock) -> RentalRecord:
    use_case = PayOvertimeUseCase(uow=SqlAlchemyUnitOfWork(db), activity=_activity_logger(db, clock))
    return _to_rental_record(use_case.execute(rental_id=rental_id, actor=actor), actor)


def complete_pickup_service(
    rental_id: str,
    body: PickupRequest,
    actor: Actor,
    db: Session,
    *,
    pricing: PricingTable,
    clock: Clock,
) -> RentalRecord:
    uow = SqlAlchemyUnitOfWork(db)
    use_case = CompletePickupUseCase(
        uow=uow,
        activity=_activity_logger(db, clock),
        overtime=_overtime_use_case(uow, db, pricing, clock),
        clock=clock,
    )
    rental = use_case.execute(rental_id=rental_id, supplied_otp=body.otp, actor=actor)
    return _to_rental_record(rental, actor)


# -----------------------------
# Background / startup
# -----------------------------
def sweep_overtime_service(db: Session, *, pricing: PricingTable, now: datetime, clock: Clock) -> SweepOvertimeResult:
    uow = SqlAlchemyUnitOfWork(db)
    use_case = SweepOvertimeUseCase(uow=uow, overtime=_overtime_use_case(uow, db, pricing, clock))
    return use_case.execute(now=now)


def provision_lockers_service(lockers: Iterable[CoreLocker], db: Session) -> ProvisionLockersResult:
    return ProvisionLockersUseCase(uow=SqlAlchemyUnitOfWork(db)).execute(lockers=lockers)
