from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from lockerhub.core.entities.actor import Actor, Role
from lockerhub.core.errors import (
    Forbidden,
    LifecycleError,
    NotFoundError,
    PreconditionFailed,
    TransientStoreFailure,
    ValidationFailed,
)
from lockerhub.core.pricing import PricingTable
from lockerhub.core.tokens import CredentialPolicy
from lockerhub.core.use_cases.rental_transition import Clock
from lockerhub.presentation.dependencies import (
    get_actor,
    get_clock,
    get_credentials,
    get_db,
    get_pricing,
    require_roles,
)
from lockerhub.schemas.models import (
    ActivityLog,
    Category,
    DepositRequest,
    Level,
    Locker,
    PickupRequest,
    RentalPlan,
    RentalRecord,
    ReserveRequest,
    Size,
    Status,
)
from lockerhub.services.lockerhub_service import (
    complete_pickup_service,
    deposit_parcel_service,
    evaluate_overtime_service,
    get_locker_service,
    get_rental_service,
    list_activity_logs_service,
    list_customer_rentals_service,
    list_lockers_service,
    list_plans_service,
    pay_overtime_service,
    reserve_locker_service,
)

router = APIRouter()

customer_only = require_roles(Role.CUSTOMER, Role.ADMIN)
rider_only = require_roles(Role.RIDER, Role.ADMIN)
admin_only = require_roles(Role.ADMIN)


def _http_error(e: LifecycleError) -> HTTPException:
    """
    Map the core error taxonomy onto HTTP:
      - 403 acting on another customer's rental
      - 404 not found
      - 409 precondition failed (state/flag mismatch)
      - 422 validation failed
      - 503 transient store failure (safe to retry)
    """
    if isinstance(e, Forbidden):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, PreconditionFailed):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValidationFailed):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, TransientStoreFailure):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.get("/plans", response_model=list[RentalPlan])
def get_plans(pricing: PricingTable = Depends(get_pricing)) -> list[RentalPlan]:
    """
    List rental plans
    """
    return list_plans_service(pricing)


@router.get("/lockers", response_model=list[Locker])
def get_lockers(
    available: bool | None = None,
    size: Size | None = None,
    db: Session = Depends(get_db),
) -> list[Locker]:
    """
    List lockers, optionally only available ones or one size
    """
    return list_lockers_service(available, size.value if size is not None else None, db)


@router.get("/lockers/{locker_id}", response_model=Locker)
def get_lockers_locker_id(locker_id: str, db: Session = Depends(get_db)) -> Locker:
    """
    Get locker
    """
    try:
        return get_locker_service(locker_id, db)
    except LifecycleError as e:
        raise _http_error(e)


@router.post("/rentals", response_model=RentalRecord, status_code=201)
def post_rentals(
    body: ReserveRequest,
    actor: Actor = Depends(customer_only),
    db: Session = Depends(get_db),
    pricing: PricingTable = Depends(get_pricing),
    credentials: CredentialPolicy = Depends(get_credentials),
    clock: Clock = Depends(get_clock),
) -> RentalRecord:
    """
    Reserve a locker

    Returns:
      - 201 with the rental and its rider handoff token
      - 404 unknown locker
      - 409 locker already reserved
      - 422 unknown plan
    """
    try:
        return reserve_locker_service(body, actor, db, pricing=pricing, credentials=credentials, clock=clock)
    except LifecycleError as e:
        raise _http_error(e)


@router.post("/rentals/deposit", response_model=RentalRecord)
def post_rentals_deposit(
    body: DepositRequest,
    actor: Actor = Depends(rider_only),
    db: Session = Depends(get_db),
    pricing: PricingTable = Depends(get_pricing),
    credentials: CredentialPolicy = Depends(get_credentials),
    clock: Clock = Depends(get_clock),
) -> RentalRecord:
    """
    Rider drop-off with the customer's handoff token

    Returns:
      - 200 with the rental and its pickup OTP
      - 404 unknown token
      - 409 already dropped off or already picked up
    """
    try:
        return deposit_parcel_service(body, actor, db, pricing=pricing, credentials=credentials, clock=clock)
    except LifecycleError as e:
        raise _http_error(e)


@router.get("/rentals", response_model=list[RentalRecord])
def get_rentals(
    status: Status | None = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[RentalRecord]:
    """
    The caller's own rentals, newest first
    """
    try:
        return list_customer_rentals_service(actor, status.value if status is not None else None, db)
    except LifecycleError as e:
        raise _http_error(e)


@router.get("/rentals/{rental_id}", response_model=RentalRecord)
def get_rentals_rental_id(
    rental_id: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    pricing: PricingTable = Depends(get_pricing),
    clock: Clock = Depends(get_clock),
) -> RentalRecord:
    """
    Get rental status. Overtime is evaluated before the rental is returned; the handoff
    token and pickup OTP are only shown to the owner and admins.
    """
    try:
        return get_rental_service(rental_id, actor, db, pricing=pricing, clock=clock)
    except LifecycleError as e:
        raise _http_error(e)


@router.post("/rentals/{rental_id}/overtime/evaluate", response_model=RentalRecord)
def post_rentals_rental_id_overtime_evaluate(
    rental_id: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    pricing: PricingTable = Depends(get_pricing),
    clock: Clock = Depends(get_clock),
) -> RentalRecord:
    """
    Evaluate overtime now; safe to call repeatedly
    """
    try:
        return evaluate_overtime_service(rental_id, actor, db, pricing=pricing, clock=clock)
    except LifecycleError as e:
        raise _http_error(e)


@router.post("/rentals/{rental_id}/overtime/payment", response_model=RentalRecord)
def post_rentals_rental_id_overtime_payment(
    rental_id: str,
    actor: Actor = Depends(customer_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> RentalRecord:
    """
    Unlock after the overtime fee was paid

    Returns:
      - 200 unlocked
      - 403 rental belongs to another customer
      - 404 unknown rental
      - 409 rental is not locked
    """
    try:
        return pay_overtime_service(rental_id, actor, db, clock=clock)
    except LifecycleError as e:
        raise _http_error(e)


@router.post("/rentals/{rental_id}/pickup", response_model=RentalRecord)
def post_rentals_rental_id_pickup(
    rental_id: str,
    body: PickupRequest,
    actor: Actor = Depends(customer_only),
    db: Session = Depends(get_db),
    pricing: PricingTable = Depends(get_pricing),
    clock: Clock = Depends(get_clock),
) -> RentalRecord:
    """
    Customer pickup with the OTP

    Returns:
      - 200 completed, locker released
      - 403 rental belongs to another customer
      - 404 unknown rental
      - 409 not dropped off yet, already picked up, or locked for overtime
      - 422 wrong OTP
    """
    try:
        return complete_pickup_service(rental_id, body, actor, db, pricing=pricing, clock=clock)
    except LifecycleError as e:
        raise _http_error(e)


@router.get("/activity-logs", response_model=list[ActivityLog])
def get_activity_logs(
    category: Category | None = None,
    level: Level | None = None,
    actor_id: str | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    actor: Actor = Depends(admin_only),
    db: Session = Depends(get_db),
) -> list[ActivityLog]:
    """
    Admin audit trail, newest first
    """
    return list_activity_logs_service(
        category.value if category is not None else None,
        level.value if level is not None else None,
        actor_id,
        limit,
        db,
    )
