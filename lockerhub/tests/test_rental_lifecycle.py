from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from lockerhub.core.entities.actor import Actor, Role
from lockerhub.core.entities.rental import RentalStatus
from lockerhub.core.errors import (
    AlreadyCompleted,
    AlreadyDeposited,
    ConcurrentUpdate,
    InvalidOtp,
    Locked,
    LockerNotFound,
    LockerUnavailable,
    NotLocked,
    NotReady,
    NotRentalOwner,
    PreconditionFailed,
    RentalNotFound,
    TokenNotFound,
    TransientStoreFailure,
    UnknownPlan,
)
from lockerhub.core.tokens import CredentialGenerator
from lockerhub.core.use_cases.complete_pickup import CompletePickupUseCase
from lockerhub.core.use_cases.deposit_parcel import DepositParcelUseCase
from lockerhub.core.use_cases.evaluate_overtime import EvaluateOvertimeUseCase
from lockerhub.core.use_cases.get_rental import GetRentalUseCase
from lockerhub.core.use_cases.pay_overtime import PayOvertimeUseCase
from lockerhub.core.use_cases.reserve_locker import ReserveLockerUseCase
from lockerhub.infrastructure.models.models import LockerModel, RentalModel

CUST1 = Actor(user_id="cust1", role=Role.CUSTOMER)
MALLORY = Actor(user_id="mallory", role=Role.CUSTOMER)
ADMIN = Actor(user_id="admin1", role=Role.ADMIN)


class _SequenceGenerator:
    """Stands in for a CredentialGenerator with a scripted output."""

    def __init__(self, *tokens: str) -> None:
        self._tokens = list(tokens)

    def generate(self) -> str:
        return self._tokens.pop(0) if len(self._tokens) > 1 else self._tokens[0]


class _StaleOnceRentalRepo:
    """Serves one outdated snapshot on the first get(), then reads through."""

    def __init__(self, inner, snapshot) -> None:
        self._inner = inner
        self._snapshot = snapshot

    def get(self, rental_id: str):
        if self._snapshot is not None and self._snapshot.rental_id == rental_id:
            stale, self._snapshot = self._snapshot, None
            return stale
        return self._inner.get(rental_id)

    def __getattr__(self, name):
        return getattr(self._inner, name)


class _AlwaysAvailableLockerRepo:
    """Reports every locker as available, like a read that lost a race."""

    def __init__(self, inner) -> None:
        self._inner = inner

    def get(self, locker_id: str):
        locker = self._inner.get(locker_id)
        return None if locker is None else replace(locker, available=True)

    def __getattr__(self, name):
        return getattr(self._inner, name)


@pytest.fixture()
def lifecycle(uow, pricing, activity, credentials, clock, lockers):
    overtime = EvaluateOvertimeUseCase(uow=uow, pricing=pricing, activity=activity, clock=clock)
    return SimpleNamespace(
        reserve=ReserveLockerUseCase(
            uow=uow, pricing=pricing, activity=activity, handoff_tokens=credentials.handoff_token, clock=clock
        ),
        deposit=DepositParcelUseCase(
            uow=uow, pricing=pricing, activity=activity, pickup_otps=credentials.pickup_otp, clock=clock
        ),
        overtime=overtime,
        pay=PayOvertimeUseCase(uow=uow, activity=activity),
        pickup=CompletePickupUseCase(uow=uow, activity=activity, overtime=overtime, clock=clock),
        get=GetRentalUseCase(uow=uow, overtime=overtime, clock=clock),
    )


def _assert_inventory_consistent(db) -> None:
    """available(L) iff no rental on L is still open."""
    for locker in db.scalars(select(LockerModel)):
        open_rentals = db.scalars(
            select(RentalModel)
            .where(RentalModel.locker_id == locker.locker_id)
            .where(RentalModel.status != RentalStatus.COMPLETED)
        ).all()
        if locker.available:
            assert open_rentals == []
        else:
            assert len(open_rentals) == 1


def _deposited(lifecycle, locker_id: str = "A-01", plan_id: str = "3h"):
    rental = lifecycle.reserve.execute(locker_id=locker_id, customer_id="cust1", plan_id=plan_id)
    return lifecycle.deposit.execute(handoff_token=rental.handoff_token, rider_id="rider1", evidence_ref="photo.jpg")


def test_seed_scenario_lock_pay_then_pickup(lifecycle, uow, db, clock, t0) -> None:
    rental = lifecycle.reserve.execute(locker_id="A-01", customer_id="cust1", plan_id="3h")
    assert rental.status is RentalStatus.RESERVED
    assert rental.reserved_at == t0
    assert rental.price == Decimal("30")
    assert len(rental.handoff_token) == 6
    assert rental.pickup_otp is None
    assert rental.deadline is None
    assert uow.lockers.get("A-01").available is False
    _assert_inventory_consistent(db)

    clock.advance(timedelta(minutes=5))
    rental = lifecycle.deposit.execute(handoff_token=rental.handoff_token, rider_id="rider1",
                                       evidence_ref="photo.jpg")
    assert rental.status is RentalStatus.DEPOSITED
    assert rental.deposited_at == t0 + timedelta(minutes=5)
    assert rental.deadline == t0 + timedelta(minutes=5, hours=3)
    assert rental.rider_id == "rider1"
    assert rental.evidence_ref == "photo.jpg"
    otp = rental.pickup_otp
    assert otp is not None and len(otp) == 6

    clock.set(t0 + timedelta(minutes=5, hours=3, seconds=60))
    result = lifecycle.overtime.execute(rental_id=rental.rental_id, now=clock())
    assert result.locked_now is True
    assert result.rental.locked is True
    assert result.rental.overtime_hours == 1
    assert result.rental.overtime_fee == Decimal("15")

    clock.advance(timedelta(minutes=1))
    with pytest.raises(Locked):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=otp, actor=CUST1, now=clock())

    clock.advance(timedelta(minutes=1))
    paid = lifecycle.pay.execute(rental_id=rental.rental_id, actor=CUST1)
    assert paid.locked is False
    assert paid.overtime_paid is True
    assert paid.overtime_fee == Decimal("15")
    assert paid.overtime_hours == 1

    clock.advance(timedelta(minutes=1))
    done = lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=otp, actor=CUST1, now=clock())
    assert done.status is RentalStatus.COMPLETED
    assert done.completed_at == clock()
    assert done.overtime_fee == Decimal("15")
    assert uow.lockers.get("A-01").available is True
    _assert_inventory_consistent(db)


def test_second_reservation_of_same_locker_fails(lifecycle, uow) -> None:
    lifecycle.reserve.execute(locker_id="A-01", customer_id="cust1", plan_id="3h")

    with pytest.raises(LockerUnavailable) as exc:
        lifecycle.reserve.execute(locker_id="A-01", customer_id="cust2", plan_id="3h")

    assert isinstance(exc.value, PreconditionFailed)
    assert len(uow.rentals.list_for_customer("cust2")) == 0


def test_reservation_losing_a_race_gets_locker_unavailable(lifecycle, uow, db) -> None:
    lifecycle.reserve.execute(locker_id="A-01", customer_id="cust1", plan_id="3h")
    uow.lockers = _AlwaysAvailableLockerRepo(uow.lockers)

    with pytest.raises(LockerUnavailable):
        lifecycle.reserve.execute(locker_id="A-01", customer_id="cust2", plan_id="3h")

    rentals = db.scalars(select(RentalModel).where(RentalModel.locker_id == "A-01")).all()
    assert len(rentals) == 1
    _assert_inventory_consistent(db)


def test_reserve_unknown_locker_or_plan(lifecycle, uow) -> None:
    with pytest.raises(LockerNotFound):
        lifecycle.reserve.execute(locker_id="Z-99", customer_id="cust1", plan_id="3h")

    with pytest.raises(UnknownPlan):
        lifecycle.reserve.execute(locker_id="A-01", customer_id="cust1", plan_id="4h")

    assert uow.lockers.get("A-01").available is True


def test_handoff_token_is_regenerated_on_collision(uow, pricing, activity, clock, lockers) -> None:
    first = ReserveLockerUseCase(uow=uow, pricing=pricing, activity=activity,
                                 handoff_tokens=_SequenceGenerator("AAAAAA"), clock=clock)
    second = ReserveLockerUseCase(uow=uow, pricing=pricing, activity=activity,
                                  handoff_tokens=_SequenceGenerator("AAAAAA", "BBBBBB"), clock=clock)

    assert first.execute(locker_id="A-01", customer_id="cust1", plan_id="3h").handoff_token == "AAAAAA"
    assert second.execute(locker_id="A-02", customer_id="cust2", plan_id="3h").handoff_token == "BBBBBB"


def test_exhausted_token_space_rolls_back_locker_claim(uow, db, pricing, activity, clock, lockers) -> None:
    ReserveLockerUseCase(uow=uow, pricing=pricing, activity=activity,
                         handoff_tokens=_SequenceGenerator("AAAAAA"), clock=clock).execute(
        locker_id="A-01", customer_id="cust1", plan_id="3h")
    stuck = ReserveLockerUseCase(uow=uow, pricing=pricing, activity=activity,
                                 handoff_tokens=_SequenceGenerator("AAAAAA"), clock=clock)

    with pytest.raises(TransientStoreFailure):
        stuck.execute(locker_id="A-02", customer_id="cust2", plan_id="3h")

    assert uow.lockers.get("A-02").available is True
    _assert_inventory_consistent(db)


def test_deposit_with_unknown_token_fails(lifecycle) -> None:
    with pytest.raises(TokenNotFound):
        lifecycle.deposit.execute(handoff_token="NOPE42", rider_id="rider1", evidence_ref="photo.jpg")


def test_deposit_twice_fails_with_already_deposited(lifecycle) -> None:
    rental = _deposited(lifecycle)

    with pytest.raises(AlreadyDeposited):
        lifecycle.deposit.execute(handoff_token=rental.handoff_token, rider_id="rider2", evidence_ref="other.jpg")


def test_round_trip_leaves_tokens_for_audit_but_unusable(lifecycle, uow, db, clock) -> None:
    rental = _deposited(lifecycle)
    lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                             now=clock())

    stored = uow.rentals.get(rental.rental_id)
    assert stored.status is RentalStatus.COMPLETED
    assert stored.handoff_token == rental.handoff_token
    assert stored.pickup_otp == rental.pickup_otp
    assert uow.lockers.get("A-01").available is True

    with pytest.raises(AlreadyCompleted):
        lifecycle.deposit.execute(handoff_token=rental.handoff_token, rider_id="rider1", evidence_ref="p.jpg")
    with pytest.raises(NotReady):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                                 now=clock())
    _assert_inventory_consistent(db)


def test_locker_can_be_rented_again_after_completion(lifecycle, clock) -> None:
    rental = _deposited(lifecycle)
    lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                             now=clock())

    again = lifecycle.reserve.execute(locker_id="A-01", customer_id="cust2", plan_id="1d")

    assert again.status is RentalStatus.RESERVED
    assert again.rental_id != rental.rental_id


def test_pickup_before_drop_off_is_not_ready(lifecycle, clock) -> None:
    rental = lifecycle.reserve.execute(locker_id="A-01", customer_id="cust1", plan_id="3h")

    with pytest.raises(NotReady):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp="123456", actor=CUST1, now=clock())


def test_wrong_otp_is_rejected_without_state_change(lifecycle, uow, clock) -> None:
    rental = _deposited(lifecycle)
    wrong = "000000" if rental.pickup_otp != "000000" else "111111"

    for _ in range(5):
        with pytest.raises(InvalidOtp):
            lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=wrong, actor=CUST1, now=clock())

    assert uow.rentals.get(rental.rental_id).status is RentalStatus.DEPOSITED
    assert uow.lockers.get("A-01").available is False


def test_otp_comparison_is_case_sensitive(uow, pricing, activity, clock, lifecycle) -> None:
    rental = lifecycle.reserve.execute(locker_id="A-01", customer_id="cust1", plan_id="3h")
    deposit = DepositParcelUseCase(uow=uow, pricing=pricing, activity=activity,
                                   pickup_otps=CredentialGenerator(alphabet="ABCDEFGH"), clock=clock)
    rental = deposit.execute(handoff_token=rental.handoff_token, rider_id="rider1", evidence_ref="photo.jpg")

    with pytest.raises(InvalidOtp):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp.lower(),
                                 actor=CUST1, now=clock())
    with pytest.raises(InvalidOtp):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=f" {rental.pickup_otp}",
                                 actor=CUST1, now=clock())


def test_locked_rental_rejects_correct_otp_until_paid(lifecycle, uow) -> None:
    rental = _deposited(lifecycle)
    late = rental.deadline + timedelta(minutes=30)
    lifecycle.overtime.execute(rental_id=rental.rental_id, now=late)

    for i in range(10):
        with pytest.raises(Locked):
            lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                                     now=late + timedelta(minutes=i))

    lifecycle.pay.execute(rental_id=rental.rental_id, actor=CUST1)
    done = lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                                    now=late + timedelta(hours=5))

    assert done.status is RentalStatus.COMPLETED
    assert done.overtime_hours == 1
    assert uow.lockers.get("A-01").available is True


def test_late_pickup_locks_even_without_a_prior_sweep(lifecycle, uow) -> None:
    rental = _deposited(lifecycle)

    with pytest.raises(Locked):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                                 now=rental.deadline + timedelta(hours=2, minutes=1))

    stored = uow.rentals.get(rental.rental_id)
    assert stored.locked is True
    assert stored.overtime_hours == 3
    assert stored.overtime_fee == Decimal("45")


def test_pickup_exactly_at_deadline_is_on_time(lifecycle) -> None:
    rental = _deposited(lifecycle)

    done = lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                                    now=rental.deadline)

    assert done.status is RentalStatus.COMPLETED
    assert done.locked is False
    assert done.overtime_fee == Decimal("0")


def test_evaluate_overtime_is_idempotent_and_fee_is_fixed(lifecycle, uow) -> None:
    rental = _deposited(lifecycle)
    now = rental.deadline + timedelta(minutes=1)

    first = lifecycle.overtime.execute(rental_id=rental.rental_id, now=now)
    second = lifecycle.overtime.execute(rental_id=rental.rental_id, now=now)
    much_later = lifecycle.overtime.execute(rental_id=rental.rental_id, now=now + timedelta(hours=10))

    assert first.locked_now is True
    assert second.locked_now is False
    assert much_later.locked_now is False
    stored = uow.rentals.get(rental.rental_id)
    assert (stored.overtime_hours, stored.overtime_fee) == (1, Decimal("15"))


def test_evaluate_overtime_before_deadline_or_before_deposit_is_a_no_op(lifecycle) -> None:
    reserved = lifecycle.reserve.execute(locker_id="A-02", customer_id="cust1", plan_id="3h")
    deposited = _deposited(lifecycle)

    assert lifecycle.overtime.execute(rental_id=reserved.rental_id,
                                      now=reserved.reserved_at + timedelta(days=3)).locked_now is False
    result = lifecycle.overtime.execute(rental_id=deposited.rental_id, now=deposited.deadline)
    assert result.locked_now is False
    assert result.rental.locked is False
    assert result.rental.overtime_fee == Decimal("0")


def test_evaluate_overtime_after_payment_does_not_lock_again(lifecycle) -> None:
    rental = _deposited(lifecycle)
    lifecycle.overtime.execute(rental_id=rental.rental_id, now=rental.deadline + timedelta(minutes=1))
    lifecycle.pay.execute(rental_id=rental.rental_id, actor=CUST1)

    result = lifecycle.overtime.execute(rental_id=rental.rental_id, now=rental.deadline + timedelta(hours=6))

    assert result.locked_now is False
    assert result.rental.locked is False


def test_zero_rate_plan_never_locks(lifecycle) -> None:
    rental = _deposited(lifecycle, plan_id="free-overtime")

    result = lifecycle.overtime.execute(rental_id=rental.rental_id, now=rental.deadline + timedelta(hours=4))

    assert result.locked_now is False
    assert result.rental.locked is False


def test_unknown_rental_ids(lifecycle, clock) -> None:
    with pytest.raises(RentalNotFound):
        lifecycle.overtime.execute(rental_id="missing", now=clock())
    with pytest.raises(RentalNotFound):
        lifecycle.pay.execute(rental_id="missing", actor=CUST1)
    with pytest.raises(RentalNotFound):
        lifecycle.pickup.execute(rental_id="missing", supplied_otp="123456", actor=CUST1, now=clock())
    with pytest.raises(RentalNotFound):
        lifecycle.get.execute(rental_id="missing")


def test_pay_overtime_requires_lock(lifecycle) -> None:
    rental = _deposited(lifecycle)

    with pytest.raises(NotLocked):
        lifecycle.pay.execute(rental_id=rental.rental_id, actor=CUST1)


def test_get_rental_evaluates_overtime_lazily(lifecycle, clock) -> None:
    rental = _deposited(lifecycle)

    assert lifecycle.get.execute(rental_id=rental.rental_id).locked is False

    clock.set(rental.deadline + timedelta(hours=1, minutes=1))
    polled = lifecycle.get.execute(rental_id=rental.rental_id)

    assert polled.locked is True
    assert polled.overtime_hours == 2
    assert polled.overtime_fee == Decimal("30")


def test_pickup_racing_a_lock_fails_with_locked(lifecycle, uow, db) -> None:
    rental = _deposited(lifecycle)
    snapshot = uow.rentals.get(rental.rental_id)

    lifecycle.overtime.execute(rental_id=rental.rental_id, now=rental.deadline + timedelta(minutes=1))
    uow.rentals = _StaleOnceRentalRepo(uow.rentals, snapshot)

    with pytest.raises(Locked):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                                 now=rental.deadline - timedelta(minutes=1))

    stored = uow.rentals.get(rental.rental_id)
    assert stored.status is RentalStatus.DEPOSITED
    assert stored.locked is True
    assert uow.lockers.get("A-01").available is False
    _assert_inventory_consistent(db)


def test_lock_evaluation_racing_a_completed_pickup_is_a_no_op(lifecycle, uow, db) -> None:
    rental = _deposited(lifecycle)
    snapshot = uow.rentals.get(rental.rental_id)
    lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                             now=rental.deadline - timedelta(minutes=1))

    result = lifecycle.overtime.apply(snapshot, now=rental.deadline + timedelta(hours=2))

    assert result.locked_now is False
    assert result.rental.status is RentalStatus.COMPLETED
    assert result.rental.locked is False
    assert uow.lockers.get("A-01").available is True
    _assert_inventory_consistent(db)


class _StuckLockerRepo:
    """A locker inventory whose release never takes effect."""

    def __init__(self, inner) -> None:
        self._inner = inner

    def release(self, locker_id: str) -> bool:
        return False

    def __getattr__(self, name):
        return getattr(self._inner, name)


def test_other_customer_cannot_pick_up_or_pay(lifecycle, uow) -> None:
    rental = _deposited(lifecycle)
    lifecycle.overtime.execute(rental_id=rental.rental_id, now=rental.deadline + timedelta(minutes=1))

    with pytest.raises(NotRentalOwner):
        lifecycle.pay.execute(rental_id=rental.rental_id, actor=MALLORY)

    lifecycle.pay.execute(rental_id=rental.rental_id, actor=CUST1)
    with pytest.raises(NotRentalOwner):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=MALLORY,
                                 now=rental.deadline + timedelta(hours=1))

    stored = uow.rentals.get(rental.rental_id)
    assert stored.status is RentalStatus.DEPOSITED
    assert uow.lockers.get("A-01").available is False


def test_admin_may_complete_any_rental(lifecycle, uow) -> None:
    rental = _deposited(lifecycle)

    done = lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=ADMIN,
                                    now=rental.deadline)

    assert done.status is RentalStatus.COMPLETED
    assert uow.lockers.get("A-01").available is True


def test_pickup_rolls_back_when_locker_cannot_be_released(lifecycle, uow, db) -> None:
    rental = _deposited(lifecycle)
    uow.lockers = _StuckLockerRepo(uow.lockers)

    with pytest.raises(ConcurrentUpdate):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                                 now=rental.deadline)

    assert uow.rentals.get(rental.rental_id).status is RentalStatus.DEPOSITED
    assert uow.lockers.get("A-01").available is False
    _assert_inventory_consistent(db)


def test_naive_timestamps_are_rejected(lifecycle, uow) -> None:
    rental = _deposited(lifecycle)
    naive_late = (rental.deadline + timedelta(hours=1)).replace(tzinfo=None)

    with pytest.raises(ValueError):
        lifecycle.overtime.execute(rental_id=rental.rental_id, now=naive_late)
    with pytest.raises(ValueError):
        lifecycle.pickup.execute(rental_id=rental.rental_id, supplied_otp=rental.pickup_otp, actor=CUST1,
                                 now=naive_late)

    stored = uow.rentals.get(rental.rental_id)
    assert stored.status is RentalStatus.DEPOSITED
    assert stored.locked is False
