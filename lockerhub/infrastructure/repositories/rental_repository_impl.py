from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from lockerhub.core.entities.rental import RENTAL_SCHEMA_VERSION, Rental, RentalStatus
from lockerhub.core.errors import RecordSchemaError
from lockerhub.core.repositories.rental_repository import RentalRepository
from lockerhub.infrastructure.models.models import RentalModel
from lockerhub.infrastructure.repositories.conditional_update import as_utc, execute_conditional_update


class RentalRepositoryImpl(RentalRepository):
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _to_entity(row: RentalModel) -> Rental:
        if row.schema_version != RENTAL_SCHEMA_VERSION:
            raise RecordSchemaError(
                f"Rental {row.rental_id!r} has schema_version={row.schema_version}, "
                f"expected {RENTAL_SCHEMA_VERSION}"
            )

        return Rental(
            rental_id=row.rental_id,
            locker_id=row.locker_id,
            customer_id=row.customer_id,
            plan_id=row.plan_id,
            handoff_token=row.handoff_token,
            reserved_at=as_utc(row.reserved_at),
            price=Decimal(row.price),
            status=RentalStatus(row.status) if not isinstance(row.status, RentalStatus) else row.status,
            locked=row.locked,
            pickup_otp=row.pickup_otp,
            rider_id=row.rider_id,
            evidence_ref=row.evidence_ref,
            deposited_at=as_utc(row.deposited_at),
            deadline=as_utc(row.deadline),
            completed_at=as_utc(row.completed_at),
            overtime_hours=row.overtime_hours,
            overtime_fee=Decimal(row.overtime_fee),
            overtime_paid=row.overtime_paid,
            version=row.version,
            schema_version=row.schema_version,
        )

    @staticmethod
    def _mutable_columns(rental: Rental) -> dict:
        return {
            "status": rental.status,
            "locked": rental.locked,
            "pickup_otp": rental.pickup_otp,
            "rider_id": rental.rider_id,
            "evidence_ref": rental.evidence_ref,
            "deposited_at": rental.deposited_at,
            "deadline": rental.deadline,
            "completed_at": rental.completed_at,
            "overtime_hours": rental.overtime_hours,
            "overtime_fee": rental.overtime_fee,
            "overtime_paid": rental.overtime_paid,
        }

    def get(self, rental_id: str) -> Rental | None:
        row = self.db.get(RentalModel, rental_id)
        if row is None:
            return None
        return self._to_entity(row)

    def get_by_handoff_token(self, handoff_token: str) -> Rental | None:
        row = self.db.scalars(select(RentalModel).where(RentalModel.handoff_token == handoff_token)).first()
        if row is None:
            return None
        return self._to_entity(row)

    def handoff_token_exists(self, handoff_token: str) -> bool:
        stmt = select(RentalModel.rental_id).where(RentalModel.handoff_token == handoff_token).limit(1)
        return self.db.execute(stmt).first() is not None

    def add(self, rental: Rental) -> None:
        row = RentalModel(
            rental_id=rental.rental_id,
            locker_id=rental.locker_id,
            customer_id=rental.customer_id,
            plan_id=rental.plan_id,
            handoff_token=rental.handoff_token,
            reserved_at=rental.reserved_at,
            price=rental.price,
            version=rental.version,
            schema_version=rental.schema_version,
            **self._mutable_columns(rental),
        )
        self.db.add(row)

    def update_if_unchanged(self, rental: Rental, *, expected_status: RentalStatus, expected_version: int) -> bool:
        stmt = (
            update(RentalModel)
            .where(RentalModel.rental_id == rental.rental_id)
            .where(RentalModel.status == expected_status)
            .where(RentalModel.version == expected_version)
            .values(version=expected_version + 1, **self._mutable_columns(rental))
        )
        if execute_conditional_update(self.db, stmt) != 1:
            return False

        rental.version = expected_version + 1
        return True

    def list_for_customer(self, customer_id: str, *, status: RentalStatus | None = None) -> list[Rental]:
        stmt = (
            select(RentalModel)
            .where(RentalModel.customer_id == customer_id)
            .order_by(RentalModel.reserved_at.desc())
        )
        if status is not None:
            stmt = stmt.where(RentalModel.status == status)
        return [self._to_entity(row) for row in self.db.scalars(stmt)]

    def list_lockable(self) -> list[Rental]:
        stmt = (
            select(RentalModel)
            .where(RentalModel.status == RentalStatus.DEPOSITED)
            .where(RentalModel.locked.is_(False))
            .where(RentalModel.overtime_paid.is_(False))
            .order_by(RentalModel.deadline)
        )
        return [self._to_entity(row) for row in self.db.scalars(stmt)]
