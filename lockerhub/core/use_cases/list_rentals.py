from __future__ import annotations

from lockerhub.core.entities.rental import Rental, RentalStatus
from lockerhub.core.repositories.unit_of_work import UnitOfWork


class ListCustomerRentalsUseCase:
    """Dashboard and history listing for one customer, newest reservation first."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, *, customer_id: str, status: RentalStatus | None = None) -> list[Rental]:
        return self._uow.rentals.list_for_customer(customer_id, status=status)
