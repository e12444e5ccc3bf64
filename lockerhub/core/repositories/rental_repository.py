from __future__ import annotations

from abc import ABC, abstractmethod

from lockerhub.core.entities.rental import Rental, RentalStatus


class RentalRepository(ABC):
    @abstractmethod
    def get(self, rental_id: str) -> Rental | None:
        raise NotImplementedError

    @abstractmethod
    def get_by_handoff_token(self, handoff_token: str) -> Rental | None:
        raise NotImplementedError

    @abstractmethod
    def handoff_token_exists(self, handoff_token: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def add(self, rental: Rental) -> None:
        raise NotImplementedError

    @abstractmethod
    def update_if_unchanged(self, rental: Rental, *, expected_status: RentalStatus, expected_version: int) -> bool:
        """
        Conditional write: persist `rental` only if the stored row still has `expected_status`
        and `expected_version`. Bumps `rental.version` on success. Return False if the row
        changed underneath the caller.
        """
        raise NotImplementedError

    @abstractmethod
    def list_for_customer(self, customer_id: str, *, status: RentalStatus | None = None) -> list[Rental]:
        raise NotImplementedError

    @abstractmethod
    def list_lockable(self) -> list[Rental]:
        """Deposited rentals that are neither locked nor already paid for overtime."""
        raise NotImplementedError
