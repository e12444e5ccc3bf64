from __future__ import annotations


class LifecycleError(Exception):
    """Base class for every failure the rental core returns to its callers."""

    default_message = "Rental operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


# -----------------------------
# NotFound: map to HTTP 404
# -----------------------------
class NotFoundError(LifecycleError):
    default_message = "Not found"


class LockerNotFound(NotFoundError):
    default_message = "Locker not found"


class TokenNotFound(NotFoundError):
    default_message = "This handoff code is invalid"


class RentalNotFound(NotFoundError):
    default_message = "Rental not found"


# -----------------------------
# PreconditionFailed: map to HTTP 409
# -----------------------------
class PreconditionFailed(LifecycleError):
    default_message = "Rental is not in the required state"


class LockerUnavailable(PreconditionFailed):
    default_message = "Locker is already reserved, pick another locker"


class AlreadyDeposited(PreconditionFailed):
    default_message = "Parcel has already been dropped off"


class AlreadyCompleted(PreconditionFailed):
    default_message = "Parcel has already been picked up"


class NotReady(PreconditionFailed):
    default_message = "Parcel is not in the locker yet"


class NotLocked(PreconditionFailed):
    default_message = "Rental is not locked, nothing to pay"


class Locked(PreconditionFailed):
    default_message = "Locker is locked, pay the overtime fee first"


# -----------------------------
# Forbidden: map to HTTP 403
# -----------------------------
class Forbidden(LifecycleError):
    default_message = "Not allowed"


class NotRentalOwner(Forbidden):
    default_message = "This rental belongs to another customer"


# -----------------------------
# ValidationFailed: map to HTTP 422
# -----------------------------
class ValidationFailed(LifecycleError):
    default_message = "Invalid input"


class InvalidOtp(ValidationFailed):
    default_message = "Wrong pickup code"


class UnknownPlan(ValidationFailed):
    default_message = "Unknown rental plan"


# -----------------------------
# TransientStoreFailure: map to HTTP 503, safe to retry
# -----------------------------
class TransientStoreFailure(LifecycleError):
    default_message = "Storage is temporarily unavailable, retry the request"


class ConcurrentUpdate(TransientStoreFailure):
    default_message = "Rental changed while the request was processed, retry the request"


class RecordSchemaError(LifecycleError):
    """A stored row carries a schema version this build cannot read."""

    default_message = "Stored record has an unsupported schema version"
