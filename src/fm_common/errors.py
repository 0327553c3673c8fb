"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Actor
  2xxx: Load
  3xxx: Offer
  4xxx: Matching
  5xxx: Pricing
  9xxx: System

HTTP status carries the category: 422 validation, 404 not-found,
403 forbidden, 409 conflict, 410 expired.
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/Actor ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class ForbiddenActorError(AppError):
    def __init__(self, detail: str = "Not authorized for this resource") -> None:
        super().__init__(1003, detail, 403)


# --- 2xxx: Load ---

class LoadNotFoundError(AppError):
    def __init__(self, load_id: str) -> None:
        super().__init__(2001, f"Load not found: {load_id}", 404)


class InvalidStatusTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            2002, f"Cannot transition load from {current} to {target}", 422
        )


class LoadNotCancellableError(AppError):
    def __init__(self, current: str) -> None:
        super().__init__(
            2003, f"Cannot cancel load after pickup (current status: {current})", 422
        )


class LoadStatusConflictError(AppError):
    def __init__(self, load_id: str, expected: str) -> None:
        super().__init__(
            2004,
            f"Load {load_id} changed status concurrently (expected {expected}); refresh and retry",
            409,
        )


class LoadNotAvailableError(AppError):
    def __init__(self, load_id: str, current: str) -> None:
        super().__init__(
            2005, f"Load {load_id} is no longer available (status: {current})", 409
        )


class OffersNotAllowedError(AppError):
    def __init__(self, load_id: str) -> None:
        super().__init__(2006, f"Load {load_id} does not accept offers", 422)


class BookNowNotAllowedError(AppError):
    def __init__(self, load_id: str) -> None:
        super().__init__(2007, f"Load {load_id} does not allow book now", 422)


class InvalidLoadRequestError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2008, f"Invalid load: {detail}", 422)


# --- 3xxx: Offer ---

class OfferNotFoundError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(3001, f"Offer not found: {offer_id}", 404)


class OfferAlreadyResolvedError(AppError):
    def __init__(self, offer_id: str, status: str) -> None:
        self.current_status = status
        super().__init__(3002, f"Offer {offer_id} already {status}", 409)


class OfferExpiredError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(3003, f"Offer {offer_id} has expired", 410)


class OfferBatchTooLargeError(AppError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            3004, f"Maximum {limit} drivers per offer batch, got {size}", 422
        )


class InvalidCounterAmountError(AppError):
    def __init__(self, minimum: Decimal | None = None) -> None:
        detail = (
            f"counter_amount must be at least the load minimum offer of {minimum}"
            if minimum is not None
            else "counter_amount must be a positive amount"
        )
        self.minimum = minimum
        super().__init__(3005, detail, 422)


# --- 5xxx: Pricing ---

class InvalidBenchmarkError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5002, f"Invalid benchmark: {detail}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Operation failed") -> None:
        super().__init__(9002, detail, 500)
