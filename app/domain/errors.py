"""Domain exceptions for the booking system."""


class DomainError(Exception):
    """Base class for every domain error."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


# === Validation ===


class ValidationError(DomainError):
    """Caller input is malformed; rejected before any persistence or remote call."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", field: str | None = None):
        super().__init__(message=message, code=code)
        self.field = field


class MissingReasonError(ValidationError):
    def __init__(self) -> None:
        super().__init__("A cancellation reason is required", code="MISSING_REASON", field="reason")


class PassengerCountMismatchError(ValidationError):
    """Passengers supplied do not match the passengers the offer was priced for."""

    def __init__(self, offer_id: str, expected: int, actual: int):
        super().__init__(
            f"Offer {offer_id} was priced for {expected} passenger(s), got {actual}",
            code="PASSENGER_COUNT_MISMATCH",
            field="passengers",
        )
        self.offer_id = offer_id
        self.expected = expected
        self.actual = actual


class MixedCurrencyError(ValidationError):
    def __init__(self, currencies: list[str] | set[str]):
        listed = ", ".join(sorted(currencies))
        super().__init__(
            f"Offers must share one currency, got: {listed}",
            code="MIXED_CURRENCY",
            field="offers",
        )
        self.currencies = sorted(currencies)


class InvalidMoneyError(ValidationError):
    def __init__(self, message: str):
        super().__init__(message=message, code="INVALID_MONEY")


class VerificationRequiredError(ValidationError):
    """Public lookup attempted without a last name or email verifier."""

    def __init__(self) -> None:
        super().__init__(
            "Last name or email is required for reservation lookup",
            code="VERIFICATION_REQUIRED",
        )


# === Access ===


class ReservationNotFoundError(DomainError):
    def __init__(self, identifier: str):
        super().__init__(
            message=f"Reservation not found: {identifier}",
            code="RESERVATION_NOT_FOUND",
        )
        self.identifier = identifier


class ForbiddenError(DomainError):
    def __init__(self, message: str = "Access to this reservation is not allowed"):
        super().__init__(message=message, code="FORBIDDEN")


class AuthenticationRequiredError(DomainError):
    def __init__(self) -> None:
        super().__init__(message="Authentication required", code="AUTH_REQUIRED")


class RateLimitExceededError(DomainError):
    def __init__(self, retry_after_seconds: int):
        super().__init__(
            message=f"Too many lookup attempts. Try again in {retry_after_seconds} seconds.",
            code="RATE_LIMIT_EXCEEDED",
        )
        self.retry_after_seconds = retry_after_seconds


# === State machine ===


class InvalidStatusTransitionError(DomainError):
    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            message=f"Cannot move reservation from '{current_status}' to '{target_status}'",
            code="INVALID_STATUS_TRANSITION",
        )
        self.current_status = current_status
        self.target_status = target_status


class AlreadyTerminalError(DomainError):
    """The reservation is in a terminal status and no longer accepts transitions."""

    def __init__(self, reservation_code: str, current_status: str):
        super().__init__(
            message=f"Reservation {reservation_code} is already {current_status}",
            code="ALREADY_TERMINAL",
        )
        self.reservation_code = reservation_code
        self.current_status = current_status


class NotEditableError(DomainError):
    def __init__(self, reservation_code: str, reason: str, code: str = "NOT_EDITABLE"):
        super().__init__(
            message=f"Reservation {reservation_code} cannot be edited: {reason}",
            code=code,
        )
        self.reservation_code = reservation_code


# === Concurrency / identifiers ===


class ConflictError(DomainError):
    """Identifier collision exhausted, or a status precondition was violated concurrently."""

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message=message, code=code)


class StaleReservationError(ConflictError):
    """Compare-and-set precondition no longer holds for the stored reservation."""

    def __init__(self, reservation_id: str, expected_status: str, expected_lock_version: int):
        super().__init__(
            message=(
                f"Reservation {reservation_id} changed concurrently: expected status "
                f"'{expected_status}' at version {expected_lock_version}"
            ),
            code="STALE_STATUS",
        )
        self.reservation_id = reservation_id
        self.expected_status = expected_status
        self.expected_lock_version = expected_lock_version


class DuplicateIdentifierError(ConflictError):
    """The store's unique constraint rejected a reservation code or booking reference."""

    def __init__(self, reservation_code: str, booking_reference: str):
        super().__init__(
            message=(
                f"Identifier already in use: reservation_code={reservation_code} "
                f"booking_reference={booking_reference}"
            ),
            code="DUPLICATE_IDENTIFIER",
        )
        self.reservation_code = reservation_code
        self.booking_reference = booking_reference


class IdentifierGenerationExhaustedError(ConflictError):
    def __init__(self, attempts: int):
        super().__init__(
            message=f"Could not generate unique booking identifiers after {attempts} attempts",
            code="GENERATION_EXHAUSTED",
        )
        self.attempts = attempts


# === Provider ===


class ProviderRejectedError(DomainError):
    """The remote provider definitively refused the request. Terminal, never retried."""

    def __init__(self, reservation_code: str, reason_code: str, detail: str | None = None):
        super().__init__(
            message=f"Provider rejected reservation {reservation_code}: {detail or reason_code}",
            code="PROVIDER_REJECTED",
        )
        self.reservation_code = reservation_code
        self.reason_code = reason_code
        self.detail = detail
