"""Value Objects for the customer-facing booking identifiers."""

import re
import string
from dataclasses import dataclass

# Visually ambiguous characters (0, O, 1, I) are excluded.
RESERVATION_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
BOOKING_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits

RESERVATION_CODE_LENGTH = 6
BOOKING_REFERENCE_LENGTH = 8

_RESERVATION_CODE_RE = re.compile(rf"^[{RESERVATION_CODE_ALPHABET}]{{{RESERVATION_CODE_LENGTH}}}$")
_BOOKING_REFERENCE_RE = re.compile(rf"^[A-Z0-9]{{{BOOKING_REFERENCE_LENGTH}}}$")


def normalize_code(value: str) -> str:
    """Canonical form used for storage and comparison: stripped, uppercase, no separators."""
    return value.strip().upper().replace(" ", "").replace("-", "")


def is_valid_reservation_code(value: str) -> bool:
    return bool(value) and bool(_RESERVATION_CODE_RE.match(value))


def is_valid_booking_reference(value: str) -> bool:
    return bool(value) and bool(_BOOKING_REFERENCE_RE.match(value))


def format_for_display(code: str, style: str = "spaced") -> str:
    """
    Presentation-only formatting of a reservation code.

    ``ABC123`` becomes ``ABC 123`` (spaced) or ``ABC-123`` (hyphenated).
    Anything that is not a canonical reservation code is returned untouched.
    """
    if not is_valid_reservation_code(code):
        return code
    if style == "spaced":
        return f"{code[:3]} {code[3:]}"
    if style == "hyphenated":
        return f"{code[:3]}-{code[3:]}"
    return code


@dataclass(frozen=True)
class ReservationCode:
    """6-character reservation code (PNR), immutable once assigned."""

    value: str

    def __post_init__(self) -> None:
        if not is_valid_reservation_code(self.value):
            raise ValueError(f"Invalid reservation code: {self.value!r}")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "ReservationCode":
        return cls(value=normalize_code(value))


@dataclass(frozen=True)
class BookingReference:
    """8-character secondary identifier used for customer support lookup."""

    value: str

    def __post_init__(self) -> None:
        if not is_valid_booking_reference(self.value):
            raise ValueError(f"Invalid booking reference: {self.value!r}")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "BookingReference":
        return cls(value=normalize_code(value))
