"""Passenger and contact entities captured at booking time."""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class PassengerType(str, Enum):
    ADULT = "ADULT"
    CHILD = "CHILD"
    INFANT = "INFANT"
    SENIOR = "SENIOR"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    UNSPECIFIED = "UNSPECIFIED"


class SeatPreference(str, Enum):
    WINDOW = "WINDOW"
    AISLE = "AISLE"
    MIDDLE = "MIDDLE"
    NO_PREFERENCE = "NO_PREFERENCE"


@dataclass(frozen=True)
class TravelDocument:
    """Identity document presented for travel (passport, national id)."""

    document_type: str
    number: str
    expiry_date: date | None = None
    issuing_country: str | None = None
    nationality: str | None = None


@dataclass(frozen=True)
class Passenger:
    """
    Traveler on a reservation.

    ``traveler_id`` links the passenger to the traveler pricing entries of the
    offers it was priced on. Only the fields in PASSENGER_EDITABLE_FIELDS
    (see booking_patch) may change after confirmation.
    """

    traveler_id: str
    passenger_type: PassengerType
    first_name: str
    last_name: str
    date_of_birth: date
    title: str | None = None
    gender: Gender | None = None
    nationality: str | None = None
    document: TravelDocument | None = None
    email: str | None = None
    phone: str | None = None
    special_requests: tuple[str, ...] = ()
    seat_preference: SeatPreference | None = None
    meal_preference: str | None = None
    frequent_flyer_number: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    postal_code: str
    country: str
    state: str | None = None


@dataclass(frozen=True)
class Contact:
    """Booking contact; receives notifications and verifies public lookups."""

    email: str
    phone: str
    address: Address | None = None
