"""DTOs for booking use cases."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app.domain.entities.itinerary import Itinerary
from app.domain.entities.passenger import Contact, Passenger
from app.domain.entities.reservation import Reservation, ReservationStatus
from app.domain.value_objects.pricing import OfferPrice

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class CallerScope:
    """Authenticated caller: owners see their own bookings, admins see all."""

    user_id: str
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


@dataclass
class OfferDTO:
    """One priced offer as selected by the customer."""

    price: OfferPrice
    itinerary: Itinerary
    raw: dict = field(default_factory=dict)


@dataclass
class CreateBookingDTO:
    offers: list[OfferDTO]
    passengers: list[Passenger]
    contact: Contact


class ConfirmationState(str, Enum):
    """What the caller learns about the provider confirmation."""

    CONFIRMED = "CONFIRMED"
    UNKNOWN = "UNKNOWN"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class CreateBookingResult:
    reservation: Reservation
    confirmation: ConfirmationState
    provider_reason_code: str | None = None


@dataclass(frozen=True)
class BookingPage:
    items: list[Reservation]
    total: int
    limit: int
    offset: int


@dataclass(frozen=True)
class BookingSearchCriteria:
    """Search filters; every filter that is set must match."""

    reservation_code: str | None = None
    booking_reference: str | None = None
    email: str | None = None
    last_name: str | None = None
    flight_number: str | None = None
    status: ReservationStatus | None = None
    owner_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


@dataclass(frozen=True)
class BookingStats:
    total: int
    by_status: dict[str, int]
    passengers: int
    revenue_by_currency: dict[str, Decimal]


@dataclass(frozen=True)
class PublicFlightView:
    flight_number: str
    origin: str
    destination: str
    departure_at: datetime
    arrival_at: datetime


@dataclass(frozen=True)
class PublicPassengerView:
    first_name: str
    last_name: str
    passenger_type: str


@dataclass(frozen=True)
class PublicReservationView:
    """Reduced view for unauthenticated lookups: no documents, contact or history."""

    reservation_code: str
    booking_reference: str
    status: str
    flights: list[PublicFlightView]
    passengers: list[PublicPassengerView]
    total: Decimal
    currency_code: str
    booked_at: datetime

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "PublicReservationView":
        return cls(
            reservation_code=reservation.reservation_code,
            booking_reference=reservation.booking_reference,
            status=reservation.status.value,
            flights=[
                PublicFlightView(
                    flight_number=segment.designator,
                    origin=segment.origin,
                    destination=segment.destination,
                    departure_at=segment.departure_at,
                    arrival_at=segment.arrival_at,
                )
                for itinerary in reservation.itineraries
                for segment in itinerary.segments
            ],
            passengers=[
                PublicPassengerView(
                    first_name=p.first_name,
                    last_name=p.last_name,
                    passenger_type=p.passenger_type.value,
                )
                for p in reservation.passengers
            ],
            total=reservation.pricing.total,
            currency_code=reservation.pricing.currency_code,
            booked_at=reservation.created_at,
        )


@dataclass(frozen=True)
class TimelineEvent:
    at: datetime
    kind: str  # status, change, sync
    description: str
    status: str | None = None


@dataclass
class SweepResult:
    """Outcome of a batch sweep, by reservation code."""

    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
