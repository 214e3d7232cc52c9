from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, condecimal, constr, field_validator

from app.application.dtos.booking_dto import (
    BookingPage,
    BookingStats,
    ConfirmationState,
    CreateBookingDTO,
    CreateBookingResult,
    OfferDTO,
    PublicReservationView,
    SweepResult,
    TimelineEvent,
)
from app.domain.entities.itinerary import CabinClass, FlightSegment, Itinerary
from app.domain.entities.passenger import (
    Address,
    Contact,
    Gender,
    Passenger,
    PassengerType,
    SeatPreference,
    TravelDocument,
)
from app.domain.entities.reservation import Reservation, ReservationStatus
from app.domain.value_objects.booking_patch import BookingPatch, ContactPatch, PassengerPatch
from app.domain.value_objects.pricing import OfferPrice, TravelerShare
from app.domain.value_objects.reservation_code import format_for_display

Money = condecimal(max_digits=12, decimal_places=2)
NonNegativeMoney = condecimal(max_digits=12, decimal_places=2, ge=0)
CurrencyCode = constr(strip_whitespace=True, to_upper=True, min_length=3, max_length=3)
AirportCode = constr(strip_whitespace=True, to_upper=True, min_length=3, max_length=3)

DECIMAL_ENCODERS = {Decimal: lambda v: format(v, ".2f")}


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# === Requests ===


class TravelerPricingIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    traveler_id: constr(strip_whitespace=True, min_length=1)
    traveler_type: PassengerType = PassengerType.ADULT
    amount: NonNegativeMoney | None = None


class OfferPriceIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    currency_code: CurrencyCode
    base: NonNegativeMoney
    taxes: list[NonNegativeMoney] = Field(default_factory=list)
    fees: list[NonNegativeMoney] = Field(default_factory=list)
    discounts: list[NonNegativeMoney] = Field(default_factory=list)


class SegmentIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    carrier_code: constr(strip_whitespace=True, to_upper=True, min_length=2, max_length=3)
    flight_number: constr(strip_whitespace=True, min_length=1, max_length=5)
    origin: AirportCode
    destination: AirportCode
    departure_at: datetime
    arrival_at: datetime
    cabin: CabinClass = CabinClass.ECONOMY
    fare_basis: str | None = None
    booking_class: str | None = None
    aircraft_code: str | None = None

    @field_validator("arrival_at")
    @classmethod
    def validate_arrival(cls, value: datetime, info: Any) -> datetime:
        departure = info.data.get("departure_at")
        if departure and to_utc(value) <= to_utc(departure):
            raise ValueError("arrival_at must be after departure_at")
        return value


class OfferIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    offer_id: constr(strip_whitespace=True, min_length=1)
    price: OfferPriceIn
    travelers: list[TravelerPricingIn] = Field(min_length=1)
    segments: list[SegmentIn] = Field(min_length=1)
    duration: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    def to_dto(self) -> OfferDTO:
        price = OfferPrice(
            offer_id=self.offer_id,
            currency_code=self.price.currency_code,
            base=self.price.base,
            taxes=tuple(self.price.taxes),
            fees=tuple(self.price.fees),
            discounts=tuple(self.price.discounts),
            travelers=tuple(
                TravelerShare(
                    traveler_id=t.traveler_id,
                    traveler_type=t.traveler_type.value,
                    amount=t.amount,
                )
                for t in self.travelers
            ),
        )
        itinerary = Itinerary(
            offer_id=self.offer_id,
            duration=self.duration,
            segments=tuple(
                FlightSegment(
                    carrier_code=s.carrier_code,
                    flight_number=s.flight_number,
                    origin=s.origin,
                    destination=s.destination,
                    departure_at=to_utc(s.departure_at),
                    arrival_at=to_utc(s.arrival_at),
                    cabin=s.cabin,
                    fare_basis=s.fare_basis,
                    booking_class=s.booking_class,
                    aircraft_code=s.aircraft_code,
                )
                for s in self.segments
            ),
        )
        # the provider needs the offer exactly as priced; fall back to our own view of it
        raw = self.raw or {"id": self.offer_id, **self.model_dump(mode="json", exclude={"raw"})}
        return OfferDTO(price=price, itinerary=itinerary, raw=raw)


class DocumentIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    document_type: constr(strip_whitespace=True, to_upper=True, min_length=1) = "PASSPORT"
    number: constr(strip_whitespace=True, min_length=1, max_length=32)
    expiry_date: date | None = None
    issuing_country: constr(strip_whitespace=True, to_upper=True, min_length=2, max_length=2) | None = None
    nationality: constr(strip_whitespace=True, to_upper=True, min_length=2, max_length=2) | None = None


class PassengerIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    traveler_id: constr(strip_whitespace=True, min_length=1)
    passenger_type: PassengerType = PassengerType.ADULT
    title: str | None = None
    first_name: constr(strip_whitespace=True, min_length=1, max_length=80)
    last_name: constr(strip_whitespace=True, min_length=1, max_length=80)
    date_of_birth: date
    gender: Gender | None = None
    nationality: constr(strip_whitespace=True, to_upper=True, min_length=2, max_length=2) | None = None
    document: DocumentIn | None = None
    email: EmailStr | None = None
    phone: str | None = None
    special_requests: list[str] = Field(default_factory=list)
    seat_preference: SeatPreference | None = None
    meal_preference: str | None = None
    frequent_flyer_number: str | None = None

    def to_domain(self) -> Passenger:
        document = self.document
        return Passenger(
            traveler_id=self.traveler_id,
            passenger_type=self.passenger_type,
            title=self.title,
            first_name=self.first_name,
            last_name=self.last_name,
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            nationality=self.nationality,
            document=TravelDocument(**document.model_dump()) if document else None,
            email=str(self.email) if self.email else None,
            phone=self.phone,
            special_requests=tuple(self.special_requests),
            seat_preference=self.seat_preference,
            meal_preference=self.meal_preference,
            frequent_flyer_number=self.frequent_flyer_number,
        )


class AddressIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    street: constr(strip_whitespace=True, min_length=1)
    city: constr(strip_whitespace=True, min_length=1)
    postal_code: constr(strip_whitespace=True, min_length=1)
    country: constr(strip_whitespace=True, to_upper=True, min_length=2, max_length=2)
    state: str | None = None


class ContactIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    phone: constr(strip_whitespace=True, min_length=5, max_length=32)
    address: AddressIn | None = None

    def to_domain(self) -> Contact:
        return Contact(
            email=str(self.email),
            phone=self.phone,
            address=Address(**self.address.model_dump()) if self.address else None,
        )


class CreateBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    offers: list[OfferIn] = Field(min_length=1)
    passengers: list[PassengerIn] = Field(min_length=1, max_length=9)
    contact: ContactIn

    def to_dto(self) -> CreateBookingDTO:
        return CreateBookingDTO(
            offers=[offer.to_dto() for offer in self.offers],
            passengers=[passenger.to_domain() for passenger in self.passengers],
            contact=self.contact.to_domain(),
        )


class PassengerPatchIn(BaseModel):
    """Only fields that may change after confirmation are accepted."""

    model_config = ConfigDict(extra="forbid")

    passenger_id: constr(strip_whitespace=True, min_length=1)
    first_name: constr(strip_whitespace=True, min_length=1, max_length=80) | None = None
    last_name: constr(strip_whitespace=True, min_length=1, max_length=80) | None = None
    email: EmailStr | None = None
    phone: str | None = None
    special_requests: list[str] | None = None
    seat_preference: SeatPreference | None = None
    meal_preference: str | None = None
    frequent_flyer_number: str | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("cannot be null")
        return value

    def to_patch(self) -> PassengerPatch:
        changes = self.model_dump(exclude_unset=True, exclude={"passenger_id"})
        if "email" in changes and changes["email"] is not None:
            changes["email"] = str(changes["email"])
        return PassengerPatch(passenger_id=self.passenger_id, changes=changes)


class ContactPatchIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr | None = None
    phone: constr(strip_whitespace=True, min_length=5, max_length=32) | None = None
    address: AddressIn | None = None

    @field_validator("email", "phone")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("cannot be null")
        return value

    def to_patch(self) -> ContactPatch:
        changes = self.model_dump(exclude_unset=True)
        if changes.get("email") is not None:
            changes["email"] = str(changes["email"])
        return ContactPatch(changes=changes)


class UpdateBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    passengers: list[PassengerPatchIn] = Field(default_factory=list)
    contact: ContactPatchIn | None = None

    def to_patches(self) -> list[BookingPatch]:
        patches: list[BookingPatch] = [p.to_patch() for p in self.passengers]
        if self.contact is not None:
            patches.append(self.contact.to_patch())
        return patches


class CancelBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str | None = None
    refund: bool = False


# === Responses ===


class SegmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    carrier_code: str
    flight_number: str
    origin: str
    destination: str
    departure_at: datetime
    arrival_at: datetime
    cabin: CabinClass
    fare_basis: str | None = None
    booking_class: str | None = None
    aircraft_code: str | None = None


class ItineraryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    offer_id: str
    duration: str | None = None
    segments: list[SegmentOut]


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    document_type: str
    number: str
    expiry_date: date | None = None
    issuing_country: str | None = None
    nationality: str | None = None


class PassengerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    traveler_id: str
    passenger_type: PassengerType
    title: str | None = None
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Gender | None = None
    nationality: str | None = None
    document: DocumentOut | None = None
    email: str | None = None
    phone: str | None = None
    special_requests: list[str] = Field(default_factory=list)
    seat_preference: SeatPreference | None = None
    meal_preference: str | None = None
    frequent_flyer_number: str | None = None


class AddressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    street: str
    city: str
    postal_code: str
    country: str
    state: str | None = None


class ContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    email: str
    phone: str
    address: AddressOut | None = None


class PassengerPriceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, json_encoders=DECIMAL_ENCODERS)

    traveler_id: str
    amount: Money


class PricingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, json_encoders=DECIMAL_ENCODERS)

    currency_code: str
    base: Money
    taxes: Money
    fees: Money
    discounts: Money
    total: Money
    passengers: list[PassengerPriceOut]


class StatusHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: ReservationStatus
    changed_at: datetime
    reason: str | None = None


class BookingResponse(BaseModel):
    model_config = ConfigDict(json_encoders=DECIMAL_ENCODERS)

    id: str
    reservation_code: str
    display_code: str
    booking_reference: str
    owner_id: str
    status: ReservationStatus
    itineraries: list[ItineraryOut]
    passengers: list[PassengerOut]
    contact: ContactOut
    pricing: PricingOut
    hold_expires_at: datetime
    remote_order_id: str | None = None
    confirmation_pending: bool
    remote_cancel_pending: bool
    last_provider_error: str | None = None
    cancellation_reason: str | None = None
    last_synced_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    status_history: list[StatusHistoryOut]

    @classmethod
    def _fields_from(cls, reservation: Reservation) -> dict[str, Any]:
        return {
            "id": reservation.id,
            "reservation_code": reservation.reservation_code,
            "display_code": format_for_display(reservation.reservation_code),
            "booking_reference": reservation.booking_reference,
            "owner_id": reservation.owner_id,
            "status": reservation.status,
            "itineraries": [ItineraryOut.model_validate(i) for i in reservation.itineraries],
            "passengers": [PassengerOut.model_validate(p) for p in reservation.passengers],
            "contact": ContactOut.model_validate(reservation.contact),
            "pricing": PricingOut.model_validate(reservation.pricing),
            "hold_expires_at": reservation.hold_expires_at,
            "remote_order_id": reservation.remote_order_id,
            "confirmation_pending": reservation.confirmation_pending,
            "remote_cancel_pending": reservation.remote_cancel_pending,
            "last_provider_error": reservation.last_provider_error,
            "cancellation_reason": reservation.cancellation_reason,
            "last_synced_at": reservation.last_synced_at,
            "created_at": reservation.created_at,
            "updated_at": reservation.updated_at,
            "status_history": [StatusHistoryOut.model_validate(h) for h in reservation.status_history],
        }

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "BookingResponse":
        return cls(**cls._fields_from(reservation))


class CreateBookingResponse(BookingResponse):
    confirmation: ConfirmationState
    provider_reason_code: str | None = None

    @classmethod
    def from_result(cls, result: CreateBookingResult) -> "CreateBookingResponse":
        return cls(
            **cls._fields_from(result.reservation),
            confirmation=result.confirmation,
            provider_reason_code=result.provider_reason_code,
        )


class BookingSummary(BaseModel):
    model_config = ConfigDict(json_encoders=DECIMAL_ENCODERS)

    id: str
    reservation_code: str
    booking_reference: str
    status: ReservationStatus
    first_departure_at: datetime
    flights: list[str]
    passenger_count: int
    total: Money
    currency_code: str
    created_at: datetime

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "BookingSummary":
        return cls(
            id=reservation.id,
            reservation_code=reservation.reservation_code,
            booking_reference=reservation.booking_reference,
            status=reservation.status,
            first_departure_at=reservation.first_departure,
            flights=reservation.flight_designators,
            passenger_count=reservation.passenger_count,
            total=reservation.pricing.total,
            currency_code=reservation.pricing.currency_code,
            created_at=reservation.created_at,
        )


class BookingPageResponse(BaseModel):
    items: list[BookingSummary]
    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def from_page(cls, page: BookingPage) -> "BookingPageResponse":
        return cls(
            items=[BookingSummary.from_domain(r) for r in page.items],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.offset + len(page.items) < page.total,
        )


class BookingSearchResponse(BaseModel):
    items: list[BookingSummary]
    count: int


class BookingStatsResponse(BaseModel):
    model_config = ConfigDict(json_encoders=DECIMAL_ENCODERS)

    total: int
    by_status: dict[str, int]
    passengers: int
    revenue_by_currency: dict[str, Money]

    @classmethod
    def from_stats(cls, stats: BookingStats) -> "BookingStatsResponse":
        return cls(
            total=stats.total,
            by_status=stats.by_status,
            passengers=stats.passengers,
            revenue_by_currency=stats.revenue_by_currency,
        )


class TimelineEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    at: datetime
    kind: str
    description: str
    status: str | None = None


class TimelineResponse(BaseModel):
    reservation_id: str
    events: list[TimelineEventOut]

    @classmethod
    def from_events(cls, reservation_id: str, events: list[TimelineEvent]) -> "TimelineResponse":
        return cls(
            reservation_id=reservation_id,
            events=[TimelineEventOut.model_validate(e) for e in events],
        )


class PublicFlightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    flight_number: str
    origin: str
    destination: str
    departure_at: datetime
    arrival_at: datetime


class PublicPassengerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    first_name: str
    last_name: str
    passenger_type: str


class PublicBookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, json_encoders=DECIMAL_ENCODERS)

    reservation_code: str
    booking_reference: str
    status: str
    flights: list[PublicFlightOut]
    passengers: list[PublicPassengerOut]
    total: Money
    currency_code: str
    booked_at: datetime

    @classmethod
    def from_view(cls, view: PublicReservationView) -> "PublicBookingResponse":
        return cls.model_validate(view)


class SweepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    processed: list[str]
    skipped: list[str]
    failed: list[str]

    @classmethod
    def from_result(cls, result: SweepResult) -> "SweepResponse":
        return cls.model_validate(result)
