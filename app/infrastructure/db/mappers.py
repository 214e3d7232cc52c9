"""Row and JSON mapping for the reservation aggregate."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

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
from app.domain.entities.reservation import (
    ChangeLogEntry,
    Reservation,
    ReservationStatus,
    StatusHistoryEntry,
)
from app.domain.value_objects.pricing import PassengerPrice, Pricing


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _dt(value: str | None) -> datetime | None:
    return as_utc(datetime.fromisoformat(value)) if value else None


def _date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


# === Itinerary ===


def itinerary_to_dict(itinerary: Itinerary) -> dict[str, Any]:
    return {
        "offer_id": itinerary.offer_id,
        "duration": itinerary.duration,
        "segments": [
            {
                "carrier_code": s.carrier_code,
                "flight_number": s.flight_number,
                "origin": s.origin,
                "destination": s.destination,
                "departure_at": _iso(s.departure_at),
                "arrival_at": _iso(s.arrival_at),
                "cabin": s.cabin.value,
                "fare_basis": s.fare_basis,
                "booking_class": s.booking_class,
                "aircraft_code": s.aircraft_code,
            }
            for s in itinerary.segments
        ],
    }


def itinerary_from_dict(data: dict[str, Any]) -> Itinerary:
    return Itinerary(
        offer_id=data["offer_id"],
        duration=data.get("duration"),
        segments=tuple(
            FlightSegment(
                carrier_code=s["carrier_code"],
                flight_number=s["flight_number"],
                origin=s["origin"],
                destination=s["destination"],
                departure_at=_dt(s["departure_at"]),
                arrival_at=_dt(s["arrival_at"]),
                cabin=CabinClass(s.get("cabin") or CabinClass.ECONOMY.value),
                fare_basis=s.get("fare_basis"),
                booking_class=s.get("booking_class"),
                aircraft_code=s.get("aircraft_code"),
            )
            for s in data["segments"]
        ),
    )


# === Passengers / contact ===


def passenger_to_dict(passenger: Passenger) -> dict[str, Any]:
    document = passenger.document
    return {
        "traveler_id": passenger.traveler_id,
        "passenger_type": passenger.passenger_type.value,
        "title": passenger.title,
        "first_name": passenger.first_name,
        "last_name": passenger.last_name,
        "date_of_birth": _iso(passenger.date_of_birth),
        "gender": passenger.gender.value if passenger.gender else None,
        "nationality": passenger.nationality,
        "document": {
            "document_type": document.document_type,
            "number": document.number,
            "expiry_date": _iso(document.expiry_date),
            "issuing_country": document.issuing_country,
            "nationality": document.nationality,
        }
        if document
        else None,
        "email": passenger.email,
        "phone": passenger.phone,
        "special_requests": list(passenger.special_requests),
        "seat_preference": passenger.seat_preference.value if passenger.seat_preference else None,
        "meal_preference": passenger.meal_preference,
        "frequent_flyer_number": passenger.frequent_flyer_number,
    }


def passenger_from_dict(data: dict[str, Any]) -> Passenger:
    document = data.get("document")
    return Passenger(
        traveler_id=data["traveler_id"],
        passenger_type=PassengerType(data["passenger_type"]),
        title=data.get("title"),
        first_name=data["first_name"],
        last_name=data["last_name"],
        date_of_birth=_date(data["date_of_birth"]),
        gender=Gender(data["gender"]) if data.get("gender") else None,
        nationality=data.get("nationality"),
        document=TravelDocument(
            document_type=document["document_type"],
            number=document["number"],
            expiry_date=_date(document.get("expiry_date")),
            issuing_country=document.get("issuing_country"),
            nationality=document.get("nationality"),
        )
        if document
        else None,
        email=data.get("email"),
        phone=data.get("phone"),
        special_requests=tuple(data.get("special_requests") or ()),
        seat_preference=SeatPreference(data["seat_preference"]) if data.get("seat_preference") else None,
        meal_preference=data.get("meal_preference"),
        frequent_flyer_number=data.get("frequent_flyer_number"),
    )


def contact_to_dict(contact: Contact) -> dict[str, Any]:
    address = contact.address
    return {
        "email": contact.email,
        "phone": contact.phone,
        "address": {
            "street": address.street,
            "city": address.city,
            "postal_code": address.postal_code,
            "country": address.country,
            "state": address.state,
        }
        if address
        else None,
    }


def contact_from_dict(data: dict[str, Any]) -> Contact:
    address = data.get("address")
    return Contact(
        email=data["email"],
        phone=data["phone"],
        address=Address(**address) if address else None,
    )


# === Pricing ===


def pricing_to_dict(pricing: Pricing) -> dict[str, Any]:
    return {
        "currency_code": pricing.currency_code,
        "base": str(pricing.base),
        "taxes": str(pricing.taxes),
        "fees": str(pricing.fees),
        "discounts": str(pricing.discounts),
        "total": str(pricing.total),
        "passengers": [
            {"traveler_id": p.traveler_id, "amount": str(p.amount)} for p in pricing.passengers
        ],
    }


def pricing_from_dict(data: dict[str, Any]) -> Pricing:
    return Pricing(
        currency_code=data["currency_code"],
        base=Decimal(data["base"]),
        taxes=Decimal(data["taxes"]),
        fees=Decimal(data["fees"]),
        discounts=Decimal(data["discounts"]),
        total=Decimal(data["total"]),
        passengers=tuple(
            PassengerPrice(traveler_id=p["traveler_id"], amount=Decimal(p["amount"]))
            for p in data.get("passengers", [])
        ),
    )


# === Reservation rows ===


def _search_tokens(values: list[str]) -> str:
    return "|" + "|".join(v.upper() for v in values) + "|"


def mutable_columns(reservation: Reservation) -> dict[str, Any]:
    """Columns that may change after the reservation is created."""
    return {
        "status": reservation.status.value,
        "passengers": [passenger_to_dict(p) for p in reservation.passengers],
        "contact": contact_to_dict(reservation.contact),
        "contact_email": reservation.contact.email.lower(),
        "passenger_last_names": _search_tokens([p.last_name for p in reservation.passengers]),
        "remote_order_id": reservation.remote_order_id,
        "last_synced_at": reservation.last_synced_at,
        "confirmation_pending": reservation.confirmation_pending,
        "remote_cancel_pending": reservation.remote_cancel_pending,
        "last_provider_error": reservation.last_provider_error,
        "cancellation_reason": reservation.cancellation_reason,
        "updated_at": reservation.updated_at,
    }


def reservation_to_row(reservation: Reservation) -> dict[str, Any]:
    pricing = reservation.pricing
    row = {
        "id": reservation.id,
        "reservation_code": reservation.reservation_code,
        "booking_reference": reservation.booking_reference,
        "owner_id": reservation.owner_id,
        "currency_code": pricing.currency_code,
        "base_total": pricing.base,
        "taxes_total": pricing.taxes,
        "fees_total": pricing.fees,
        "discount_total": pricing.discounts,
        "total_amount": pricing.total,
        "passenger_count": reservation.passenger_count,
        "flight_numbers": _search_tokens(reservation.flight_designators),
        "first_departure_at": reservation.first_departure,
        "last_arrival_at": reservation.last_arrival,
        "hold_expires_at": reservation.hold_expires_at,
        "itineraries": [itinerary_to_dict(i) for i in reservation.itineraries],
        "pricing": pricing_to_dict(pricing),
        "provider_offers": reservation.provider_offers,
        "lock_version": reservation.lock_version,
        "created_at": reservation.created_at,
    }
    row.update(mutable_columns(reservation))
    return row


def history_to_row(reservation_id: str, seq: int, entry: StatusHistoryEntry) -> dict[str, Any]:
    return {
        "reservation_id": reservation_id,
        "seq": seq,
        "status": entry.status.value,
        "changed_at": entry.changed_at,
        "reason": entry.reason,
    }


def change_to_row(reservation_id: str, seq: int, entry: ChangeLogEntry) -> dict[str, Any]:
    return {
        "reservation_id": reservation_id,
        "seq": seq,
        "field": entry.field,
        "old_value": entry.old_value,
        "new_value": entry.new_value,
        "changed_at": entry.changed_at,
        "changed_by": entry.changed_by,
    }


def reservation_from_row(row: Any, history_rows: list[Any], change_rows: list[Any]) -> Reservation:
    return Reservation(
        id=row["id"],
        reservation_code=row["reservation_code"],
        booking_reference=row["booking_reference"],
        owner_id=row["owner_id"],
        status=ReservationStatus(row["status"]),
        itineraries=[itinerary_from_dict(i) for i in row["itineraries"]],
        passengers=[passenger_from_dict(p) for p in row["passengers"]],
        contact=contact_from_dict(row["contact"]),
        pricing=pricing_from_dict(row["pricing"]),
        provider_offers=list(row["provider_offers"] or []),
        hold_expires_at=as_utc(row["hold_expires_at"]),
        remote_order_id=row["remote_order_id"],
        last_synced_at=as_utc(row["last_synced_at"]),
        confirmation_pending=bool(row["confirmation_pending"]),
        remote_cancel_pending=bool(row["remote_cancel_pending"]),
        last_provider_error=row["last_provider_error"],
        cancellation_reason=row["cancellation_reason"],
        lock_version=row["lock_version"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
        status_history=[
            StatusHistoryEntry(
                status=ReservationStatus(h["status"]),
                changed_at=as_utc(h["changed_at"]),
                reason=h["reason"],
            )
            for h in history_rows
        ],
        change_log=[
            ChangeLogEntry(
                field=c["field"],
                old_value=c["old_value"],
                new_value=c["new_value"],
                changed_at=as_utc(c["changed_at"]),
                changed_by=c["changed_by"],
            )
            for c in change_rows
        ],
    )
