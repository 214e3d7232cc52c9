"""Entities of the booking domain."""

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
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    ChangeLogEntry,
    Reservation,
    ReservationStatus,
    StatusHistoryEntry,
)

__all__ = [
    # Reservation
    "Reservation",
    "ReservationStatus",
    "StatusHistoryEntry",
    "ChangeLogEntry",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    # Itinerary
    "Itinerary",
    "FlightSegment",
    "CabinClass",
    # Passenger
    "Passenger",
    "PassengerType",
    "Gender",
    "SeatPreference",
    "TravelDocument",
    "Contact",
    "Address",
]
