"""
Domain layer - flight booking lifecycle.

Pure business logic with no framework dependencies: entities, value objects
and domain exceptions.

Layout:
- entities/: Reservation aggregate, itinerary snapshot, passengers
- value_objects/: immutable values (Money, ReservationCode, Pricing, patches)
- errors.py: domain-specific exceptions
"""

from app.domain.entities import (
    Contact,
    Itinerary,
    Passenger,
    Reservation,
    ReservationStatus,
    StatusHistoryEntry,
)
from app.domain.errors import (
    AlreadyTerminalError,
    ConflictError,
    DomainError,
    ForbiddenError,
    NotEditableError,
    ReservationNotFoundError,
    ValidationError,
)
from app.domain.value_objects import BookingReference, Money, Pricing, ReservationCode

__all__ = [
    # Entities
    "Reservation",
    "ReservationStatus",
    "StatusHistoryEntry",
    "Itinerary",
    "Passenger",
    "Contact",
    # Value Objects
    "Money",
    "Pricing",
    "ReservationCode",
    "BookingReference",
    # Errors
    "DomainError",
    "ValidationError",
    "ReservationNotFoundError",
    "ForbiddenError",
    "AlreadyTerminalError",
    "NotEditableError",
    "ConflictError",
]
