"""DTOs (Data Transfer Objects) of the application layer."""

from app.application.dtos.booking_dto import (
    BookingPage,
    BookingSearchCriteria,
    BookingStats,
    CallerScope,
    ConfirmationState,
    CreateBookingDTO,
    CreateBookingResult,
    OfferDTO,
    PublicReservationView,
    SweepResult,
    TimelineEvent,
)

__all__ = [
    "CallerScope",
    "OfferDTO",
    "CreateBookingDTO",
    "CreateBookingResult",
    "ConfirmationState",
    "BookingPage",
    "BookingSearchCriteria",
    "BookingStats",
    "PublicReservationView",
    "TimelineEvent",
    "SweepResult",
]
