"""
Application layer - flight booking lifecycle.

Use cases, DTOs and the ports (interfaces) the infrastructure implements.
Orchestrates the domain and the remote provider.

Layout:
- use_cases/: one class per operation, each exposing ``execute``
- services/: pricing, rate limiting, notification dispatch
- dtos/: data transfer objects
- interfaces/: ports for adapters
"""

from app.application.dtos import (
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
from app.application.interfaces import (
    Clock,
    CounterStore,
    FakeClock,
    FakeIdentifierGenerator,
    IdentifierGenerator,
    Notifier,
    ProviderGateway,
    ReservationRepo,
    SecureIdentifierGenerator,
    SystemClock,
    TransactionManager,
)

__all__ = [
    # DTOs
    "BookingPage",
    "BookingSearchCriteria",
    "BookingStats",
    "CallerScope",
    "ConfirmationState",
    "CreateBookingDTO",
    "CreateBookingResult",
    "OfferDTO",
    "PublicReservationView",
    "SweepResult",
    "TimelineEvent",
    # Interfaces - Repositories
    "ReservationRepo",
    "CounterStore",
    # Interfaces - Gateways
    "ProviderGateway",
    "Notifier",
    # Interfaces - Infrastructure
    "TransactionManager",
    # Interfaces - Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "IdentifierGenerator",
    "SecureIdentifierGenerator",
    "FakeIdentifierGenerator",
]
