"""Ports of the application layer."""

from app.application.interfaces.clock import Clock, FakeClock, SystemClock
from app.application.interfaces.counter_store import CounterState, CounterStore
from app.application.interfaces.identifier_generator import (
    FakeIdentifierGenerator,
    IdentifierGenerator,
    SecureIdentifierGenerator,
)
from app.application.interfaces.notifier import Notifier
from app.application.interfaces.provider_gateway import (
    Confirmed,
    FetchOutcome,
    Indeterminate,
    OrderSnapshot,
    ProviderGateway,
    ProviderOrder,
    ProviderOutcome,
    Rejected,
)
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager

__all__ = [
    # Repositories
    "ReservationRepo",
    "CounterStore",
    "CounterState",
    # Gateways
    "ProviderGateway",
    "ProviderOrder",
    "ProviderOutcome",
    "FetchOutcome",
    "Confirmed",
    "Rejected",
    "Indeterminate",
    "OrderSnapshot",
    "Notifier",
    # Infrastructure
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "IdentifierGenerator",
    "SecureIdentifierGenerator",
    "FakeIdentifierGenerator",
]
