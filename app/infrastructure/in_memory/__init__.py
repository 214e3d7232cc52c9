"""In-memory implementations for development and testing."""

from app.infrastructure.in_memory.counter_store import InMemoryCounterStore
from app.infrastructure.in_memory.provider_gateway import StubProviderGateway
from app.infrastructure.in_memory.reservation_repo import InMemoryReservationRepo
from app.infrastructure.in_memory.transaction_manager import NoopTransactionManager

__all__ = [
    # Repositories
    "InMemoryReservationRepo",
    "InMemoryCounterStore",
    # Gateways
    "StubProviderGateway",
    # Infrastructure
    "NoopTransactionManager",
]
