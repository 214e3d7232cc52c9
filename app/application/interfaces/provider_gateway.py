from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from app.domain.entities.passenger import Contact, Passenger

CANCELLED_REMOTE_STATUSES = frozenset({"CANCELLED", "CANCELED"})


@dataclass(frozen=True)
class Confirmed:
    """The provider acknowledged the request and owns ``remote_order_id``."""

    remote_order_id: str


@dataclass(frozen=True)
class Rejected:
    """Definitive refusal. Nothing was created remotely."""

    reason_code: str
    message: str | None = None


@dataclass(frozen=True)
class Indeterminate:
    """Timeout or transport failure after retries: the remote state is unknown."""

    detail: str | None = None


@dataclass(frozen=True)
class OrderSnapshot:
    remote_order_id: str
    status: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_cancelled(self) -> bool:
        return self.status.upper() in CANCELLED_REMOTE_STATUSES


ProviderOutcome = Confirmed | Rejected | Indeterminate
FetchOutcome = OrderSnapshot | Rejected | Indeterminate


@dataclass(frozen=True)
class ProviderOrder:
    """Everything the provider needs to confirm a held reservation."""

    reservation_code: str
    offers: list[dict[str, Any]]
    passengers: list[Passenger]
    contact: Contact


class ProviderGateway(ABC):
    """
    Remote flight provider.

    Implementations never raise for remote failures; they classify them into
    outcomes. ``confirm`` is idempotent on the reservation code, so a retried
    confirmation cannot create a second remote order.
    """

    @abstractmethod
    async def confirm(self, order: ProviderOrder) -> ProviderOutcome:
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, remote_order_id: str) -> ProviderOutcome:
        """``Confirmed`` means the provider acknowledged the cancellation."""
        raise NotImplementedError

    @abstractmethod
    async def fetch(self, remote_order_id: str) -> FetchOutcome:
        raise NotImplementedError
