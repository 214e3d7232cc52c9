from abc import ABC, abstractmethod

from app.domain.entities.reservation import Reservation


class Notifier(ABC):
    """Outbound customer notifications. Failures never affect the booking."""

    @abstractmethod
    async def booking_created(self, reservation: Reservation) -> None:
        raise NotImplementedError

    @abstractmethod
    async def booking_cancelled(self, reservation: Reservation) -> None:
        raise NotImplementedError
