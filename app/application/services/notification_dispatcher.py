"""Fire-and-forget delivery of booking notifications."""

import asyncio
import logging
from collections.abc import Awaitable

from app.application.interfaces.notifier import Notifier
from app.domain.entities.reservation import Reservation

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Schedules notifier calls as background tasks.

    The caller never waits on delivery and a failing notifier is only logged:
    a booking outcome is never changed by its notification.
    """

    def __init__(self, notifier: Notifier):
        self._notifier = notifier
        self._tasks: set[asyncio.Task] = set()

    def booking_created(self, reservation: Reservation) -> None:
        self._spawn(self._notifier.booking_created(reservation), "booking_created", reservation)

    def booking_cancelled(self, reservation: Reservation) -> None:
        self._spawn(self._notifier.booking_cancelled(reservation), "booking_cancelled", reservation)

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _spawn(self, coro: Awaitable[None], event: str, reservation: Reservation) -> None:
        task = asyncio.create_task(self._deliver(coro, event, reservation.reservation_code))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _deliver(coro: Awaitable[None], event: str, reservation_code: str) -> None:
        try:
            await coro
        except Exception:
            logger.exception(
                "Notification delivery failed",
                extra={"event": event, "reservation_code": reservation_code},
            )
