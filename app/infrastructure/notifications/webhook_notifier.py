import logging
from typing import Any

import httpx

from app.application.interfaces.notifier import Notifier
from app.domain.entities.reservation import Reservation

logger = logging.getLogger(__name__)


class WebhookNotifier(Notifier):
    """Posts booking events to an external messaging service."""

    def __init__(self, url: str, timeout_seconds: float = 5.0) -> None:
        self._url = url
        self._timeout = timeout_seconds

    async def booking_created(self, reservation: Reservation) -> None:
        await self._post("booking.created", reservation)

    async def booking_cancelled(self, reservation: Reservation) -> None:
        await self._post(
            "booking.cancelled",
            reservation,
            {"cancellation_reason": reservation.cancellation_reason},
        )

    async def _post(self, event: str, reservation: Reservation, extra: dict[str, Any] | None = None) -> None:
        payload = {
            "event": event,
            "reservation_code": reservation.reservation_code,
            "booking_reference": reservation.booking_reference,
            "status": reservation.status.value,
            "email": reservation.contact.email,
            "passengers": [p.full_name for p in reservation.passengers],
            "total": str(reservation.pricing.total),
            "currency": reservation.pricing.currency_code,
            **(extra or {}),
        }
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(self._url, json=payload)
        response.raise_for_status()
        logger.info(
            "Notification delivered",
            extra={"event": event, "reservation_code": reservation.reservation_code},
        )
