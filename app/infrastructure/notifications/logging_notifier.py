import logging

from app.application.interfaces.notifier import Notifier
from app.domain.entities.reservation import Reservation

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """Default notifier when no webhook is configured."""

    async def booking_created(self, reservation: Reservation) -> None:
        logger.info(
            "Booking confirmation notification",
            extra={
                "reservation_code": reservation.reservation_code,
                "booking_reference": reservation.booking_reference,
                "status": reservation.status.value,
                "contact_email": reservation.contact.email,
            },
        )

    async def booking_cancelled(self, reservation: Reservation) -> None:
        logger.info(
            "Booking cancellation notification",
            extra={
                "reservation_code": reservation.reservation_code,
                "status": reservation.status.value,
                "contact_email": reservation.contact.email,
            },
        )
