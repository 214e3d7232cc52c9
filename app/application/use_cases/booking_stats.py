from datetime import datetime

from app.application.dtos.booking_dto import BookingStats, CallerScope
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.domain.errors import ForbiddenError, ValidationError


class BookingStatsUseCase:
    """Counts per status, passengers booked and revenue of confirmed or completed bookings."""

    def __init__(self, repo: ReservationRepo, tx: TransactionManager) -> None:
        self._repo = repo
        self._tx = tx

    async def execute(
        self,
        scope: CallerScope,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> BookingStats:
        if not scope.is_admin:
            raise ForbiddenError("Booking statistics require the admin role")
        if created_from and created_to and created_from > created_to:
            raise ValidationError("created_from must not be after created_to", field="created_from")

        async with self._tx.start():
            return await self._repo.stats(created_from=created_from, created_to=created_to)
