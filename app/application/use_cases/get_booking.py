from app.application.dtos.booking_dto import CallerScope
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.use_cases._shared import load_reservation
from app.domain.entities.reservation import Reservation


class GetBookingUseCase:
    def __init__(self, repo: ReservationRepo, tx: TransactionManager) -> None:
        self._repo = repo
        self._tx = tx

    async def execute(self, scope: CallerScope, reservation_id: str) -> Reservation:
        """Full reservation for its owner or an admin. Never calls the provider."""
        return await load_reservation(self._repo, self._tx, reservation_id, scope)
