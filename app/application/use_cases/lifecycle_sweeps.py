import logging

from app.application.dtos.booking_dto import SweepResult
from app.application.interfaces.clock import Clock
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.use_cases._shared import apply_change
from app.domain.entities.reservation import Reservation, ReservationStatus
from app.domain.errors import DomainError


class ExpireHoldsUseCase:
    """
    Expires pending holds past their deadline without calling the provider.

    A pending reservation that already carries a remote order id is skipped: it
    has to be resynced or cancelled first.
    """

    def __init__(
        self,
        repo: ReservationRepo,
        tx: TransactionManager,
        clock: Clock,
        batch_size: int = 100,
    ) -> None:
        self._repo = repo
        self._tx = tx
        self._clock = clock
        self._batch_size = batch_size
        self._logger = logging.getLogger(__name__)

    async def execute(self) -> SweepResult:
        now = self._clock.now()
        async with self._tx.start():
            candidates = await self._repo.list_expired_holds(now, limit=self._batch_size)

        result = SweepResult()
        for candidate in candidates:
            if candidate.remote_order_id:
                self._logger.warning(
                    "Expired hold has a remote order; resync required",
                    extra={"reservation_code": candidate.reservation_code},
                )
                result.skipped.append(candidate.reservation_code)
                continue

            def mutate(current: Reservation) -> bool:
                if current.remote_order_id or not current.hold_expired(now):
                    return False
                current.expire(now)
                return True

            try:
                updated = await apply_change(self._repo, self._tx, candidate.id, mutate)
            except DomainError as exc:
                self._logger.info(
                    "Hold not expired",
                    extra={"reservation_code": candidate.reservation_code, "error_code": exc.code},
                )
                result.skipped.append(candidate.reservation_code)
                continue

            if updated.status == ReservationStatus.EXPIRED:
                result.processed.append(candidate.reservation_code)
            else:
                result.skipped.append(candidate.reservation_code)

        if result.processed:
            self._logger.info("Holds expired", extra={"count": len(result.processed)})
        return result


class CompleteFlownBookingsUseCase:
    """Marks confirmed reservations completed once their last segment has arrived."""

    def __init__(
        self,
        repo: ReservationRepo,
        tx: TransactionManager,
        clock: Clock,
        batch_size: int = 100,
    ) -> None:
        self._repo = repo
        self._tx = tx
        self._clock = clock
        self._batch_size = batch_size
        self._logger = logging.getLogger(__name__)

    async def execute(self) -> SweepResult:
        now = self._clock.now()
        async with self._tx.start():
            candidates = await self._repo.list_flown(now, limit=self._batch_size)

        result = SweepResult()
        for candidate in candidates:

            def mutate(current: Reservation) -> bool:
                if current.status != ReservationStatus.CONFIRMED or not current.has_flown(now):
                    return False
                current.complete(now)
                return True

            try:
                updated = await apply_change(self._repo, self._tx, candidate.id, mutate)
            except DomainError as exc:
                self._logger.info(
                    "Reservation not completed",
                    extra={"reservation_code": candidate.reservation_code, "error_code": exc.code},
                )
                result.skipped.append(candidate.reservation_code)
                continue

            if updated.status == ReservationStatus.COMPLETED:
                result.processed.append(candidate.reservation_code)
            else:
                result.skipped.append(candidate.reservation_code)
        return result
