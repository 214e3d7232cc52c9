import logging

from app.application.dtos.booking_dto import SweepResult
from app.application.interfaces.clock import Clock
from app.application.interfaces.provider_gateway import (
    Confirmed,
    OrderSnapshot,
    ProviderGateway,
)
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.use_cases._shared import (
    apply_change,
    describe,
    load_reservation,
    order_for,
    record_confirmation,
)
from app.domain.entities.reservation import Reservation, ReservationStatus
from app.domain.errors import DomainError


class ResyncBookingUseCase:
    """
    Reconciles one reservation with the provider.

    - pending and awaiting confirmation: confirm again with the same idempotency key
    - confirmed: fetch the remote order; a remote cancellation is applied locally
    - cancelled or refunded with a remote cancel outstanding: retry the remote cancel

    A terminal status is never changed by resync.
    """

    def __init__(
        self,
        repo: ReservationRepo,
        tx: TransactionManager,
        gateway: ProviderGateway,
        clock: Clock,
    ) -> None:
        self._repo = repo
        self._tx = tx
        self._gateway = gateway
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, reservation_id: str) -> Reservation:
        reservation = await load_reservation(self._repo, self._tx, reservation_id)

        if reservation.is_terminal:
            if reservation.remote_cancel_pending and reservation.remote_order_id:
                return await self._retry_remote_cancel(reservation)
            return reservation

        if reservation.status == ReservationStatus.CONFIRMED and reservation.remote_order_id:
            return await self._refresh_confirmed(reservation)

        if reservation.status == ReservationStatus.PENDING and reservation.confirmation_pending:
            outcome = await self._gateway.confirm(order_for(reservation))
            self._logger.info(
                "Resync confirmation outcome",
                extra={"reservation_code": reservation.reservation_code, "outcome": describe(outcome)},
            )
            result = await record_confirmation(
                self._repo, self._tx, self._gateway, self._clock, reservation, outcome
            )
            return result.reservation

        return reservation

    async def _refresh_confirmed(self, reservation: Reservation) -> Reservation:
        snapshot = await self._gateway.fetch(reservation.remote_order_id)
        if not isinstance(snapshot, OrderSnapshot):
            self._logger.warning(
                "Could not fetch remote order",
                extra={"reservation_code": reservation.reservation_code, "outcome": describe(snapshot)},
            )
            return reservation

        now = self._clock.now()

        def mutate(current: Reservation) -> bool:
            current.last_synced_at = now
            if snapshot.is_cancelled and current.status == ReservationStatus.CONFIRMED:
                current.transition_to(ReservationStatus.CANCELLED, now, reason="Cancelled by provider")
                current.cancellation_reason = "Cancelled by provider"
            return True

        updated = await apply_change(self._repo, self._tx, reservation.id, mutate)
        if updated.status != reservation.status:
            self._logger.warning(
                "Remote order cancelled by provider",
                extra={"reservation_code": reservation.reservation_code},
            )
        return updated

    async def _retry_remote_cancel(self, reservation: Reservation) -> Reservation:
        outcome = await self._gateway.cancel(reservation.remote_order_id)
        if not isinstance(outcome, Confirmed):
            self._logger.warning(
                "Remote cancellation still outstanding",
                extra={"reservation_code": reservation.reservation_code, "outcome": describe(outcome)},
            )
            return reservation

        now = self._clock.now()

        def mutate(current: Reservation) -> bool:
            if not current.remote_cancel_pending:
                return False
            current.remote_cancel_pending = False
            current.last_synced_at = now
            current.updated_at = now
            return True

        return await apply_change(self._repo, self._tx, reservation.id, mutate)


class ResyncPendingBookingsUseCase:
    """Batch resync of every reservation with provider work outstanding."""

    def __init__(
        self,
        repo: ReservationRepo,
        tx: TransactionManager,
        resync: ResyncBookingUseCase,
        batch_size: int = 100,
    ) -> None:
        self._repo = repo
        self._tx = tx
        self._resync = resync
        self._batch_size = batch_size
        self._logger = logging.getLogger(__name__)

    async def execute(self) -> SweepResult:
        async with self._tx.start():
            candidates = await self._repo.list_resync_candidates(limit=self._batch_size)

        result = SweepResult()
        for candidate in candidates:
            try:
                updated = await self._resync.execute(candidate.id)
            except DomainError as exc:
                self._logger.warning(
                    "Resync failed",
                    extra={"reservation_code": candidate.reservation_code, "error_code": exc.code},
                )
                result.failed.append(candidate.reservation_code)
                continue

            if updated.lock_version != candidate.lock_version:
                result.processed.append(candidate.reservation_code)
            else:
                result.skipped.append(candidate.reservation_code)
        return result
