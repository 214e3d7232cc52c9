import logging

from app.application.dtos.booking_dto import CallerScope
from app.application.interfaces.clock import Clock
from app.application.interfaces.provider_gateway import Confirmed, ProviderGateway
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.services.notification_dispatcher import NotificationDispatcher
from app.application.use_cases._shared import apply_change, describe, load_reservation
from app.domain.entities.reservation import Reservation
from app.domain.errors import MissingReasonError, StaleReservationError


class CancelBookingUseCase:
    """
    Cancels a reservation locally first, then best-effort at the provider.

    The local transition is authoritative: if the provider does not acknowledge
    the cancellation, the reservation stays cancelled with ``remote_cancel_pending``
    set and resync retries the remote side later.
    """

    def __init__(
        self,
        repo: ReservationRepo,
        tx: TransactionManager,
        gateway: ProviderGateway,
        clock: Clock,
        notifications: NotificationDispatcher,
    ) -> None:
        self._repo = repo
        self._tx = tx
        self._gateway = gateway
        self._clock = clock
        self._notifications = notifications
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        scope: CallerScope,
        reservation_id: str,
        reason: str | None,
        refund: bool = False,
    ) -> Reservation:
        reason = (reason or "").strip()
        if not reason:
            raise MissingReasonError()

        await load_reservation(self._repo, self._tx, reservation_id, scope)
        now = self._clock.now()

        def mutate(current: Reservation) -> bool:
            current.cancel(reason, now, refund=refund)
            return True

        reservation = await apply_change(self._repo, self._tx, reservation_id, mutate)
        self._logger.info(
            "Reservation cancelled",
            extra={
                "reservation_code": reservation.reservation_code,
                "status": reservation.status.value,
                "cancelled_by": scope.user_id,
                "remote_cancel_pending": reservation.remote_cancel_pending,
            },
        )

        if reservation.remote_cancel_pending and reservation.remote_order_id:
            reservation = await self._cancel_remote(reservation)

        self._notifications.booking_cancelled(reservation)
        return reservation

    async def _cancel_remote(self, reservation: Reservation) -> Reservation:
        outcome = await self._gateway.cancel(reservation.remote_order_id)
        if not isinstance(outcome, Confirmed):
            self._logger.warning(
                "Remote cancellation not acknowledged; will retry on resync",
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

        try:
            return await apply_change(self._repo, self._tx, reservation.id, mutate)
        except StaleReservationError:
            self._logger.warning(
                "Remote cancellation acknowledged but flag not cleared; resync will reconcile",
                extra={"reservation_code": reservation.reservation_code},
            )
            return reservation
