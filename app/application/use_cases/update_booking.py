import logging
from datetime import timedelta

from app.application.dtos.booking_dto import CallerScope
from app.application.interfaces.clock import Clock
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.use_cases._shared import apply_change, load_reservation
from app.domain.entities.reservation import Reservation
from app.domain.errors import ValidationError
from app.domain.value_objects.booking_patch import BookingPatch


class UpdateBookingUseCase:
    """
    Edits passenger and contact details of a confirmed reservation.

    Allowed only while confirmed and before the first departure minus the update
    cutoff. Every changed field lands in the change log.
    """

    def __init__(
        self,
        repo: ReservationRepo,
        tx: TransactionManager,
        clock: Clock,
        update_cutoff: timedelta = timedelta(hours=2),
    ) -> None:
        self._repo = repo
        self._tx = tx
        self._clock = clock
        self._update_cutoff = update_cutoff
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        scope: CallerScope,
        reservation_id: str,
        patches: list[BookingPatch],
    ) -> Reservation:
        if not patches:
            raise ValidationError("No changes supplied", code="EMPTY_PATCH", field="changes")

        await load_reservation(self._repo, self._tx, reservation_id, scope)
        now = self._clock.now()

        added = []

        def mutate(current: Reservation) -> bool:
            current.ensure_editable(now, self._update_cutoff)
            # a stale retry reapplies the patch, so keep only the last attempt
            added[:] = current.apply_patch(patches, now, actor=scope.user_id)
            return bool(added)

        reservation = await apply_change(self._repo, self._tx, reservation_id, mutate)
        self._logger.info(
            "Reservation updated",
            extra={
                "reservation_code": reservation.reservation_code,
                "updated_by": scope.user_id,
                "change_count": len(added),
            },
        )
        return reservation
