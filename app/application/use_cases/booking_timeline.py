from app.application.dtos.booking_dto import CallerScope, TimelineEvent
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.use_cases._shared import load_reservation


class BookingTimelineUseCase:
    """Chronological view merging status history, field changes and the last provider sync."""

    def __init__(self, repo: ReservationRepo, tx: TransactionManager) -> None:
        self._repo = repo
        self._tx = tx

    async def execute(self, scope: CallerScope, reservation_id: str) -> list[TimelineEvent]:
        reservation = await load_reservation(self._repo, self._tx, reservation_id, scope)

        events = [
            TimelineEvent(
                at=entry.changed_at,
                kind="status",
                description=entry.reason or f"Status changed to {entry.status.value}",
                status=entry.status.value,
            )
            for entry in reservation.status_history
        ]
        events.extend(
            TimelineEvent(
                at=change.changed_at,
                kind="change",
                description=f"{change.field} updated",
            )
            for change in reservation.change_log
        )
        if reservation.last_synced_at:
            events.append(
                TimelineEvent(
                    at=reservation.last_synced_at,
                    kind="sync",
                    description="Synchronized with provider",
                )
            )
        # stable sort keeps history order for equal timestamps
        return sorted(events, key=lambda event: event.at)
