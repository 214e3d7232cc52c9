"""Helpers shared by the reservation use cases."""

import logging
from collections.abc import Callable

from app.application.dtos.booking_dto import CallerScope, ConfirmationState, CreateBookingResult
from app.application.interfaces.clock import Clock
from app.application.interfaces.provider_gateway import (
    Confirmed,
    Indeterminate,
    ProviderGateway,
    ProviderOrder,
    ProviderOutcome,
    Rejected,
)
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.domain.entities.reservation import Reservation, ReservationStatus
from app.domain.errors import ForbiddenError, ReservationNotFoundError, StaleReservationError

logger = logging.getLogger(__name__)

CONFLICT_RETRIES = 1


async def load_reservation(
    repo: ReservationRepo,
    tx: TransactionManager,
    reservation_id: str,
    scope: CallerScope | None = None,
) -> Reservation:
    """Load by id; a caller scope, when given, must own the reservation or be admin."""
    async with tx.start():
        reservation = await repo.get_by_id(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError(reservation_id)
    if scope is not None and not scope.is_admin and reservation.owner_id != scope.user_id:
        raise ForbiddenError()
    return reservation


async def apply_change(
    repo: ReservationRepo,
    tx: TransactionManager,
    reservation_id: str,
    mutate: Callable[[Reservation], bool],
) -> Reservation:
    """
    Read, mutate and compare-and-set a reservation in one transaction.

    ``mutate`` works on a fresh copy and returns False when there is nothing to
    write. Domain errors it raises propagate untouched. A lost compare-and-set is
    retried once against the re-read state, then surfaces as ConflictError.
    """
    attempt = 0
    while True:
        try:
            async with tx.start():
                current = await repo.get_by_id(reservation_id)
                if current is None:
                    raise ReservationNotFoundError(reservation_id)

                expected_status = current.status
                expected_lock_version = current.lock_version
                history_len = len(current.status_history)
                changes_len = len(current.change_log)

                if not mutate(current):
                    return current

                return await repo.compare_and_set(
                    current,
                    expected_status=expected_status,
                    expected_lock_version=expected_lock_version,
                    appended_history=current.status_history[history_len:],
                    appended_changes=current.change_log[changes_len:],
                )
        except StaleReservationError:
            if attempt >= CONFLICT_RETRIES:
                raise
            attempt += 1
            logger.info(
                "Reservation changed concurrently, retrying",
                extra={"reservation_id": reservation_id, "attempt": attempt},
            )


def order_for(reservation: Reservation) -> ProviderOrder:
    return ProviderOrder(
        reservation_code=reservation.reservation_code,
        offers=reservation.provider_offers,
        passengers=list(reservation.passengers),
        contact=reservation.contact,
    )


async def record_confirmation(
    repo: ReservationRepo,
    tx: TransactionManager,
    gateway: ProviderGateway,
    clock: Clock,
    reservation: Reservation,
    outcome: ProviderOutcome,
) -> CreateBookingResult:
    """
    Persist what a confirmation attempt taught us about a pending reservation.

    Confirmed moves it to confirmed; Rejected keeps it pending with the reason;
    Indeterminate keeps it flagged for resync. If the reservation left pending
    while the call was in flight, a remote order it no longer wants is cancelled.
    """
    now = clock.now()
    orphaned: list[str] = []

    def mutate(current: Reservation) -> bool:
        if current.status != ReservationStatus.PENDING:
            if isinstance(outcome, Confirmed) and current.remote_order_id != outcome.remote_order_id:
                orphaned.append(outcome.remote_order_id)
            return False
        if isinstance(outcome, Confirmed):
            current.confirm(outcome.remote_order_id, now)
        elif isinstance(outcome, Rejected):
            current.record_rejection(outcome.reason_code, now)
        else:
            current.record_indeterminate(outcome.detail, now)
        return True

    try:
        stored = await apply_change(repo, tx, reservation.id, mutate)
    except StaleReservationError:
        logger.error(
            "Could not record provider outcome; left for resync",
            extra={"reservation_code": reservation.reservation_code, "outcome": type(outcome).__name__},
        )
        return CreateBookingResult(reservation=reservation, confirmation=ConfirmationState.UNKNOWN)

    if orphaned:
        await _cancel_orphan(gateway, stored, orphaned[0])

    if isinstance(outcome, Confirmed) and stored.status == ReservationStatus.CONFIRMED:
        return CreateBookingResult(reservation=stored, confirmation=ConfirmationState.CONFIRMED)
    if isinstance(outcome, Rejected):
        return CreateBookingResult(
            reservation=stored,
            confirmation=ConfirmationState.REJECTED,
            provider_reason_code=outcome.reason_code,
        )
    return CreateBookingResult(reservation=stored, confirmation=ConfirmationState.UNKNOWN)


async def _cancel_orphan(gateway: ProviderGateway, reservation: Reservation, remote_order_id: str) -> None:
    logger.warning(
        "Provider confirmed a reservation that is no longer pending; cancelling remote order",
        extra={
            "reservation_code": reservation.reservation_code,
            "status": reservation.status.value,
            "remote_order_id": remote_order_id,
        },
    )
    outcome = await gateway.cancel(remote_order_id)
    if not isinstance(outcome, Confirmed):
        logger.error(
            "Orphaned remote order could not be cancelled",
            extra={
                "reservation_code": reservation.reservation_code,
                "remote_order_id": remote_order_id,
                "outcome": type(outcome).__name__,
            },
        )


def describe(outcome: ProviderOutcome) -> str:
    if isinstance(outcome, Confirmed):
        return f"confirmed:{outcome.remote_order_id}"
    if isinstance(outcome, Rejected):
        return f"rejected:{outcome.reason_code}"
    if isinstance(outcome, Indeterminate):
        return f"indeterminate:{outcome.detail}"
    return repr(outcome)
