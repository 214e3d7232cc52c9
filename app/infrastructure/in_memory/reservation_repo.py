import asyncio
import copy
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from app.application.dtos.booking_dto import BookingSearchCriteria, BookingStats
from app.application.interfaces.reservation_repo import ReservationRepo
from app.domain.entities.reservation import (
    ChangeLogEntry,
    Reservation,
    ReservationStatus,
    StatusHistoryEntry,
)
from app.domain.errors import DuplicateIdentifierError, StaleReservationError

REVENUE_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED)


class InMemoryReservationRepo(ReservationRepo):
    """
    Process-local store for development and tests.

    Reads hand out deep copies so callers can only change stored state through
    ``compare_and_set``.
    """

    def __init__(self) -> None:
        self.reservations: dict[str, Reservation] = {}
        self._by_code: dict[str, str] = {}
        self._by_reference: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def add(self, reservation: Reservation) -> Reservation:
        async with self._lock:
            if (
                reservation.reservation_code in self._by_code
                or reservation.booking_reference in self._by_reference
                or reservation.id in self.reservations
            ):
                raise DuplicateIdentifierError(reservation.reservation_code, reservation.booking_reference)
            self.reservations[reservation.id] = copy.deepcopy(reservation)
            self._by_code[reservation.reservation_code] = reservation.id
            self._by_reference[reservation.booking_reference] = reservation.id
        return reservation

    async def get_by_id(self, reservation_id: str) -> Reservation | None:
        return self._copy(self.reservations.get(reservation_id))

    async def get_by_code(self, reservation_code: str) -> Reservation | None:
        reservation_id = self._by_code.get(reservation_code)
        return self._copy(self.reservations.get(reservation_id)) if reservation_id else None

    async def get_by_booking_reference(self, booking_reference: str) -> Reservation | None:
        reservation_id = self._by_reference.get(booking_reference)
        return self._copy(self.reservations.get(reservation_id)) if reservation_id else None

    async def compare_and_set(
        self,
        reservation: Reservation,
        *,
        expected_status: ReservationStatus,
        expected_lock_version: int,
        appended_history: Sequence[StatusHistoryEntry] = (),
        appended_changes: Sequence[ChangeLogEntry] = (),
    ) -> Reservation:
        async with self._lock:
            stored = self.reservations.get(reservation.id)
            if (
                stored is None
                or stored.status != expected_status
                or stored.lock_version != expected_lock_version
            ):
                raise StaleReservationError(reservation.id, expected_status.value, expected_lock_version)

            updated = copy.deepcopy(reservation)
            updated.status_history = stored.status_history + list(appended_history)
            updated.change_log = stored.change_log + list(appended_changes)
            updated.lock_version = expected_lock_version + 1
            self.reservations[reservation.id] = updated

        reservation.lock_version = expected_lock_version + 1
        return reservation

    async def list_by_owner(
        self,
        owner_id: str,
        status: ReservationStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Reservation], int]:
        owned = [
            r
            for r in self._newest_first()
            if r.owner_id == owner_id and (status is None or r.status == status)
        ]
        return [copy.deepcopy(r) for r in owned[offset : offset + limit]], len(owned)

    async def search(self, criteria: BookingSearchCriteria, limit: int = 100) -> list[Reservation]:
        matches = [r for r in self._newest_first() if _matches(r, criteria)]
        return [copy.deepcopy(r) for r in matches[:limit]]

    async def list_expired_holds(self, now: datetime, limit: int = 100) -> list[Reservation]:
        expired = sorted(
            (r for r in self.reservations.values() if r.hold_expired(now)),
            key=lambda r: r.hold_expires_at,
        )
        return [copy.deepcopy(r) for r in expired[:limit]]

    async def list_flown(self, now: datetime, limit: int = 100) -> list[Reservation]:
        flown = sorted(
            (
                r
                for r in self.reservations.values()
                if r.status == ReservationStatus.CONFIRMED and r.has_flown(now)
            ),
            key=lambda r: r.last_arrival,
        )
        return [copy.deepcopy(r) for r in flown[:limit]]

    async def list_resync_candidates(self, limit: int = 100) -> list[Reservation]:
        candidates = sorted(
            (
                r
                for r in self.reservations.values()
                if (r.status == ReservationStatus.PENDING and r.confirmation_pending)
                or (r.is_terminal and r.remote_cancel_pending)
            ),
            key=lambda r: r.updated_at,
        )
        return [copy.deepcopy(r) for r in candidates[:limit]]

    async def stats(
        self,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> BookingStats:
        selected = [
            r
            for r in self.reservations.values()
            if (created_from is None or r.created_at >= created_from)
            and (created_to is None or r.created_at <= created_to)
        ]
        by_status: dict[str, int] = {}
        revenue: dict[str, Decimal] = {}
        for r in selected:
            by_status[r.status.value] = by_status.get(r.status.value, 0) + 1
            if r.status in REVENUE_STATUSES:
                currency = r.pricing.currency_code
                revenue[currency] = revenue.get(currency, Decimal("0")) + r.pricing.total

        return BookingStats(
            total=len(selected),
            by_status=by_status,
            passengers=sum(r.passenger_count for r in selected),
            revenue_by_currency=revenue,
        )

    def _newest_first(self) -> list[Reservation]:
        return sorted(self.reservations.values(), key=lambda r: (r.created_at, r.id), reverse=True)

    @staticmethod
    def _copy(reservation: Reservation | None) -> Reservation | None:
        return copy.deepcopy(reservation) if reservation is not None else None


def _matches(reservation: Reservation, criteria: BookingSearchCriteria) -> bool:
    if criteria.reservation_code and reservation.reservation_code != criteria.reservation_code:
        return False
    if criteria.booking_reference and reservation.booking_reference != criteria.booking_reference:
        return False
    if criteria.email and reservation.contact.email.lower() != criteria.email.lower():
        return False
    if criteria.last_name and not any(
        p.last_name.upper() == criteria.last_name.upper() for p in reservation.passengers
    ):
        return False
    if criteria.flight_number and criteria.flight_number.upper() not in reservation.flight_designators:
        return False
    if criteria.status is not None and reservation.status != criteria.status:
        return False
    if criteria.owner_id and reservation.owner_id != criteria.owner_id:
        return False
    if criteria.created_from and reservation.created_at < criteria.created_from:
        return False
    if criteria.created_to and reservation.created_at > criteria.created_to:
        return False
    return True
