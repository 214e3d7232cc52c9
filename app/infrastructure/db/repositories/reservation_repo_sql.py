import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.booking_dto import BookingSearchCriteria, BookingStats
from app.application.interfaces.reservation_repo import ReservationRepo
from app.domain.entities.reservation import (
    TERMINAL_STATUSES,
    ChangeLogEntry,
    Reservation,
    ReservationStatus,
    StatusHistoryEntry,
)
from app.domain.errors import DuplicateIdentifierError, StaleReservationError
from app.domain.value_objects.money import quantize
from app.infrastructure.db.mappers import (
    change_to_row,
    history_to_row,
    mutable_columns,
    reservation_from_row,
    reservation_to_row,
)
from app.infrastructure.db.tables import (
    reservation_change_log,
    reservation_status_history,
    reservations,
)

logger = logging.getLogger(__name__)

REVENUE_STATUSES = (ReservationStatus.CONFIRMED.value, ReservationStatus.COMPLETED.value)


class ReservationRepoSQL(ReservationRepo):
    """
    SQLAlchemy Core implementation.

    Must be used inside ``TransactionManager.start()``; the repository never
    commits on its own.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, reservation: Reservation) -> Reservation:
        try:
            await self._session.execute(insert(reservations).values(reservation_to_row(reservation)))
        except IntegrityError as exc:
            raise DuplicateIdentifierError(
                reservation.reservation_code, reservation.booking_reference
            ) from exc

        await self._insert_history(reservation.id, 0, reservation.status_history)
        await self._insert_changes(reservation.id, 0, reservation.change_log)
        return reservation

    async def get_by_id(self, reservation_id: str) -> Reservation | None:
        return await self._get_one(reservations.c.id == reservation_id)

    async def get_by_code(self, reservation_code: str) -> Reservation | None:
        return await self._get_one(reservations.c.reservation_code == reservation_code)

    async def get_by_booking_reference(self, booking_reference: str) -> Reservation | None:
        return await self._get_one(reservations.c.booking_reference == booking_reference)

    async def compare_and_set(
        self,
        reservation: Reservation,
        *,
        expected_status: ReservationStatus,
        expected_lock_version: int,
        appended_history: Sequence[StatusHistoryEntry] = (),
        appended_changes: Sequence[ChangeLogEntry] = (),
    ) -> Reservation:
        new_version = expected_lock_version + 1
        stmt = (
            update(reservations)
            .where(
                reservations.c.id == reservation.id,
                reservations.c.status == expected_status.value,
                reservations.c.lock_version == expected_lock_version,
            )
            .values(**mutable_columns(reservation), lock_version=new_version)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            logger.info(
                "Compare-and-set lost",
                extra={
                    "reservation_id": reservation.id,
                    "expected_status": expected_status.value,
                    "expected_lock_version": expected_lock_version,
                },
            )
            raise StaleReservationError(reservation.id, expected_status.value, expected_lock_version)

        await self._insert_history(
            reservation.id,
            len(reservation.status_history) - len(appended_history),
            appended_history,
        )
        await self._insert_changes(
            reservation.id,
            len(reservation.change_log) - len(appended_changes),
            appended_changes,
        )
        reservation.lock_version = new_version
        return reservation

    async def list_by_owner(
        self,
        owner_id: str,
        status: ReservationStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Reservation], int]:
        conditions = [reservations.c.owner_id == owner_id]
        if status is not None:
            conditions.append(reservations.c.status == status.value)

        total = await self._session.scalar(
            select(func.count()).select_from(reservations).where(*conditions)
        )
        items = await self._get_many(
            select(reservations)
            .where(*conditions)
            .order_by(reservations.c.created_at.desc(), reservations.c.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return items, int(total or 0)

    async def search(self, criteria: BookingSearchCriteria, limit: int = 100) -> list[Reservation]:
        conditions = []
        if criteria.reservation_code:
            conditions.append(reservations.c.reservation_code == criteria.reservation_code)
        if criteria.booking_reference:
            conditions.append(reservations.c.booking_reference == criteria.booking_reference)
        if criteria.email:
            conditions.append(reservations.c.contact_email == criteria.email.lower())
        if criteria.last_name:
            conditions.append(
                reservations.c.passenger_last_names.contains(f"|{criteria.last_name.upper()}|")
            )
        if criteria.flight_number:
            conditions.append(
                reservations.c.flight_numbers.contains(f"|{criteria.flight_number.upper()}|")
            )
        if criteria.status is not None:
            conditions.append(reservations.c.status == criteria.status.value)
        if criteria.owner_id:
            conditions.append(reservations.c.owner_id == criteria.owner_id)
        if criteria.created_from:
            conditions.append(reservations.c.created_at >= criteria.created_from)
        if criteria.created_to:
            conditions.append(reservations.c.created_at <= criteria.created_to)

        return await self._get_many(
            select(reservations)
            .where(*conditions)
            .order_by(reservations.c.created_at.desc())
            .limit(limit)
        )

    async def list_expired_holds(self, now: datetime, limit: int = 100) -> list[Reservation]:
        return await self._get_many(
            select(reservations)
            .where(
                reservations.c.status == ReservationStatus.PENDING.value,
                reservations.c.hold_expires_at <= now,
            )
            .order_by(reservations.c.hold_expires_at)
            .limit(limit)
        )

    async def list_flown(self, now: datetime, limit: int = 100) -> list[Reservation]:
        return await self._get_many(
            select(reservations)
            .where(
                reservations.c.status == ReservationStatus.CONFIRMED.value,
                reservations.c.last_arrival_at <= now,
            )
            .order_by(reservations.c.last_arrival_at)
            .limit(limit)
        )

    async def list_resync_candidates(self, limit: int = 100) -> list[Reservation]:
        terminal = [status.value for status in TERMINAL_STATUSES]
        return await self._get_many(
            select(reservations)
            .where(
                or_(
                    and_(
                        reservations.c.status == ReservationStatus.PENDING.value,
                        reservations.c.confirmation_pending.is_(True),
                    ),
                    and_(
                        reservations.c.status.in_(terminal),
                        reservations.c.remote_cancel_pending.is_(True),
                    ),
                )
            )
            .order_by(reservations.c.updated_at)
            .limit(limit)
        )

    async def stats(
        self,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> BookingStats:
        conditions = []
        if created_from:
            conditions.append(reservations.c.created_at >= created_from)
        if created_to:
            conditions.append(reservations.c.created_at <= created_to)

        by_status_rows = await self._session.execute(
            select(
                reservations.c.status,
                func.count().label("bookings"),
                func.coalesce(func.sum(reservations.c.passenger_count), 0).label("passengers"),
            )
            .where(*conditions)
            .group_by(reservations.c.status)
        )
        by_status: dict[str, int] = {}
        passengers = 0
        for row in by_status_rows.mappings():
            by_status[row["status"]] = int(row["bookings"])
            passengers += int(row["passengers"])

        revenue_rows = await self._session.execute(
            select(
                reservations.c.currency_code,
                func.sum(reservations.c.total_amount).label("revenue"),
            )
            .where(reservations.c.status.in_(REVENUE_STATUSES), *conditions)
            .group_by(reservations.c.currency_code)
        )
        revenue = {
            row["currency_code"]: quantize(Decimal(str(row["revenue"] or 0)))
            for row in revenue_rows.mappings()
        }

        return BookingStats(
            total=sum(by_status.values()),
            by_status=by_status,
            passengers=passengers,
            revenue_by_currency=revenue,
        )

    # === Internals ===

    async def _get_one(self, condition) -> Reservation | None:
        found = await self._get_many(select(reservations).where(condition).limit(1))
        return found[0] if found else None

    async def _get_many(self, stmt) -> list[Reservation]:
        rows = (await self._session.execute(stmt)).mappings().all()
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        history = await self._session.execute(
            select(reservation_status_history)
            .where(reservation_status_history.c.reservation_id.in_(ids))
            .order_by(reservation_status_history.c.seq)
        )
        changes = await self._session.execute(
            select(reservation_change_log)
            .where(reservation_change_log.c.reservation_id.in_(ids))
            .order_by(reservation_change_log.c.seq)
        )
        history_by_id: dict[str, list] = {reservation_id: [] for reservation_id in ids}
        for row in history.mappings():
            history_by_id[row["reservation_id"]].append(row)
        changes_by_id: dict[str, list] = {reservation_id: [] for reservation_id in ids}
        for row in changes.mappings():
            changes_by_id[row["reservation_id"]].append(row)

        return [
            reservation_from_row(row, history_by_id[row["id"]], changes_by_id[row["id"]])
            for row in rows
        ]

    async def _insert_history(
        self, reservation_id: str, start_seq: int, entries: Sequence[StatusHistoryEntry]
    ) -> None:
        if not entries:
            return
        await self._session.execute(
            insert(reservation_status_history),
            [history_to_row(reservation_id, start_seq + i, e) for i, e in enumerate(entries)],
        )

    async def _insert_changes(
        self, reservation_id: str, start_seq: int, entries: Sequence[ChangeLogEntry]
    ) -> None:
        if not entries:
            return
        await self._session.execute(
            insert(reservation_change_log),
            [change_to_row(reservation_id, start_seq + i, e) for i, e in enumerate(entries)],
        )
