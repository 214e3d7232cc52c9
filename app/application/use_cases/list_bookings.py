from dataclasses import replace

from app.application.dtos.booking_dto import BookingPage, BookingSearchCriteria, CallerScope
from app.application.interfaces.reservation_repo import ReservationRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.domain.entities.reservation import Reservation, ReservationStatus
from app.domain.errors import ValidationError
from app.domain.value_objects.reservation_code import normalize_code

MAX_PAGE_SIZE = 100


class ListMyBookingsUseCase:
    """Caller's own reservations, newest first."""

    def __init__(self, repo: ReservationRepo, tx: TransactionManager) -> None:
        self._repo = repo
        self._tx = tx

    async def execute(
        self,
        scope: CallerScope,
        status: ReservationStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> BookingPage:
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
        if offset < 0:
            raise ValidationError("offset must not be negative", field="offset")

        async with self._tx.start():
            items, total = await self._repo.list_by_owner(
                scope.user_id, status=status, limit=limit, offset=offset
            )
        return BookingPage(items=items, total=total, limit=limit, offset=offset)


class SearchBookingsUseCase:
    """Search across all reservations for admins; customers only see their own."""

    def __init__(self, repo: ReservationRepo, tx: TransactionManager) -> None:
        self._repo = repo
        self._tx = tx

    async def execute(
        self,
        scope: CallerScope,
        criteria: BookingSearchCriteria,
        limit: int = MAX_PAGE_SIZE,
    ) -> list[Reservation]:
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")

        criteria = _normalized(criteria)
        if not scope.is_admin:
            criteria = replace(criteria, owner_id=scope.user_id)
        async with self._tx.start():
            return await self._repo.search(criteria, limit=limit)


def _normalized(criteria: BookingSearchCriteria) -> BookingSearchCriteria:
    def clean(value: str | None) -> str | None:
        return value.strip() or None if value else None

    reservation_code = clean(criteria.reservation_code)
    booking_reference = clean(criteria.booking_reference)
    email = clean(criteria.email)
    flight_number = clean(criteria.flight_number)
    return BookingSearchCriteria(
        reservation_code=normalize_code(reservation_code) if reservation_code else None,
        booking_reference=normalize_code(booking_reference) if booking_reference else None,
        email=email.lower() if email else None,
        last_name=clean(criteria.last_name),
        flight_number=flight_number.upper().replace(" ", "") if flight_number else None,
        status=criteria.status,
        owner_id=criteria.owner_id,
        created_from=criteria.created_from,
        created_to=criteria.created_to,
    )
