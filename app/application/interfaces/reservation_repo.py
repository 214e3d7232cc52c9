from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from app.application.dtos.booking_dto import BookingSearchCriteria, BookingStats
from app.domain.entities.reservation import (
    ChangeLogEntry,
    Reservation,
    ReservationStatus,
    StatusHistoryEntry,
)


class ReservationRepo(ABC):
    """
    Durable store of reservations.

    Reservation code and booking reference are unique across the store. Every
    write of an existing reservation is a compare-and-set on its status and
    lock_version, so two concurrent transitions can never both succeed.
    """

    @abstractmethod
    async def add(self, reservation: Reservation) -> Reservation:
        """
        Persist a new reservation with its initial history.

        Raises:
            DuplicateIdentifierError: reservation code or booking reference taken.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, reservation_id: str) -> Reservation | None:
        raise NotImplementedError

    @abstractmethod
    async def get_by_code(self, reservation_code: str) -> Reservation | None:
        raise NotImplementedError

    @abstractmethod
    async def get_by_booking_reference(self, booking_reference: str) -> Reservation | None:
        raise NotImplementedError

    @abstractmethod
    async def compare_and_set(
        self,
        reservation: Reservation,
        *,
        expected_status: ReservationStatus,
        expected_lock_version: int,
        appended_history: Sequence[StatusHistoryEntry] = (),
        appended_changes: Sequence[ChangeLogEntry] = (),
    ) -> Reservation:
        """
        Write the reservation's mutable state if the stored status and version still match.

        History and change log entries are append-only; only the appended ones are written.

        Raises:
            StaleReservationError: the stored reservation moved on since it was read.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_by_owner(
        self,
        owner_id: str,
        status: ReservationStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Reservation], int]:
        """Page of the owner's reservations, newest first, and the total count."""
        raise NotImplementedError

    @abstractmethod
    async def search(self, criteria: BookingSearchCriteria, limit: int = 100) -> list[Reservation]:
        raise NotImplementedError

    @abstractmethod
    async def list_expired_holds(self, now: datetime, limit: int = 100) -> list[Reservation]:
        """Pending reservations whose hold expired at or before ``now``."""
        raise NotImplementedError

    @abstractmethod
    async def list_flown(self, now: datetime, limit: int = 100) -> list[Reservation]:
        """Confirmed reservations whose last segment arrived before ``now``."""
        raise NotImplementedError

    @abstractmethod
    async def list_resync_candidates(self, limit: int = 100) -> list[Reservation]:
        """Pending reservations awaiting confirmation and terminal ones with a remote cancel outstanding."""
        raise NotImplementedError

    @abstractmethod
    async def stats(
        self,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> BookingStats:
        raise NotImplementedError
