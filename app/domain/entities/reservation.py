"""Reservation entity - aggregate root of the booking domain."""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from app.domain.entities.itinerary import Itinerary, first_departure_of, last_arrival_of
from app.domain.entities.passenger import Address, Contact, Passenger
from app.domain.errors import (
    AlreadyTerminalError,
    InvalidStatusTransitionError,
    NotEditableError,
    ValidationError,
)
from app.domain.value_objects.booking_patch import BookingPatch, ContactPatch, PassengerPatch
from app.domain.value_objects.pricing import Pricing


class ReservationStatus(str, Enum):
    """Lifecycle states of a reservation."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    REFUNDED = "refunded"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset(
    {
        ReservationStatus.CANCELLED,
        ReservationStatus.EXPIRED,
        ReservationStatus.REFUNDED,
        ReservationStatus.COMPLETED,
    }
)

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED, ReservationStatus.EXPIRED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.CANCELLED, ReservationStatus.COMPLETED, ReservationStatus.REFUNDED}
    ),
}


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: ReservationStatus
    changed_at: datetime
    reason: str | None = None


@dataclass(frozen=True)
class ChangeLogEntry:
    """One field changed by a post-confirmation update."""

    field: str
    old_value: Any
    new_value: Any
    changed_at: datetime
    changed_by: str | None = None


def _jsonable(value: Any) -> Any:
    if isinstance(value, Address):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return list(value)
    return value


def _coerce(current: Any, value: Any) -> Any:
    if isinstance(current, tuple) or (current is None and isinstance(value, list)):
        return tuple(value or ())
    if isinstance(value, dict):
        return Address(**value)
    return value


@dataclass
class Reservation:
    """
    Aggregate root for a flight booking.

    Status only moves along ALLOWED_TRANSITIONS and every move appends exactly one
    StatusHistoryEntry. ``remote_order_id`` is only ever set while becoming confirmed.
    ``lock_version`` is the version the reservation was loaded at; repositories
    compare-and-set against it and return the reservation with the bumped version.
    """

    id: str
    reservation_code: str
    booking_reference: str
    owner_id: str
    itineraries: list[Itinerary]
    passengers: list[Passenger]
    contact: Contact
    pricing: Pricing
    hold_expires_at: datetime
    created_at: datetime
    updated_at: datetime
    status: ReservationStatus = ReservationStatus.PENDING

    # Raw offer payloads, re-sent verbatim when a confirmation is retried
    provider_offers: list[dict] = field(default_factory=list)

    # Remote side
    remote_order_id: str | None = None
    last_synced_at: datetime | None = None
    confirmation_pending: bool = True
    remote_cancel_pending: bool = False
    last_provider_error: str | None = None

    cancellation_reason: str | None = None

    lock_version: int = 0

    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    change_log: list[ChangeLogEntry] = field(default_factory=list)

    @classmethod
    def open_hold(
        cls,
        *,
        id: str,
        reservation_code: str,
        booking_reference: str,
        owner_id: str,
        itineraries: list[Itinerary],
        passengers: list[Passenger],
        contact: Contact,
        pricing: Pricing,
        provider_offers: list[dict],
        now: datetime,
        hold_duration: timedelta,
    ) -> "Reservation":
        """New pending reservation, awaiting the provider's confirmation."""
        return cls(
            id=id,
            reservation_code=reservation_code,
            booking_reference=booking_reference,
            owner_id=owner_id,
            itineraries=list(itineraries),
            passengers=list(passengers),
            contact=contact,
            pricing=pricing,
            provider_offers=list(provider_offers),
            hold_expires_at=now + hold_duration,
            created_at=now,
            updated_at=now,
            status=ReservationStatus.PENDING,
            confirmation_pending=True,
            status_history=[
                StatusHistoryEntry(
                    status=ReservationStatus.PENDING,
                    changed_at=now,
                    reason="Booking created",
                )
            ],
        )

    # === Derived properties ===

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def first_departure(self) -> datetime:
        return first_departure_of(self.itineraries)

    @property
    def last_arrival(self) -> datetime:
        return last_arrival_of(self.itineraries)

    @property
    def passenger_count(self) -> int:
        return len(self.passengers)

    @property
    def flight_designators(self) -> list[str]:
        return [
            segment.designator
            for itinerary in self.itineraries
            for segment in itinerary.segments
        ]

    def hold_expired(self, now: datetime) -> bool:
        return self.status == ReservationStatus.PENDING and now >= self.hold_expires_at

    def has_flown(self, now: datetime) -> bool:
        return now >= self.last_arrival

    def is_verified_by(self, last_name: str | None = None, email: str | None = None) -> bool:
        """Case-insensitive match of a public lookup verifier."""
        if email and email.strip().lower() == self.contact.email.lower():
            return True
        if last_name:
            wanted = last_name.strip().lower()
            return any(p.last_name.lower() == wanted for p in self.passengers)
        return False

    # === State machine ===

    def transition_to(self, target: ReservationStatus, at: datetime, reason: str | None = None) -> None:
        if self.is_terminal:
            raise AlreadyTerminalError(self.reservation_code, self.status.value)
        if target not in ALLOWED_TRANSITIONS.get(self.status, frozenset()):
            raise InvalidStatusTransitionError(self.status.value, target.value)

        self.status = target
        self.updated_at = at
        self.status_history.append(StatusHistoryEntry(status=target, changed_at=at, reason=reason))

    def confirm(self, remote_order_id: str, at: datetime) -> None:
        self.transition_to(ReservationStatus.CONFIRMED, at, reason="Confirmed by provider")
        self.remote_order_id = remote_order_id
        self.confirmation_pending = False
        self.last_provider_error = None
        self.last_synced_at = at

    def cancel(self, reason: str, at: datetime, refund: bool = False) -> None:
        """Cancel locally; a remote order, if any, is flagged for remote cancellation."""
        if self.is_terminal:
            raise AlreadyTerminalError(self.reservation_code, self.status.value)
        if refund and self.status != ReservationStatus.CONFIRMED:
            raise ValidationError(
                "Only confirmed reservations can be refunded",
                code="REFUND_NOT_ALLOWED",
                field="refund",
            )

        target = ReservationStatus.REFUNDED if refund else ReservationStatus.CANCELLED
        self.transition_to(target, at, reason=reason)
        self.cancellation_reason = reason
        self.confirmation_pending = False
        if self.remote_order_id:
            self.remote_cancel_pending = True

    def expire(self, at: datetime) -> None:
        self.transition_to(ReservationStatus.EXPIRED, at, reason="Hold expired")
        self.confirmation_pending = False

    def complete(self, at: datetime) -> None:
        self.transition_to(ReservationStatus.COMPLETED, at, reason="Travel completed")

    def record_rejection(self, reason_code: str, at: datetime) -> None:
        """The provider refused the order; the hold stays pending and unconfirmed."""
        self.confirmation_pending = False
        self.last_provider_error = reason_code
        self.updated_at = at

    def record_indeterminate(self, detail: str | None, at: datetime) -> None:
        self.confirmation_pending = True
        self.last_provider_error = detail
        self.updated_at = at

    # === Post-confirmation edits ===

    def ensure_editable(self, now: datetime, cutoff: timedelta) -> None:
        if self.status != ReservationStatus.CONFIRMED:
            raise NotEditableError(self.reservation_code, f"status is {self.status.value}")
        if now >= self.first_departure - cutoff:
            raise NotEditableError(
                self.reservation_code,
                "too close to departure",
                code="UPDATE_WINDOW_CLOSED",
            )

    def apply_patch(
        self,
        patches: "list[BookingPatch]",
        at: datetime,
        actor: str | None = None,
    ) -> list[ChangeLogEntry]:
        """Apply patches in order and return one change log entry per field that changed."""
        entries: list[ChangeLogEntry] = []
        for patch in patches:
            if isinstance(patch, PassengerPatch):
                entries.extend(self._patch_passenger(patch, at, actor))
            elif isinstance(patch, ContactPatch):
                entries.extend(self._patch_contact(patch, at, actor))
            else:
                raise ValidationError(f"Unsupported patch: {type(patch).__name__}")

        if entries:
            self.change_log.extend(entries)
            self.updated_at = at
        return entries

    def _patch_passenger(self, patch: PassengerPatch, at: datetime, actor: str | None) -> list[ChangeLogEntry]:
        for index, passenger in enumerate(self.passengers):
            if passenger.traveler_id == patch.passenger_id:
                break
        else:
            raise ValidationError(
                f"Unknown passenger: {patch.passenger_id}",
                code="UNKNOWN_PASSENGER",
                field="passenger_id",
            )

        updates, entries = self._diff(passenger, patch.changes, f"passengers.{patch.passenger_id}", at, actor)
        if updates:
            self.passengers[index] = dataclasses.replace(passenger, **updates)
        return entries

    def _patch_contact(self, patch: ContactPatch, at: datetime, actor: str | None) -> list[ChangeLogEntry]:
        updates, entries = self._diff(self.contact, patch.changes, "contact", at, actor)
        if updates:
            self.contact = dataclasses.replace(self.contact, **updates)
        return entries

    @staticmethod
    def _diff(
        target: Any,
        changes: dict,
        prefix: str,
        at: datetime,
        actor: str | None,
    ) -> tuple[dict, list[ChangeLogEntry]]:
        updates: dict = {}
        entries: list[ChangeLogEntry] = []
        for name, raw_value in changes.items():
            current = getattr(target, name)
            value = _coerce(current, raw_value)
            if value == current:
                continue
            updates[name] = value
            entries.append(
                ChangeLogEntry(
                    field=f"{prefix}.{name}",
                    old_value=_jsonable(current),
                    new_value=_jsonable(value),
                    changed_at=at,
                    changed_by=actor,
                )
            )
        return updates, entries
