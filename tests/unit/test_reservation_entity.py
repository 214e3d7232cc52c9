"""
Unit tests for the Reservation aggregate.
State machine, cancellation rules, edit window, patches and lookup verification.
"""

from datetime import timedelta

import pytest

from app.application.services.pricing_aggregator import PricingAggregator
from app.domain.entities.passenger import Address
from app.domain.entities.reservation import Reservation, ReservationStatus
from app.domain.errors import (
    AlreadyTerminalError,
    InvalidStatusTransitionError,
    NotEditableError,
    ValidationError,
)
from app.domain.value_objects.booking_patch import ContactPatch, PassengerPatch
from tests.builders import DEPARTURE, NOW, build_contact, build_offer, build_passenger


def _reservation() -> Reservation:
    offer = build_offer()
    passengers = [build_passenger("1")]
    return Reservation.open_hold(
        id="r-1",
        reservation_code="ABC234",
        booking_reference="REF00001",
        owner_id="user-1",
        itineraries=[offer.itinerary],
        passengers=passengers,
        contact=build_contact(),
        pricing=PricingAggregator().aggregate([offer.price], passengers),
        provider_offers=[offer.raw],
        now=NOW,
        hold_duration=timedelta(hours=24),
    )


def _confirmed() -> Reservation:
    reservation = _reservation()
    reservation.confirm("ORD-1", NOW)
    return reservation


class TestOpenHold:
    def test_starts_pending_with_one_history_entry(self):
        reservation = _reservation()

        assert reservation.status == ReservationStatus.PENDING
        assert reservation.confirmation_pending is True
        assert reservation.remote_order_id is None
        assert reservation.hold_expires_at == NOW + timedelta(hours=24)
        assert [entry.status for entry in reservation.status_history] == [ReservationStatus.PENDING]

    def test_derived_travel_dates(self):
        reservation = _reservation()

        assert reservation.first_departure == DEPARTURE
        assert reservation.last_arrival == DEPARTURE + timedelta(hours=6)
        assert reservation.flight_designators == ["AA100"]


class TestStateMachine:
    def test_confirm_sets_remote_order_and_clears_pending(self):
        reservation = _reservation()

        reservation.confirm("ORD-1", NOW + timedelta(minutes=1))

        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.remote_order_id == "ORD-1"
        assert reservation.confirmation_pending is False
        assert reservation.last_synced_at == NOW + timedelta(minutes=1)
        assert len(reservation.status_history) == 2

    def test_pending_cannot_complete(self):
        reservation = _reservation()

        with pytest.raises(InvalidStatusTransitionError):
            reservation.complete(NOW)

        assert reservation.status == ReservationStatus.PENDING
        assert len(reservation.status_history) == 1

    def test_confirmed_cannot_expire(self):
        reservation = _confirmed()

        with pytest.raises(InvalidStatusTransitionError):
            reservation.expire(NOW)

    @pytest.mark.parametrize(
        "finish",
        [
            lambda r: r.expire(NOW),
            lambda r: r.cancel("changed plans", NOW),
        ],
    )
    def test_terminal_reservations_refuse_every_transition(self, finish):
        reservation = _reservation()
        finish(reservation)

        with pytest.raises(AlreadyTerminalError) as exc_info:
            reservation.confirm("ORD-9", NOW)

        assert exc_info.value.code == "ALREADY_TERMINAL"
        assert reservation.remote_order_id is None

    def test_hold_expired_only_for_pending(self):
        reservation = _reservation()
        after_hold = reservation.hold_expires_at

        assert not reservation.hold_expired(after_hold - timedelta(seconds=1))
        assert reservation.hold_expired(after_hold)

        reservation.confirm("ORD-1", NOW)
        assert not reservation.hold_expired(after_hold)


class TestCancel:
    def test_cancel_pending_needs_no_remote_cancel(self):
        reservation = _reservation()

        reservation.cancel("changed plans", NOW)

        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.cancellation_reason == "changed plans"
        assert reservation.remote_cancel_pending is False

    def test_cancel_confirmed_flags_remote_cancel(self):
        reservation = _confirmed()

        reservation.cancel("changed plans", NOW)

        assert reservation.remote_cancel_pending is True

    def test_refund_from_confirmed(self):
        reservation = _confirmed()

        reservation.cancel("schedule change", NOW, refund=True)

        assert reservation.status == ReservationStatus.REFUNDED

    def test_refund_from_pending_is_rejected(self):
        reservation = _reservation()

        with pytest.raises(ValidationError) as exc_info:
            reservation.cancel("schedule change", NOW, refund=True)

        assert exc_info.value.code == "REFUND_NOT_ALLOWED"
        assert reservation.status == ReservationStatus.PENDING


class TestEdits:
    def test_pending_reservation_is_not_editable(self):
        with pytest.raises(NotEditableError) as exc_info:
            _reservation().ensure_editable(NOW, timedelta(hours=2))

        assert exc_info.value.code == "NOT_EDITABLE"

    def test_edit_window_closes_before_departure(self):
        reservation = _confirmed()
        cutoff = timedelta(hours=2)

        reservation.ensure_editable(DEPARTURE - cutoff - timedelta(seconds=1), cutoff)
        with pytest.raises(NotEditableError) as exc_info:
            reservation.ensure_editable(DEPARTURE - cutoff, cutoff)

        assert exc_info.value.code == "UPDATE_WINDOW_CLOSED"

    def test_apply_patch_logs_only_changed_fields(self):
        reservation = _confirmed()

        entries = reservation.apply_patch(
            [
                PassengerPatch(passenger_id="1", changes={"first_name": "Johnny", "last_name": "Smith"}),
                ContactPatch(changes={"phone": "+15550000000"}),
            ],
            at=NOW,
            actor="user-1",
        )

        assert [entry.field for entry in entries] == ["passengers.1.first_name", "contact.phone"]
        assert entries[0].old_value == "John"
        assert entries[0].new_value == "Johnny"
        assert entries[0].changed_by == "user-1"
        assert reservation.passengers[0].first_name == "Johnny"
        assert reservation.contact.phone == "+15550000000"
        assert reservation.change_log == entries

    def test_apply_patch_with_address_and_requests(self):
        reservation = _confirmed()
        address = {"street": "1 Main St", "city": "Boston", "postal_code": "02101", "country": "US"}

        entries = reservation.apply_patch(
            [
                ContactPatch(changes={"address": address}),
                PassengerPatch(passenger_id="1", changes={"special_requests": ["WCHR"]}),
            ],
            at=NOW,
        )

        assert reservation.contact.address == Address(**address)
        assert reservation.passengers[0].special_requests == ("WCHR",)
        assert entries[0].new_value["city"] == "Boston"
        assert entries[1].new_value == ["WCHR"]

    def test_unknown_passenger_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _confirmed().apply_patch([PassengerPatch(passenger_id="7", changes={"first_name": "X"})], at=NOW)

        assert exc_info.value.code == "UNKNOWN_PASSENGER"

    def test_non_editable_fields_are_rejected_at_construction(self):
        with pytest.raises(ValidationError) as exc_info:
            PassengerPatch(passenger_id="1", changes={"date_of_birth": "1990-01-01"})

        assert exc_info.value.code == "FIELD_NOT_EDITABLE"

        with pytest.raises(ValidationError) as exc_info:
            ContactPatch(changes={})

        assert exc_info.value.code == "EMPTY_PATCH"

    @pytest.mark.parametrize(
        "build",
        [
            lambda: PassengerPatch(passenger_id="1", changes={"last_name": None}),
            lambda: ContactPatch(changes={"email": None}),
            lambda: ContactPatch(changes={"phone": None, "address": None}),
        ],
    )
    def test_required_fields_cannot_be_cleared(self, build):
        with pytest.raises(ValidationError) as exc_info:
            build()

        assert exc_info.value.code == "FIELD_REQUIRED"

    def test_optional_fields_can_be_cleared(self):
        reservation = _confirmed()

        entries = reservation.apply_patch(
            [PassengerPatch(passenger_id="1", changes={"meal_preference": "VGML"})], at=NOW
        )
        entries += reservation.apply_patch(
            [PassengerPatch(passenger_id="1", changes={"meal_preference": None})], at=NOW
        )

        assert reservation.passengers[0].meal_preference is None
        assert [e.new_value for e in entries] == ["VGML", None]


class TestVerification:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"last_name": "smith"},
            {"last_name": "  SMITH "},
            {"email": "John.Smith@Example.com"},
            {"last_name": "Wrong", "email": "john.smith@example.com"},
        ],
    )
    def test_verified(self, kwargs):
        assert _reservation().is_verified_by(**kwargs)

    @pytest.mark.parametrize("kwargs", [{}, {"last_name": "Jones"}, {"email": "other@example.com"}])
    def test_not_verified(self, kwargs):
        assert not _reservation().is_verified_by(**kwargs)
