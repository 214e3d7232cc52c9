"""Value Objects of the booking domain."""

from app.domain.value_objects.booking_patch import BookingPatch, ContactPatch, PassengerPatch
from app.domain.value_objects.money import Money
from app.domain.value_objects.pricing import OfferPrice, PassengerPrice, Pricing, TravelerShare
from app.domain.value_objects.reservation_code import (
    BookingReference,
    ReservationCode,
    format_for_display,
)

__all__ = [
    "Money",
    "ReservationCode",
    "BookingReference",
    "format_for_display",
    "OfferPrice",
    "TravelerShare",
    "PassengerPrice",
    "Pricing",
    "BookingPatch",
    "PassengerPatch",
    "ContactPatch",
]
