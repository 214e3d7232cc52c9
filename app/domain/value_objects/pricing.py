"""Value Objects for priced offers and the aggregated reservation price."""

from dataclasses import dataclass, field
from decimal import Decimal

from app.domain.errors import ValidationError
from app.domain.value_objects.money import MINOR_UNIT


@dataclass(frozen=True)
class TravelerShare:
    """Traveler an offer was priced for; ``amount`` is the provider's per-traveler total, if given."""

    traveler_id: str
    traveler_type: str
    amount: Decimal | None = None


@dataclass(frozen=True)
class OfferPrice:
    """Price components of one offer, as returned by the provider at search time."""

    offer_id: str
    currency_code: str
    base: Decimal
    taxes: tuple[Decimal, ...] = ()
    fees: tuple[Decimal, ...] = ()
    discounts: tuple[Decimal, ...] = ()
    travelers: tuple[TravelerShare, ...] = ()


@dataclass(frozen=True)
class PassengerPrice:
    traveler_id: str
    amount: Decimal


@dataclass(frozen=True)
class Pricing:
    """
    Aggregated price of a reservation.

    ``total`` always equals base + taxes + fees - discounts and the per-passenger
    allocations sum to ``total`` within one minor unit per passenger.
    """

    currency_code: str
    base: Decimal
    taxes: Decimal
    fees: Decimal
    discounts: Decimal
    total: Decimal
    passengers: tuple[PassengerPrice, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        expected = self.base + self.taxes + self.fees - self.discounts
        if expected != self.total:
            raise ValidationError(
                f"Pricing total {self.total} does not equal components {expected}",
                code="PRICING_INCONSISTENT",
            )
        if self.passengers:
            allocated = sum((p.amount for p in self.passengers), Decimal("0"))
            tolerance = MINOR_UNIT * len(self.passengers)
            if abs(allocated - self.total) > tolerance:
                raise ValidationError(
                    f"Passenger allocations {allocated} do not add up to total {self.total}",
                    code="PRICING_INCONSISTENT",
                )

    def amount_for(self, traveler_id: str) -> Decimal | None:
        for passenger in self.passengers:
            if passenger.traveler_id == traveler_id:
                return passenger.amount
        return None
