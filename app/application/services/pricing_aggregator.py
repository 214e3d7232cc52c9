"""Combines the selected offers into a single reservation price."""

from collections.abc import Sequence
from decimal import Decimal

from app.domain.entities.passenger import Passenger
from app.domain.errors import MixedCurrencyError, PassengerCountMismatchError, ValidationError
from app.domain.value_objects.money import Money, quantize
from app.domain.value_objects.pricing import OfferPrice, PassengerPrice, Pricing


class PricingAggregator:
    """
    Pure pricing service.

    total = sum(base) + sum(taxes) + sum(fees) - sum(discounts), per offer and
    overall. Each offer's total is attributed to the travelers it was priced for,
    in proportion to the provider's per-traveler totals (equal shares when the
    provider gave none). Allocations are rounded to the minor unit and the last
    passenger absorbs the rounding remainder.
    """

    def aggregate(self, offers: Sequence[OfferPrice], passengers: Sequence[Passenger]) -> Pricing:
        if not offers:
            raise ValidationError("At least one offer is required", field="offers")
        if not passengers:
            raise ValidationError("At least one passenger is required", field="passengers")

        currencies = {offer.currency_code.upper() for offer in offers}
        if len(currencies) > 1:
            raise MixedCurrencyError(currencies)
        currency = currencies.pop()

        for offer in offers:
            self._check_travelers(offer, passengers)

        base = quantize(self._sum([offer.base for offer in offers], currency))
        taxes = quantize(self._sum([t for offer in offers for t in offer.taxes], currency))
        fees = quantize(self._sum([f for offer in offers for f in offer.fees], currency))
        discounts = quantize(self._sum([d for offer in offers for d in offer.discounts], currency))
        total = base + taxes + fees - discounts
        if total < 0:
            raise ValidationError(f"Discounts exceed the price: total {total}", code="NEGATIVE_TOTAL")

        return Pricing(
            currency_code=currency,
            base=base,
            taxes=taxes,
            fees=fees,
            discounts=discounts,
            total=total,
            passengers=self._allocate(offers, passengers, total),
        )

    @staticmethod
    def _sum(amounts: list[Decimal], currency: str) -> Decimal:
        return Money.sum([Money(amount=a, currency_code=currency) for a in amounts], currency).amount

    @staticmethod
    def offer_total(offer: OfferPrice) -> Decimal:
        return offer.base + sum(offer.taxes, Decimal("0")) + sum(offer.fees, Decimal("0")) - sum(
            offer.discounts, Decimal("0")
        )

    @staticmethod
    def _check_travelers(offer: OfferPrice, passengers: Sequence[Passenger]) -> None:
        if len(offer.travelers) != len(passengers):
            raise PassengerCountMismatchError(offer.offer_id, len(offer.travelers), len(passengers))

        priced_ids = {traveler.traveler_id for traveler in offer.travelers}
        passenger_ids = {passenger.traveler_id for passenger in passengers}
        if len(passenger_ids) != len(passengers):
            raise ValidationError("Passenger traveler ids must be unique", code="DUPLICATE_TRAVELER")
        if priced_ids != passenger_ids:
            missing = sorted(priced_ids - passenger_ids) or sorted(passenger_ids - priced_ids)
            raise ValidationError(
                f"Offer {offer.offer_id} was not priced for traveler(s): {', '.join(missing)}",
                code="TRAVELER_MISMATCH",
                field="passengers",
            )

    def _allocate(
        self,
        offers: Sequence[OfferPrice],
        passengers: Sequence[Passenger],
        total: Decimal,
    ) -> tuple[PassengerPrice, ...]:
        raw = {passenger.traveler_id: Decimal("0") for passenger in passengers}

        for offer in offers:
            offer_total = self.offer_total(offer)
            weights = [traveler.amount for traveler in offer.travelers]
            if any(w is None for w in weights) or sum(weights, Decimal("0")) <= 0:
                weights = [Decimal("1")] * len(offer.travelers)
            weight_sum = sum(weights, Decimal("0"))
            for traveler, weight in zip(offer.travelers, weights):
                raw[traveler.traveler_id] += offer_total * weight / weight_sum

        allocations: list[PassengerPrice] = []
        allocated = Decimal("0")
        for passenger in passengers[:-1]:
            amount = quantize(raw[passenger.traveler_id])
            allocated += amount
            allocations.append(PassengerPrice(traveler_id=passenger.traveler_id, amount=amount))

        last = passengers[-1]
        allocations.append(PassengerPrice(traveler_id=last.traveler_id, amount=total - allocated))
        return tuple(allocations)
