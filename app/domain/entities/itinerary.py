"""Itinerary snapshot, frozen at booking time."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class CabinClass(str, Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


@dataclass(frozen=True)
class FlightSegment:
    carrier_code: str
    flight_number: str
    origin: str
    destination: str
    departure_at: datetime
    arrival_at: datetime
    cabin: CabinClass = CabinClass.ECONOMY
    fare_basis: str | None = None
    booking_class: str | None = None
    aircraft_code: str | None = None

    @property
    def designator(self) -> str:
        """Marketing flight designator, e.g. ``AA100``."""
        return f"{self.carrier_code}{self.flight_number}"


@dataclass(frozen=True)
class Itinerary:
    """One priced offer's flights as sold. Never re-priced or mutated after booking."""

    offer_id: str
    segments: tuple[FlightSegment, ...]
    duration: str | None = None

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError(f"Itinerary for offer {self.offer_id} has no segments")

    @property
    def first_departure(self) -> datetime:
        return min(segment.departure_at for segment in self.segments)

    @property
    def last_arrival(self) -> datetime:
        return max(segment.arrival_at for segment in self.segments)


def first_departure_of(itineraries: "list[Itinerary] | tuple[Itinerary, ...]") -> datetime:
    return min(itinerary.first_departure for itinerary in itineraries)


def last_arrival_of(itineraries: "list[Itinerary] | tuple[Itinerary, ...]") -> datetime:
    return max(itinerary.last_arrival for itinerary in itineraries)
