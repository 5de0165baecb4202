from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .geo import Coordinate


class MarkerKind(str, Enum):
    PRICE = "price"
    GROUP = "group"
    INFO_CARD = "infoCard"


@dataclass(frozen=True, slots=True)
class Listing:
    """Listing as supplied by the search layer (subset of its attributes)."""

    id: str
    geolocation: Coordinate | None
    price: float | None = None
    currency: str | None = None
    title: str | None = None


@dataclass(frozen=True, slots=True)
class ListingMarkerGroup:
    coordinate: Coordinate
    listings: tuple[Listing, ...]

    @property
    def kind(self) -> MarkerKind:
        return MarkerKind.PRICE if len(self.listings) == 1 else MarkerKind.GROUP

    @property
    def listing_ids(self) -> tuple[str, ...]:
        return tuple(listing.id for listing in self.listings)

    @property
    def marker_id(self) -> str:
        # Stable across frames even when the group's composition changes.
        return f"{self.kind.value}_{self.listings[0].id}"
