from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .geo import Bounds, Coordinate


@dataclass(frozen=True, slots=True)
class PlaceCandidate:
    """Geocoded place, ready to be used as a search location."""

    place_id: str | None
    address: str
    origin: Coordinate | None
    bounds: Bounds | None
    place_type: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class PlacePredictions:
    search: str
    predictions: tuple[Mapping[str, Any], ...] = ()


@dataclass(frozen=True, slots=True)
class GeocodeCacheEntry:
    places: tuple[Mapping[str, Any], ...]
    fetched_at_ms: int


@dataclass(frozen=True, slots=True)
class AddressComponents:
    city: str = ""
    state: str = ""
    postal_code: str = ""


@dataclass(frozen=True, slots=True)
class IpLocation:
    lat: float
    lng: float
    source: str


# Id of the pseudo prediction that resolves to the user's own location.
CURRENT_LOCATION_ID = "current-location"
