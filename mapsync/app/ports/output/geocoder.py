from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

from mapsync.domain.models import PlaceCandidate, PlacePredictions


class IGeocoder(ABC):
    """Port for free-text address search."""

    @abstractmethod
    async def search(
        self,
        query: str,
        country_filter: Sequence[str] | None = None,
        locale: str | None = None,
    ) -> list[Mapping[str, Any]]:
        """Return raw place results; never raises, returns [] on failure."""

    @abstractmethod
    async def get_place_predictions(
        self,
        search: str,
        country_filter: Sequence[str] | None = None,
        locale: str | None = None,
    ) -> PlacePredictions:
        """Return autocomplete predictions for `search`."""

    @abstractmethod
    async def get_place_details(
        self,
        prediction: Mapping[str, Any],
        current_location_bounds_distance: float | None = None,
    ) -> PlaceCandidate:
        """Resolve a prediction into an address, origin and bounds."""
