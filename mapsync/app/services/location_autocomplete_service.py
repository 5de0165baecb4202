from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

from mapsync.app.ports.output import IGeocoder
from mapsync.domain.models import CURRENT_LOCATION_ID, PlaceCandidate, PlacePredictions

logger = logging.getLogger(__name__)

CURRENT_LOCATION_PREDICTION: Mapping[str, Any] = {"id": CURRENT_LOCATION_ID}


@dataclass(slots=True)
class LocationAutocompleteService:
    """Autocomplete for location inputs on top of an `IGeocoder`.

    Each call is tagged with a sequence number per input field. When a newer
    request for the same field was started before an older one finished,
    the older result is dropped (None is returned) so a slow response can
    never overwrite the predictions for what the user typed last.
    """

    geocoder: IGeocoder
    country_filter: Sequence[str] | None = None
    locale: str | None = None
    use_current_location: bool = False
    current_location_bounds_distance: float | None = None

    _sequence: Iterator[int] = field(default_factory=itertools.count, init=False, repr=False)
    _latest: dict[str, int] = field(default_factory=dict, init=False, repr=False)

    def _next(self, field_key: str) -> int:
        seq = next(self._sequence)
        self._latest[field_key] = seq
        return seq

    def _is_current(self, field_key: str, seq: int) -> bool:
        return self._latest.get(field_key) == seq

    async def predictions(
        self, search: str, *, field_key: str = "location"
    ) -> PlacePredictions | None:
        seq = self._next(field_key)

        if not search.strip():
            defaults = (CURRENT_LOCATION_PREDICTION,) if self.use_current_location else ()
            return PlacePredictions(search=search, predictions=defaults)

        result = await self.geocoder.get_place_predictions(
            search, self.country_filter, self.locale
        )
        if not self._is_current(field_key, seq):
            logger.debug("Dropping superseded predictions for %r", search)
            return None
        return result

    async def select(
        self, prediction: Mapping[str, Any], *, field_key: str = "location"
    ) -> PlaceCandidate | None:
        seq = self._next(field_key)
        place = await self.geocoder.get_place_details(
            prediction, self.current_location_bounds_distance
        )
        if not self._is_current(field_key, seq):
            return None
        return place
