from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

import httpx

from mapsync.app.ports.output import IGeocoder, IIpLocator
from mapsync.domain.algorithms.address import format_address
from mapsync.domain.algorithms.geo_utils import bounds_for_radius
from mapsync.domain.exceptions.geolocation import LocationUnavailable
from mapsync.domain.models import (
    CURRENT_LOCATION_ID,
    Bounds,
    Coordinate,
    GeocodeCacheEntry,
    PlaceCandidate,
    PlacePredictions,
)

logger = logging.getLogger(__name__)

GENERATED_BOUNDS_DEFAULT_DISTANCE_M = 500.0
PLACE_TYPE_BOUNDS_DISTANCES_M: dict[str, float] = {
    "house": 500.0,
    "building": 500.0,
    "residential": 500.0,
    "city": 2000.0,
    "town": 2000.0,
    "village": 2000.0,
    "state": 5000.0,
    "country": 10000.0,
}

CacheKey = tuple[str, str, str]


def _float_or_none(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def place_origin(place: Mapping[str, Any]) -> Coordinate | None:
    lat = _float_or_none(place.get("lat"))
    lng = _float_or_none(place.get("lon"))
    if lat is None or lng is None:
        return None
    try:
        return Coordinate(lat=lat, lng=lng)
    except ValueError:
        return None


def place_bounds(place: Mapping[str, Any]) -> Bounds | None:
    """Bounds of a result: its bounding box, else a box sized by place type.

    Nominatim orders `boundingbox` as [south, north, west, east], as strings.
    """

    bbox = place.get("boundingbox")
    if isinstance(bbox, (list, tuple)) and len(bbox) == 4:
        try:
            south, north, west, east = (float(v) for v in bbox)
            return Bounds(
                ne=Coordinate(lat=north, lng=east), sw=Coordinate(lat=south, lng=west)
            )
        except (TypeError, ValueError):
            logger.debug("Ignoring malformed boundingbox %r", bbox)

    origin = place_origin(place)
    if origin is None:
        return None
    place_type = place.get("type") or place.get("class") or "default"
    distance = PLACE_TYPE_BOUNDS_DISTANCES_M.get(
        str(place_type), GENERATED_BOUNDS_DEFAULT_DISTANCE_M
    )
    try:
        return bounds_for_radius(origin, distance)
    except ValueError:
        logger.debug("No generated bounds for %r near a pole", place.get("place_id"))
        return None


def prediction_id(prediction: Mapping[str, Any]) -> str | None:
    place_id = prediction.get("place_id")
    if place_id is not None:
        return str(place_id)
    raw_id = prediction.get("id")
    return None if raw_id is None else str(raw_id)


@dataclass(slots=True)
class NominatimGeocoder(IGeocoder):
    """Free-text search against a Nominatim server.

    Nominatim's usage policy allows one request per second per application,
    so all requests go through one rate-limit slot. Results are cached per
    (query, country filter, locale) for `cache_ttl_s`; cache hits skip both
    the network and the rate limiter. Failures are logged and surface as an
    empty result list.
    """

    base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "OpenStreetMapIntegration"
    home_country: str | None = "United States"
    min_interval_s: float = 1.0
    cache_ttl_s: float = 300.0
    cache_max_entries: int = 100
    timeout_s: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None
    ip_locator: IIpLocator | None = None
    clock: Callable[[], float] = time.time

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _last_request_at: float | None = field(default=None, init=False, repr=False)
    _cache: OrderedDict[CacheKey, GeocodeCacheEntry] = field(
        default_factory=OrderedDict, init=False, repr=False
    )

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _cached(self, key: CacheKey) -> list[Mapping[str, Any]] | None:
        entry = self._cache.get(key)
        if entry is None or self._now_ms() - entry.fetched_at_ms >= self.cache_ttl_s * 1000:
            return None
        return list(entry.places)

    async def _respect_rate_limit(self) -> None:
        # Called with self._lock held.
        if self._last_request_at is not None:
            wait_s = self.min_interval_s - (time.monotonic() - self._last_request_at)
            if wait_s > 0:
                await asyncio.sleep(wait_s)
        self._last_request_at = time.monotonic()

    def _params(
        self, query: str, country_filter: Sequence[str] | None, locale: str | None
    ) -> dict[str, str]:
        params = {
            "q": query,
            "format": "json",
            "addressdetails": "1",
            "limit": "5",
            "extratags": "1",
            "namedetails": "1",
        }
        if country_filter:
            params["countrycodes"] = ",".join(country_filter)
        if locale:
            params["accept-language"] = locale
        return params

    async def search(
        self,
        query: str,
        country_filter: Sequence[str] | None = None,
        locale: str | None = None,
    ) -> list[Mapping[str, Any]]:
        key: CacheKey = (query, ",".join(country_filter or ()), locale or "")
        cached = self._cached(key)
        if cached is not None:
            return cached

        # Concurrent searches queue on the lock and leave min_interval_s apart;
        # a search queued behind the same query is answered from the cache.
        async with self._lock:
            cached = self._cached(key)
            if cached is not None:
                return cached

            await self._respect_rate_limit()

            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout_s, transport=self.transport
                ) as client:
                    resp = await client.get(
                        f"{self.base_url.rstrip('/')}/search",
                        params=self._params(query, country_filter, locale),
                        headers={"User-Agent": self.user_agent},
                    )
                    resp.raise_for_status()
                    data = resp.json()
                if not isinstance(data, list):
                    raise ValueError("Geocoding response is not a list")
                if not all(isinstance(place, Mapping) for place in data):
                    raise ValueError("Geocoding response holds non-object results")
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Geocoding failed for %r: %s", query, exc)
                return []

            self._cache[key] = GeocodeCacheEntry(
                places=tuple(data), fetched_at_ms=self._now_ms()
            )
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_max_entries:
                self._cache.popitem(last=False)
        return data

    async def get_place_predictions(
        self,
        search: str,
        country_filter: Sequence[str] | None = None,
        locale: str | None = None,
    ) -> PlacePredictions:
        predictions = await self.search(search, country_filter, locale)
        return PlacePredictions(search=search, predictions=tuple(predictions))

    def prediction_address(self, prediction: Mapping[str, Any]) -> str:
        place = prediction.get("predictionPlace")
        if isinstance(place, PlaceCandidate):
            return place.address
        return format_address(prediction, home_country=self.home_country)

    async def get_place_details(
        self,
        prediction: Mapping[str, Any],
        current_location_bounds_distance: float | None = None,
    ) -> PlaceCandidate:
        if prediction_id(prediction) == CURRENT_LOCATION_ID:
            return await self._current_location(current_location_bounds_distance)

        place = prediction.get("predictionPlace")
        if isinstance(place, PlaceCandidate):
            return place

        place_type = prediction.get("type") or prediction.get("class")
        return PlaceCandidate(
            place_id=prediction_id(prediction),
            address=self.prediction_address(prediction),
            origin=place_origin(prediction),
            bounds=place_bounds(prediction),
            place_type=None if place_type is None else str(place_type),
            raw=prediction,
        )

    async def _current_location(self, bounds_distance_m: float | None) -> PlaceCandidate:
        if self.ip_locator is None:
            raise LocationUnavailable("No IP locator configured")
        location = await self.ip_locator.locate(None)
        if location is None:
            raise LocationUnavailable("Current location is not available")

        origin = Coordinate(lat=location.lat, lng=location.lng)
        distance = (
            bounds_distance_m
            if bounds_distance_m is not None
            else GENERATED_BOUNDS_DEFAULT_DISTANCE_M
        )
        try:
            bounds: Bounds | None = bounds_for_radius(origin, distance)
        except ValueError:
            bounds = None
        return PlaceCandidate(
            place_id=CURRENT_LOCATION_ID,
            address="",
            origin=origin,
            bounds=bounds,
        )
