from __future__ import annotations

import math
import random
from collections import OrderedDict
from dataclasses import dataclass, field

from mapsync.domain.algorithms.geo_utils import EARTH_RADIUS_M, normalize_longitude
from mapsync.domain.models import Coordinate


@dataclass(slots=True)
class ObfuscationCache:
    """Remembers obfuscated coordinates per cache key (e.g. listing id).

    Same key -> same fuzzy location for as long as the cache lives.
    Oldest entries are dropped first once `max_entries` is exceeded.
    """

    max_entries: int = 1000
    _entries: OrderedDict[str, Coordinate] = field(
        default_factory=OrderedDict, init=False, repr=False
    )

    def get(self, key: str) -> Coordinate | None:
        return self._entries.get(key)

    def put(self, key: str, value: Coordinate) -> None:
        self._entries[key] = value
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _offset_coordinate(
    coordinate: Coordinate, distance_m: float, bearing_rad: float
) -> Coordinate:
    lat = math.radians(coordinate.lat)
    lng = math.radians(coordinate.lng)
    theta = distance_m / EARTH_RADIUS_M

    new_lat = math.asin(
        math.sin(lat) * math.cos(theta)
        + math.cos(lat) * math.sin(theta) * math.cos(bearing_rad)
    )
    new_lng = lng + math.atan2(
        math.sin(bearing_rad) * math.sin(theta) * math.cos(lat),
        math.cos(theta) - math.sin(lat) * math.sin(new_lat),
    )
    return Coordinate(
        lat=math.degrees(new_lat), lng=normalize_longitude(math.degrees(new_lng))
    )


def obfuscated_coordinate(
    coordinate: Coordinate,
    fuzzy_offset_m: float,
    cache_key: str | None = None,
    *,
    cache: ObfuscationCache | None = None,
) -> Coordinate:
    """Move `coordinate` to a random point at most `fuzzy_offset_m` away.

    With a `cache_key` the result is deterministic: bearing is seeded by the
    key and distance by the reversed key.
    """

    if cache_key is not None and cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

    if cache_key is not None:
        bearing_factor = random.Random(cache_key).random()
        distance_factor = random.Random(cache_key[::-1]).random()
    else:
        bearing_factor = random.random()
        distance_factor = random.random()

    result = _offset_coordinate(
        coordinate,
        distance_m=distance_factor * fuzzy_offset_m,
        bearing_rad=bearing_factor * 2.0 * math.pi,
    )

    if cache_key is not None and cache is not None:
        cache.put(cache_key, result)
    return result
