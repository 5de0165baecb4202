from __future__ import annotations

import pytest

from mapsync.domain.algorithms.geo_utils import great_circle_distance_m
from mapsync.domain.algorithms.obfuscation import ObfuscationCache, obfuscated_coordinate
from mapsync.domain.models import Coordinate

ORIGIN = Coordinate(lat=52.52, lng=13.405)


@pytest.mark.unit
def test_same_key_gives_same_location_without_cache() -> None:
    a = obfuscated_coordinate(ORIGIN, 500.0, "listing-1")
    b = obfuscated_coordinate(ORIGIN, 500.0, "listing-1")
    c = obfuscated_coordinate(ORIGIN, 500.0, "listing-2")

    assert a == b
    assert a != c


@pytest.mark.unit
def test_offset_stays_within_radius() -> None:
    for i in range(50):
        p = obfuscated_coordinate(ORIGIN, 500.0, f"key-{i}")
        assert great_circle_distance_m(ORIGIN, p) <= 500.0 + 1e-6


@pytest.mark.unit
def test_cache_is_used_and_bounded() -> None:
    cache = ObfuscationCache(max_entries=2)
    first = obfuscated_coordinate(ORIGIN, 500.0, "a", cache=cache)

    # A cached value wins even if the input moves.
    moved = obfuscated_coordinate(Coordinate(lat=0.0, lng=0.0), 500.0, "a", cache=cache)
    assert moved == first

    obfuscated_coordinate(ORIGIN, 500.0, "b", cache=cache)
    obfuscated_coordinate(ORIGIN, 500.0, "c", cache=cache)

    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("c") is not None
