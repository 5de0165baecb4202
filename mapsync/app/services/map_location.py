from __future__ import annotations

from dataclasses import dataclass

from mapsync.domain.algorithms.obfuscation import ObfuscationCache, obfuscated_coordinate
from mapsync.domain.exceptions.map import MapConfigurationError
from mapsync.domain.models import Coordinate, FuzzyConfig, Listing

DEFAULT_ZOOM = 11


@dataclass(frozen=True, slots=True)
class MapLocation:
    center: Coordinate
    zoom: int
    is_fuzzy: bool = False
    fuzzy_radius_m: float | None = None


def resolve_map_location(
    fuzzy: FuzzyConfig,
    *,
    center: Coordinate | None,
    obfuscated_center: Coordinate | None = None,
    zoom: int | None = None,
) -> MapLocation:
    """Pick the point a single-listing map is centered on.

    Raises `MapConfigurationError` when the location the mode needs is missing.
    """

    if fuzzy.enabled:
        if obfuscated_center is None:
            raise MapConfigurationError(
                "obfuscated_center is required when fuzzy locations are enabled"
            )
        return MapLocation(
            center=obfuscated_center,
            zoom=zoom or fuzzy.default_zoom,
            is_fuzzy=True,
            fuzzy_radius_m=fuzzy.offset_m,
        )

    if center is None:
        raise MapConfigurationError(
            "center is required when fuzzy locations are disabled"
        )
    return MapLocation(center=center, zoom=zoom or DEFAULT_ZOOM)


def listing_map_location(
    listing: Listing,
    fuzzy: FuzzyConfig,
    *,
    cache: ObfuscationCache,
    zoom: int | None = None,
) -> MapLocation:
    """Map location for a listing page, obfuscated per listing id when fuzzy."""

    obfuscated = None
    if fuzzy.enabled and listing.geolocation is not None:
        obfuscated = obfuscated_coordinate(
            listing.geolocation, fuzzy.offset_m, listing.id, cache=cache
        )
    return resolve_map_location(
        fuzzy,
        center=listing.geolocation,
        obfuscated_center=obfuscated,
        zoom=zoom,
    )
