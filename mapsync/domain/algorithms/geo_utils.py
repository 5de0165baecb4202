from __future__ import annotations

import math
from typing import Iterable

from mapsync.domain.models import Bounds, Coordinate, Listing

EARTH_RADIUS_M = 6371000.0

# Precision used when comparing viewports. Sub-pixel float noise from the
# map runtimes shows up well below the 8th decimal.
BOUNDS_FIXED_PRECISION = 8

# 100 miles: catchment area shown around an address search.
SEARCH_RADIUS_M = 160934.0


def normalize_longitude(lng: float) -> float:
    """Fold a longitude into (-180, 180]."""

    if not math.isfinite(lng):
        raise ValueError(f"Invalid longitude: {lng}")
    if -180.0 < lng <= 180.0:
        return lng

    folded = (lng + 180.0) % 360.0 - 180.0
    if folded <= -180.0:
        folded += 360.0
    return folded


def great_circle_distance_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters."""

    lat1 = math.radians(a.lat)
    lon1 = math.radians(a.lng)
    lat2 = math.radians(b.lat)
    lon2 = math.radians(b.lng)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    s = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, s)))


def bounds_for_radius(center: Coordinate, radius_m: float) -> Bounds:
    """Bounding box that encloses `radius_m` around `center`.

    Equirectangular approximation; the error stays well below marker size at
    the radii used for search (~160 km). Latitudes are not clamped: a circle
    reaching past a pole raises ValueError from `Coordinate`.
    """

    lat_offset = math.degrees(radius_m / EARTH_RADIUS_M)
    lng_offset = math.degrees(
        radius_m / (EARTH_RADIUS_M * math.cos(math.radians(center.lat)))
    )

    ne = Coordinate(
        lat=center.lat + lat_offset, lng=normalize_longitude(center.lng + lng_offset)
    )
    sw = Coordinate(
        lat=center.lat - lat_offset, lng=normalize_longitude(center.lng - lng_offset)
    )
    return Bounds(ne=ne, sw=sw)


def circle_polyline(
    center: Coordinate, radius_m: float, *, step_deg: int = 8
) -> list[Coordinate]:
    """Closed polygon approximating a circle, for runtimes without circles."""

    lat = math.radians(center.lat)
    lng = math.radians(center.lng)
    d = radius_m / EARTH_RADIUS_M

    points: list[Coordinate] = []
    for bearing_deg in range(0, 360, step_deg):
        brng = math.radians(bearing_deg)
        p_lat = math.asin(
            math.sin(lat) * math.cos(d) + math.cos(lat) * math.sin(d) * math.cos(brng)
        )
        p_lng = lng + math.atan2(
            math.sin(brng) * math.sin(d) * math.cos(lat),
            math.cos(d) - math.sin(lat) * math.sin(p_lat),
        )
        points.append(
            Coordinate(
                lat=math.degrees(p_lat), lng=normalize_longitude(math.degrees(p_lng))
            )
        )

    if points:
        points.append(points[0])
    return points


def truncate_bounds_precision(bounds: Bounds, precision_digits: int) -> Bounds:
    def fixed(value: float) -> float:
        return round(value, precision_digits)

    return Bounds(
        ne=Coordinate(lat=fixed(bounds.ne.lat), lng=fixed(bounds.ne.lng)),
        sw=Coordinate(lat=fixed(bounds.sw.lat), lng=fixed(bounds.sw.lng)),
    )


def bounds_equal(a: Bounds | None, b: Bounds | None) -> bool:
    if a is None or b is None:
        return False
    return (
        a.ne.lat == b.ne.lat
        and a.ne.lng == b.ne.lng
        and a.sw.lat == b.sw.lat
        and a.sw.lng == b.sw.lng
    )


def bounds_center(bounds: Bounds) -> Coordinate:
    """Centroid of a box, taking the short way across the antimeridian."""

    lat = (bounds.ne.lat + bounds.sw.lat) / 2.0
    east = bounds.ne.lng
    if bounds.crosses_antimeridian:
        east += 360.0
    lng = normalize_longitude((bounds.sw.lng + east) / 2.0)
    return Coordinate(lat=lat, lng=lng)


def filter_listings_by_radius(
    listings: Iterable[Listing], center: Coordinate | None, radius_m: float
) -> list[Listing]:
    """Keep listings located within `radius_m` of `center`."""

    if center is None:
        return list(listings)

    return [
        listing
        for listing in listings
        if listing.geolocation is not None
        and great_circle_distance_m(center, listing.geolocation) <= radius_m
    ]
