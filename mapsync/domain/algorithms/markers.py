from __future__ import annotations

from typing import Iterable

from mapsync.domain.models import Coordinate, Listing, ListingMarkerGroup


def group_by_coordinates(listings: Iterable[Listing]) -> list[ListingMarkerGroup]:
    """Group listings that share the exact same geolocation.

    Groups keep the order in which their first listing was seen. Listings
    without a geolocation are skipped.
    """

    grouped: dict[Coordinate, list[Listing]] = {}
    for listing in listings:
        if listing.geolocation is None:
            continue
        grouped.setdefault(listing.geolocation, []).append(listing)

    return [
        ListingMarkerGroup(coordinate=coordinate, listings=tuple(members))
        for coordinate, members in grouped.items()
    ]
