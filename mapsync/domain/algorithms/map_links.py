from __future__ import annotations

from urllib.parse import quote

from mapsync.domain.models import Coordinate


def external_map_url(
    *,
    geolocation: Coordinate | None,
    address: str | None,
    map_provider: str,
) -> str | None:
    """Link for viewing a location on the provider's public map site."""

    if geolocation is None and address is None:
        return None

    if map_provider == "openStreetMap":
        if geolocation is not None:
            return (
                "https://www.openstreetmap.org/"
                f"?mlat={geolocation.lat}&mlon={geolocation.lng}&zoom=15"
            )
        return f"https://www.openstreetmap.org/search?query={quote(address or '', safe='')}"

    # Google Maps and Mapbox both link out to Google Maps.
    if geolocation is not None:
        return f"https://maps.google.com/?q={geolocation.lat},{geolocation.lng}"
    return f"https://maps.google.com/?q={quote(address or '', safe='')}"
