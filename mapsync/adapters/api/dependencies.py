from __future__ import annotations

from functools import lru_cache
from typing import Any

from mapsync.adapters.config import MapConfig
from mapsync.adapters.geocoding.nominatim_geocoder import NominatimGeocoder
from mapsync.adapters.geolocation.ipinfo_locator import IpInfoLocator
from mapsync.adapters.maps.google_map_adapter import GoogleMapAdapter
from mapsync.adapters.maps.leaflet_map_adapter import LeafletMapAdapter
from mapsync.app.ports.output import IGeocoder, IIpLocator, IMapProvider


@lru_cache(maxsize=1)
def get_map_config() -> MapConfig:
    return MapConfig.from_env().validate()


def get_ip_locator() -> IIpLocator:
    config = get_map_config()
    return IpInfoLocator(
        token=config.ipinfo_token,
        test_ip=config.ipinfo_test_ip,
        is_production=config.is_production,
    )


@lru_cache(maxsize=1)
def get_geocoder() -> IGeocoder:
    # One instance per process: the rate limit and cache are shared.
    config = get_map_config()
    return NominatimGeocoder(
        base_url=config.geocoder_base_url,
        user_agent=config.geocoder_user_agent,
        home_country=config.home_country,
        min_interval_s=config.geocoder_min_interval_s,
        cache_ttl_s=config.geocoder_cache_ttl_s,
        timeout_s=config.geocoder_timeout_s,
        ip_locator=get_ip_locator(),
    )


def get_map_provider(runtime: Any, config: MapConfig | None = None) -> IMapProvider:
    """Adapter for the configured provider, bound to its runtime namespace."""

    config = config or get_map_config()
    if config.map_provider == "googleMaps":
        return GoogleMapAdapter(runtime=runtime)
    return LeafletMapAdapter(runtime=runtime)
