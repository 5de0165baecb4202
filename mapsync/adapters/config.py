from __future__ import annotations

import os
from dataclasses import dataclass

from mapsync.domain.exceptions.map import MapConfigurationError
from mapsync.domain.models import FuzzyConfig

MAP_PROVIDERS = frozenset({"openStreetMap", "googleMaps"})


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise MapConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_str(name: str, *fallbacks: str) -> str | None:
    for key in (name, *fallbacks):
        value = (os.getenv(key) or "").strip()
        if value:
            return value
    return None


@dataclass(frozen=True, slots=True)
class MapConfig:
    map_provider: str = "openStreetMap"
    google_maps_api_key: str | None = None

    geocoder_base_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "OpenStreetMapIntegration"
    geocoder_timeout_s: float = 10.0
    geocoder_min_interval_s: float = 1.0
    geocoder_cache_ttl_s: float = 300.0
    home_country: str | None = "United States"

    fuzzy: FuzzyConfig = FuzzyConfig()

    ipinfo_token: str | None = None
    ipinfo_test_ip: str | None = None
    app_env: str = "development"

    @staticmethod
    def from_env() -> "MapConfig":
        """Read configuration from the environment.

        Env vars:
          - MAP_PROVIDER: openStreetMap (default) or googleMaps
          - GOOGLE_MAPS_API_KEY: required for googleMaps
          - GEOCODER_BASE_URL, GEOCODER_USER_AGENT, GEOCODER_TIMEOUT_S,
            GEOCODER_MIN_INTERVAL_S, GEOCODER_CACHE_TTL_S
          - HOME_COUNTRY: country left out of formatted addresses
          - MAP_FUZZY_ENABLED, MAP_FUZZY_OFFSET_M, MAP_FUZZY_DEFAULT_ZOOM
          - IPINFO_TOKEN (or IPINFO_ACCESS_TOKEN), IPINFO_TEST_IP
          - APP_ENV: 'production' disables development fallbacks
        """

        home_country = os.getenv("HOME_COUNTRY")
        if home_country is not None:
            home_country = home_country.strip() or None
        else:
            home_country = "United States"

        fuzzy = FuzzyConfig(
            enabled=_env_bool("MAP_FUZZY_ENABLED", False),
            offset_m=_env_float("MAP_FUZZY_OFFSET_M", 500.0),
            default_zoom=int(_env_float("MAP_FUZZY_DEFAULT_ZOOM", 13)),
        )

        return MapConfig(
            map_provider=_env_str("MAP_PROVIDER") or "openStreetMap",
            google_maps_api_key=_env_str("GOOGLE_MAPS_API_KEY"),
            geocoder_base_url=(
                _env_str("GEOCODER_BASE_URL") or "https://nominatim.openstreetmap.org"
            ).rstrip("/"),
            geocoder_user_agent=_env_str("GEOCODER_USER_AGENT")
            or "OpenStreetMapIntegration",
            geocoder_timeout_s=_env_float("GEOCODER_TIMEOUT_S", 10.0),
            geocoder_min_interval_s=_env_float("GEOCODER_MIN_INTERVAL_S", 1.0),
            geocoder_cache_ttl_s=_env_float("GEOCODER_CACHE_TTL_S", 300.0),
            home_country=home_country,
            fuzzy=fuzzy,
            ipinfo_token=_env_str("IPINFO_TOKEN", "IPINFO_ACCESS_TOKEN"),
            ipinfo_test_ip=_env_str("IPINFO_TEST_IP"),
            app_env=(_env_str("APP_ENV") or "development").lower(),
        )

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def has_api_access(self) -> bool:
        if self.map_provider == "openStreetMap":
            return True
        return bool(self.google_maps_api_key)

    def validate(self) -> "MapConfig":
        """Fail fast on configurations that can never render a map."""

        if self.map_provider not in MAP_PROVIDERS:
            raise MapConfigurationError(
                f"Unsupported MAP_PROVIDER {self.map_provider!r}; "
                f"expected one of {sorted(MAP_PROVIDERS)}"
            )
        if not self.has_api_access():
            raise MapConfigurationError(
                f"The access tokens are not in place for the selected map provider "
                f"({self.map_provider})"
            )
        if self.geocoder_min_interval_s < 0 or self.geocoder_timeout_s <= 0:
            raise MapConfigurationError("Geocoder interval/timeout must be positive")
        return self
