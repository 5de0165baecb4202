from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from mapsync.app.ports.output import IIpLocator
from mapsync.domain.exceptions.geolocation import (
    GeolocationNotConfigured,
    GeolocationUpstreamError,
)
from mapsync.domain.models import IpLocation

logger = logging.getLogger(__name__)

# Geographic centre of the contiguous United States.
DEV_FALLBACK_LOCATION = IpLocation(lat=39.8283, lng=-98.5795, source="ipinfo-dev-fallback")


def _parse_loc(data: Any) -> tuple[float, float] | None:
    loc = data.get("loc") if isinstance(data, dict) else None
    if not isinstance(loc, str) or "," not in loc:
        return None
    lat_raw, lng_raw = loc.split(",", 1)
    try:
        lat = float(lat_raw)
        lng = float(lng_raw)
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    return lat, lng


@dataclass(slots=True)
class IpInfoLocator(IIpLocator):
    """Approximate location of a client IP through ipinfo.io.

    Outside production a missing location is retried with `test_ip` (local
    requests come from addresses ipinfo cannot place) and finally answered
    with a neutral US centre so the flow can be exercised.
    """

    token: str | None = None
    test_ip: str | None = None
    is_production: bool = False
    base_url: str = "https://ipinfo.io"
    timeout_s: float = 5.0
    transport: httpx.AsyncBaseTransport | None = None

    def _url(self, ip: str | None) -> str:
        base = self.base_url.rstrip("/")
        if ip:
            return f"{base}/{quote(ip, safe='')}/json"
        return f"{base}/json"

    async def _fetch(self, client: httpx.AsyncClient, ip: str | None) -> httpx.Response:
        try:
            return await client.get(
                self._url(ip),
                params={"token": self.token},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise GeolocationUpstreamError(f"IPinfo request failed: {exc}") from exc

    async def locate(self, ip: str | None) -> IpLocation | None:
        if not self.token:
            raise GeolocationNotConfigured("IP geolocation not configured")

        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
            resp = await self._fetch(client, ip)
            if resp.is_error:
                raise GeolocationUpstreamError(
                    f"IPinfo request failed: {resp.status_code} {resp.text[:200]}"
                )
            coords = _parse_loc(resp.json())

            if coords is None and not self.is_production and self.test_ip:
                test_resp = await self._fetch(client, self.test_ip)
                if test_resp.is_success:
                    coords = _parse_loc(test_resp.json())

        if coords is None:
            if not self.is_production:
                logger.info("No IP location for %s; using development fallback", ip)
                return DEV_FALLBACK_LOCATION
            return None

        lat, lng = coords
        return IpLocation(lat=lat, lng=lng, source="ipinfo")
