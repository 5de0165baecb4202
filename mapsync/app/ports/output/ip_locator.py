from __future__ import annotations

from abc import ABC, abstractmethod

from mapsync.domain.models import IpLocation


class IIpLocator(ABC):
    """Port for approximate geolocation by client IP address."""

    @abstractmethod
    async def locate(self, ip: str | None) -> IpLocation | None:
        """Locate `ip` (or the caller's own address when None).

        Returns None when the provider has no location for the address.
        """
