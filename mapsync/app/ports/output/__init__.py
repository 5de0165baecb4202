from .geocoder import IGeocoder
from .ip_locator import IIpLocator
from .map_provider import IMapProvider

__all__ = [
    "IGeocoder",
    "IIpLocator",
    "IMapProvider",
]
