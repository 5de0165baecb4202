from .fuzzy import FuzzyConfig
from .geo import Bounds, Coordinate, ViewportChange, ViewportSnapshot
from .listing import Listing, ListingMarkerGroup, MarkerKind
from .overlay import OverlayContent, OverlayPane
from .place import (
    CURRENT_LOCATION_ID,
    AddressComponents,
    GeocodeCacheEntry,
    IpLocation,
    PlaceCandidate,
    PlacePredictions,
)
from .surface import MapNode

__all__ = [
    "CURRENT_LOCATION_ID",
    "AddressComponents",
    "Bounds",
    "Coordinate",
    "FuzzyConfig",
    "GeocodeCacheEntry",
    "IpLocation",
    "Listing",
    "ListingMarkerGroup",
    "MapNode",
    "MarkerKind",
    "OverlayContent",
    "OverlayPane",
    "PlaceCandidate",
    "PlacePredictions",
    "ViewportChange",
    "ViewportSnapshot",
]
