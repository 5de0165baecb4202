class MapError(Exception):
    """Base exception for map and geocoding failures."""


class MapConfigurationError(MapError):
    """Raised at startup when the map configuration cannot work."""


class MapUnavailableError(MapError):
    """Raised when a live map is required but the provider runtime is missing."""


class MapOwnershipError(MapError):
    """Raised when a map instance is used through a revoked handle."""
