class GeolocationError(Exception):
    """Base exception for IP/device geolocation failures."""


class GeolocationNotConfigured(GeolocationError):
    """Raised when no geolocation provider credentials are configured."""


class GeolocationUpstreamError(GeolocationError):
    """Raised when the geolocation provider answers with an error."""


class LocationUnavailable(GeolocationError):
    """Raised when the current location cannot be determined."""
