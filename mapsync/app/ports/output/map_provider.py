from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from mapsync.domain.models import Bounds, Coordinate, MapNode, OverlayContent, OverlayPane


class IMapProvider(ABC):
    """Port for a map-rendering runtime (Leaflet, Google Maps, ...).

    Adapters translate between the runtime's own coordinate/bounds formats
    and `Coordinate`/`Bounds`. Map handles are opaque to callers.
    """

    name: str

    @abstractmethod
    def is_lib_loaded(self) -> bool:
        """Return True when the runtime library is available."""

    @abstractmethod
    def init(self, container: MapNode, *, center: Coordinate, zoom: int) -> Any:
        """Create a live map inside `container` and return its handle."""

    @abstractmethod
    def destroy(self, map_handle: Any) -> None:
        """Tear down a live map."""

    @abstractmethod
    def fit_bounds(self, map_handle: Any, bounds: Bounds, *, padding_px: int = 0) -> None:
        """Ask the runtime to make `bounds` fully visible."""

    @abstractmethod
    def get_map_bounds(self, map_handle: Any) -> Bounds | None:
        """Return the visible bounds, longitudes normalized."""

    @abstractmethod
    def get_map_center(self, map_handle: Any) -> Coordinate | None:
        """Return the visible center, longitude normalized."""

    @abstractmethod
    def on_idle(self, map_handle: Any, handler: Callable[[], None]) -> Any:
        """Subscribe to the runtime's settle signal (idle / moveend)."""

    @abstractmethod
    def off_idle(self, map_handle: Any, listener: Any) -> None:
        """Remove a subscription returned by `on_idle`."""

    @abstractmethod
    def invalidate_size(self, map_handle: Any) -> None:
        """Tell the runtime its container may have been resized or moved."""

    @abstractmethod
    def set_double_click_zoom(self, map_handle: Any, enabled: bool) -> None:
        """Enable or disable zooming on double click."""

    @abstractmethod
    def add_overlay(
        self,
        map_handle: Any,
        *,
        position: Coordinate,
        content: OverlayContent,
        pane: OverlayPane,
    ) -> Any:
        """Attach a custom overlay anchored at `position`; return its handle."""

    @abstractmethod
    def update_overlay(
        self, overlay: Any, *, position: Coordinate, content: OverlayContent
    ) -> None:
        """Update an existing overlay in place."""

    @abstractmethod
    def add_origin_marker(self, map_handle: Any, position: Coordinate) -> Any:
        """Add the search-origin marker."""

    @abstractmethod
    def add_radius_overlay(
        self, map_handle: Any, center: Coordinate, radius_m: float
    ) -> Any:
        """Add a translucent circle showing the search radius."""

    @abstractmethod
    def remove_layer(self, map_handle: Any, layer: Any) -> None:
        """Remove the origin marker or radius shape."""

    @abstractmethod
    def remove_overlay(self, map_handle: Any, overlay: Any) -> None:
        """Detach an overlay returned by `add_overlay`."""
