from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import pytest

from mapsync.domain.models import Bounds, Coordinate, OverlayContent, OverlayPane


@dataclass
class FakeOverlay:
    position: Coordinate
    content: OverlayContent
    pane: OverlayPane
    removed: bool = False


@dataclass
class FakeMap:
    container: Any
    center: Coordinate
    zoom: int


@dataclass
class FakeMapProvider:
    """Records every call a controller or marker manager makes."""

    lib_loaded: bool = True
    live_bounds: Bounds | None = None
    live_center: Coordinate | None = None
    name: str = "fake"

    maps: list[FakeMap] = field(default_factory=list)
    destroyed: list[FakeMap] = field(default_factory=list)
    fits: list[Bounds] = field(default_factory=list)
    idle_handlers: list[Callable[[], None]] = field(default_factory=list)
    overlays: list[FakeOverlay] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    layers: list[tuple] = field(default_factory=list)
    removed_layers: list[tuple] = field(default_factory=list)
    double_click_zoom: list[bool] = field(default_factory=list)
    invalidations: int = 0

    def is_lib_loaded(self) -> bool:
        return self.lib_loaded

    def init(self, container: Any, *, center: Coordinate, zoom: int) -> FakeMap:
        m = FakeMap(container=container, center=center, zoom=zoom)
        self.maps.append(m)
        return m

    def destroy(self, map_handle: FakeMap) -> None:
        self.destroyed.append(map_handle)

    def fit_bounds(self, map_handle: FakeMap, bounds: Bounds, *, padding_px: int = 0) -> None:
        self.fits.append(bounds)

    def get_map_bounds(self, map_handle: FakeMap) -> Bounds | None:
        return self.live_bounds

    def get_map_center(self, map_handle: FakeMap) -> Coordinate | None:
        return self.live_center

    def on_idle(self, map_handle: FakeMap, handler: Callable[[], None]) -> Any:
        self.idle_handlers.append(handler)
        return handler

    def off_idle(self, map_handle: FakeMap, listener: Any) -> None:
        self.idle_handlers.remove(listener)

    def invalidate_size(self, map_handle: FakeMap) -> None:
        self.invalidations += 1

    def set_double_click_zoom(self, map_handle: FakeMap, enabled: bool) -> None:
        self.double_click_zoom.append(enabled)

    def add_overlay(
        self,
        map_handle: FakeMap,
        *,
        position: Coordinate,
        content: OverlayContent,
        pane: OverlayPane,
    ) -> FakeOverlay:
        overlay = FakeOverlay(position=position, content=content, pane=pane)
        self.overlays.append(overlay)
        return overlay

    def update_overlay(
        self, overlay: FakeOverlay, *, position: Coordinate, content: OverlayContent
    ) -> None:
        overlay.position = position
        overlay.content = content
        self.updated.append(content.overlay_id)

    def remove_overlay(self, map_handle: FakeMap, overlay: FakeOverlay) -> None:
        overlay.removed = True

    def add_origin_marker(self, map_handle: FakeMap, position: Coordinate) -> tuple:
        layer = ("origin", position)
        self.layers.append(layer)
        return layer

    def add_radius_overlay(
        self, map_handle: FakeMap, center: Coordinate, radius_m: float
    ) -> tuple:
        layer = ("radius", center, radius_m)
        self.layers.append(layer)
        return layer

    def remove_layer(self, map_handle: FakeMap, layer: tuple) -> None:
        self.removed_layers.append(layer)

    def settle(self, bounds: Bounds, center: Coordinate | None = None) -> None:
        """Simulate the map coming to rest on `bounds`."""

        self.live_bounds = bounds
        self.live_center = center
        for handler in list(self.idle_handlers):
            handler()

    @property
    def live_overlays(self) -> list[FakeOverlay]:
        return [o for o in self.overlays if not o.removed]


@pytest.fixture
def fake_provider() -> FakeMapProvider:
    return FakeMapProvider()
