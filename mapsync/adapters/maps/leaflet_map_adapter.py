from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from mapsync.adapters.maps.overlay_html import overlay_css_classes, render_overlay_html
from mapsync.app.ports.output import IMapProvider
from mapsync.domain.algorithms.geo_utils import normalize_longitude
from mapsync.domain.exceptions.map import MapUnavailableError
from mapsync.domain.models import (
    Bounds,
    Coordinate,
    MapNode,
    OverlayContent,
    OverlayPane,
)

logger = logging.getLogger(__name__)

TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
TILE_ATTRIBUTION = "© OpenStreetMap contributors"
ORIGIN_ICON_URL = (
    "https://raw.githubusercontent.com/pointhi/leaflet-color-markers/master/img/"
    "marker-icon-green.png"
)
ORIGIN_SHADOW_URL = (
    "https://cdnjs.cloudflare.com/ajax/libs/leaflet/1.9.4/images/marker-shadow.png"
)
RADIUS_COLOR = "#3388ff"

# Leaflet has no panes for div icons here; z offset keeps the card on top.
_PANE_Z_OFFSET = {OverlayPane.LABEL: 0, OverlayPane.FLOAT: 1000}


def leaflet_latlng_to_coordinate(latlng: Any) -> Coordinate:
    """Leaflet reports longitudes beyond +-180 for boxes over the antimeridian."""

    return Coordinate(lat=float(latlng.lat), lng=normalize_longitude(float(latlng.lng)))


def leaflet_bounds_to_bounds(leaflet_bounds: Any) -> Bounds | None:
    if leaflet_bounds is None:
        return None
    return Bounds(
        ne=leaflet_latlng_to_coordinate(leaflet_bounds.get_north_east()),
        sw=leaflet_latlng_to_coordinate(leaflet_bounds.get_south_west()),
    )


def bounds_to_leaflet_bounds(bounds: Bounds) -> list[list[float]]:
    """`[[south, west], [north, east]]`; west is unwrapped below -180 when crossing."""

    sw_lng = bounds.sw.lng - 360.0 if bounds.crosses_antimeridian else bounds.sw.lng
    return [[bounds.sw.lat, sw_lng], [bounds.ne.lat, bounds.ne.lng]]


@dataclass(slots=True)
class LeafletMapAdapter(IMapProvider):
    """OpenStreetMap tiles rendered through a Leaflet runtime.

    `runtime` is the Leaflet namespace (`L`) exposed with snake_case
    methods; None means the library is not loaded.
    """

    runtime: Any | None = None
    scroll_wheel_zoom: bool = False
    max_zoom: int = 19

    name: str = "openStreetMap"

    def is_lib_loaded(self) -> bool:
        return self.runtime is not None

    def _lib(self) -> Any:
        if self.runtime is None:
            raise MapUnavailableError("Leaflet runtime is not loaded")
        return self.runtime

    def init(self, container: MapNode, *, center: Coordinate, zoom: int) -> Any:
        L = self._lib()
        map_handle = L.map(
            container,
            center=[center.lat, center.lng],
            zoom=zoom,
            zoom_control=True,
            scroll_wheel_zoom=self.scroll_wheel_zoom,
        )
        L.tile_layer(
            TILE_URL, attribution=TILE_ATTRIBUTION, max_zoom=self.max_zoom
        ).add_to(map_handle)
        logger.debug("Leaflet map created", extra={"zoom": zoom})
        return map_handle

    def destroy(self, map_handle: Any) -> None:
        map_handle.remove()

    def fit_bounds(self, map_handle: Any, bounds: Bounds, *, padding_px: int = 0) -> None:
        map_handle.fit_bounds(
            bounds_to_leaflet_bounds(bounds),
            padding=(padding_px, padding_px),
            animate=False,
        )

    def get_map_bounds(self, map_handle: Any) -> Bounds | None:
        return leaflet_bounds_to_bounds(map_handle.get_bounds())

    def get_map_center(self, map_handle: Any) -> Coordinate | None:
        center = map_handle.get_center()
        if center is None:
            return None
        return leaflet_latlng_to_coordinate(center)

    def on_idle(self, map_handle: Any, handler: Callable[[], None]) -> Any:
        def listener(*_args: Any) -> None:
            handler()

        map_handle.on("moveend", listener)
        return listener

    def off_idle(self, map_handle: Any, listener: Any) -> None:
        map_handle.off("moveend", listener)

    def invalidate_size(self, map_handle: Any) -> None:
        map_handle.invalidate_size()

    def set_double_click_zoom(self, map_handle: Any, enabled: bool) -> None:
        if enabled:
            map_handle.double_click_zoom.enable()
        else:
            map_handle.double_click_zoom.disable()

    def _div_icon(self, content: OverlayContent) -> Any:
        return self._lib().div_icon(
            html=render_overlay_html(content),
            class_name=" ".join(["custom-div-icon", *overlay_css_classes(content)]),
            icon_size=None,
            icon_anchor=(0, 0),
        )

    def add_overlay(
        self,
        map_handle: Any,
        *,
        position: Coordinate,
        content: OverlayContent,
        pane: OverlayPane,
    ) -> Any:
        return (
            self._lib()
            .marker(
                [position.lat, position.lng],
                icon=self._div_icon(content),
                z_index_offset=_PANE_Z_OFFSET[pane],
            )
            .add_to(map_handle)
        )

    def update_overlay(
        self, overlay: Any, *, position: Coordinate, content: OverlayContent
    ) -> None:
        overlay.set_lat_lng([position.lat, position.lng])
        overlay.set_icon(self._div_icon(content))

    def add_origin_marker(self, map_handle: Any, position: Coordinate) -> Any:
        L = self._lib()
        icon = L.icon(
            icon_url=ORIGIN_ICON_URL,
            shadow_url=ORIGIN_SHADOW_URL,
            icon_size=(25, 41),
            icon_anchor=(12, 41),
            popup_anchor=(1, -34),
            shadow_size=(41, 41),
        )
        return L.marker([position.lat, position.lng], icon=icon).add_to(map_handle)

    def add_radius_overlay(
        self, map_handle: Any, center: Coordinate, radius_m: float
    ) -> Any:
        return (
            self._lib()
            .circle(
                [center.lat, center.lng],
                radius=radius_m,
                color=RADIUS_COLOR,
                weight=2,
                opacity=0.6,
                fill_color=RADIUS_COLOR,
                fill_opacity=0.1,
            )
            .add_to(map_handle)
        )

    def remove_layer(self, map_handle: Any, layer: Any) -> None:
        map_handle.remove_layer(layer)

    def remove_overlay(self, map_handle: Any, overlay: Any) -> None:
        map_handle.remove_layer(overlay)
