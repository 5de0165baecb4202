from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple

from mapsync.adapters.maps.overlay_html import render_overlay_html
from mapsync.app.ports.output import IMapProvider
from mapsync.domain.algorithms.geo_utils import circle_polyline, normalize_longitude
from mapsync.domain.exceptions.map import MapUnavailableError
from mapsync.domain.models import (
    Bounds,
    Coordinate,
    MapNode,
    OverlayContent,
    OverlayPane,
)

logger = logging.getLogger(__name__)

# Google Maps panes, in stacking order 4 and 5: labels go to the mouse
# target pane, the info card to the float pane above them.
OVERLAY_MOUSE_TARGET = "overlayMouseTarget"
FLOAT_PANE = "floatPane"
_PANE_NAMES = {OverlayPane.LABEL: OVERLAY_MOUSE_TARGET, OverlayPane.FLOAT: FLOAT_PANE}

ORIGIN_ICON_URL = (
    "https://raw.githubusercontent.com/pointhi/leaflet-color-markers/master/img/"
    "marker-icon-green.png"
)
RADIUS_COLOR = "#3388ff"


class PixelOffset(NamedTuple):
    x: float
    y: float


def anchor_offset(width: float, height: float) -> PixelOffset:
    """Center a label horizontally so its caret (3px) points at the anchor."""

    return PixelOffset(x=-(width / 2.0), y=-(height + 3.0))


def google_latlng_to_coordinate(latlng: Any) -> Coordinate | None:
    if latlng is None:
        return None
    return Coordinate(lat=float(latlng.lat()), lng=normalize_longitude(float(latlng.lng())))


def google_bounds_to_bounds(google_bounds: Any) -> Bounds | None:
    if google_bounds is None:
        return None
    ne = google_latlng_to_coordinate(google_bounds.get_north_east())
    sw = google_latlng_to_coordinate(google_bounds.get_south_west())
    if ne is None or sw is None:
        return None
    return Bounds(ne=ne, sw=sw)


def bounds_to_google_literal(bounds: Bounds) -> dict[str, float]:
    # Google accepts west > east as a box over the antimeridian.
    return {
        "north": bounds.ne.lat,
        "east": bounds.ne.lng,
        "south": bounds.sw.lat,
        "west": bounds.sw.lng,
    }


class CustomOverlay:
    """HTML overlay positioned by re-projecting its coordinate on every draw.

    The runtime calls `on_add` once the view is attached to a map, `draw`
    whenever the projection changes and `on_remove` after detaching.
    """

    def __init__(
        self,
        maps: Any,
        map_handle: Any,
        *,
        position: Coordinate,
        content: OverlayContent,
        pane_name: str,
    ) -> None:
        self._maps = maps
        self.position = position
        self.content = content
        self.pane_name = pane_name
        self.element: MapNode | None = None

        self.view = maps.OverlayView()
        self.view.on_add = self.on_add
        self.view.draw = self.draw
        self.view.on_remove = self.on_remove
        # set_map(map) triggers on_add, set_map(None) triggers on_remove.
        self.view.set_map(map_handle)

    def on_add(self) -> None:
        self.element = MapNode(id=self.content.overlay_id, style={"position": "absolute"})
        self.element.html = render_overlay_html(self.content)
        panes = self.view.get_panes()
        panes[self.pane_name].append_child(self.element)
        self.position_element()

    def on_remove(self) -> None:
        if self.element is not None and self.element.parent is not None:
            self.element.parent.remove_child(self.element)
        self.element = None

    def draw(self) -> None:
        panes = self.view.get_panes()
        if panes and self.element is not None:
            self.position_element()

    def position_element(self) -> None:
        if self.element is None:
            return
        projection = self.view.get_projection()
        if projection is None:
            return
        pixel = projection.from_lat_lng_to_div_pixel(
            self._maps.LatLng(self.position.lat, self.position.lng)
        )
        offset = anchor_offset(self.element.offset_width, self.element.offset_height)
        self.element.style["left"] = f"{pixel.x + offset.x:g}px"
        self.element.style["top"] = f"{pixel.y + offset.y:g}px"

    def update(self, *, position: Coordinate, content: OverlayContent) -> None:
        self.position = position
        self.content = content
        if self.element is not None:
            self.element.html = render_overlay_html(content)
            self.position_element()

    def remove(self) -> None:
        self.view.set_map(None)


@dataclass(slots=True)
class GoogleMapAdapter(IMapProvider):
    """Google Maps adapter.

    `runtime` is the `google.maps` namespace exposed with snake_case
    methods; None means the library is not loaded.
    """

    runtime: Any | None = None

    name: str = "googleMaps"

    def is_lib_loaded(self) -> bool:
        return self.runtime is not None

    def _lib(self) -> Any:
        if self.runtime is None:
            raise MapUnavailableError("Google Maps runtime is not loaded")
        return self.runtime

    def init(self, container: MapNode, *, center: Coordinate, zoom: int) -> Any:
        maps = self._lib()
        map_config = {
            "mapTypeControl": False,
            "scrollwheel": True,
            "fullscreenControl": False,
            "clickableIcons": False,
            "streetViewControl": False,
            "zoomControl": True,
            "center": {"lat": center.lat, "lng": center.lng},
            "zoom": zoom,
        }
        logger.debug("Google map created", extra={"zoom": zoom})
        return maps.Map(container, map_config)

    def destroy(self, map_handle: Any) -> None:
        # Google Maps has no destroy call; drop our listeners and let it go.
        self._lib().event.clear_instance_listeners(map_handle)

    def fit_bounds(self, map_handle: Any, bounds: Bounds, *, padding_px: int = 0) -> None:
        map_handle.fit_bounds(bounds_to_google_literal(bounds), padding_px)

    def get_map_bounds(self, map_handle: Any) -> Bounds | None:
        # None until the map has rendered its first frame.
        return google_bounds_to_bounds(map_handle.get_bounds())

    def get_map_center(self, map_handle: Any) -> Coordinate | None:
        return google_latlng_to_coordinate(map_handle.get_center())

    def on_idle(self, map_handle: Any, handler: Callable[[], None]) -> Any:
        return self._lib().event.add_listener(map_handle, "idle", lambda *_: handler())

    def off_idle(self, map_handle: Any, listener: Any) -> None:
        listener.remove()

    def invalidate_size(self, map_handle: Any) -> None:
        self._lib().event.trigger(map_handle, "resize")

    def set_double_click_zoom(self, map_handle: Any, enabled: bool) -> None:
        map_handle.set_options({"disableDoubleClickZoom": not enabled})

    def add_overlay(
        self,
        map_handle: Any,
        *,
        position: Coordinate,
        content: OverlayContent,
        pane: OverlayPane,
    ) -> Any:
        return CustomOverlay(
            self._lib(),
            map_handle,
            position=position,
            content=content,
            pane_name=_PANE_NAMES[pane],
        )

    def update_overlay(
        self, overlay: Any, *, position: Coordinate, content: OverlayContent
    ) -> None:
        overlay.update(position=position, content=content)

    def add_origin_marker(self, map_handle: Any, position: Coordinate) -> Any:
        maps = self._lib()
        return maps.Marker(
            {
                "position": {"lat": position.lat, "lng": position.lng},
                "map": map_handle,
                "icon": {
                    "url": ORIGIN_ICON_URL,
                    "scaledSize": maps.Size(25, 41),
                    "anchor": maps.Point(12, 41),
                },
                "title": "Search origin",
            }
        )

    def add_radius_overlay(
        self, map_handle: Any, center: Coordinate, radius_m: float
    ) -> Any:
        maps = self._lib()
        path = [maps.LatLng(c.lat, c.lng) for c in circle_polyline(center, radius_m)]
        return maps.Polygon(
            {
                "paths": path,
                "strokeColor": RADIUS_COLOR,
                "strokeOpacity": 0.6,
                "strokeWeight": 2,
                "fillColor": RADIUS_COLOR,
                "fillOpacity": 0.1,
                "map": map_handle,
                "clickable": False,
            }
        )

    def remove_overlay(self, map_handle: Any, overlay: Any) -> None:
        overlay.remove()

    def remove_layer(self, map_handle: Any, layer: Any) -> None:
        layer.set_map(None)
