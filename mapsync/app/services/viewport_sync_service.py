from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from mapsync.app.ports.output import IMapProvider
from mapsync.app.services.map_location import DEFAULT_ZOOM
from mapsync.app.services.marker_lifecycle_service import MarkerLifecycleManager
from mapsync.app.services.reusable_map_container import (
    DEFAULT_HIDDEN_HANDLE,
    MapInstanceHandle,
    is_parked,
)
from mapsync.domain.algorithms.geo_utils import (
    BOUNDS_FIXED_PRECISION,
    SEARCH_RADIUS_M,
    bounds_center,
    bounds_equal,
    bounds_for_radius,
    truncate_bounds_precision,
)
from mapsync.domain.models import (
    Bounds,
    Coordinate,
    Listing,
    MapNode,
    ViewportChange,
    ViewportSnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_CENTER = Coordinate(lat=40.7128, lng=-74.006)
AREA_ZOOM = 15

ViewportChangedCallback = Callable[[bool, ViewportChange], None]


class ControllerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class MapViewProps:
    """What the search page wants the map to show on this render.

    `map_search` is True when `bounds` came back from the map's own viewport
    (the user panned or zoomed) rather than from a location search.
    """

    bounds: Bounds | None = None
    center: Coordinate | None = None
    zoom: int | None = None
    listings: tuple[Listing, ...] = ()
    active_listing_id: str | None = None
    info_card_open: tuple[str, ...] = ()
    refresh_token: Any = None
    map_search: bool = False


def _is_valid_bounds(bounds: Bounds) -> bool:
    return all(
        math.isfinite(v)
        for v in (bounds.ne.lat, bounds.ne.lng, bounds.sw.lat, bounds.sw.lng)
    )


def _same_bounds(a: Bounds | None, b: Bounds | None) -> bool:
    if a is None or b is None:
        return a is b
    return bounds_equal(
        truncate_bounds_precision(a, BOUNDS_FIXED_PRECISION),
        truncate_bounds_precision(b, BOUNDS_FIXED_PRECISION),
    )


def _same_center(a: Coordinate | None, b: Coordinate | None) -> bool:
    if a is None or b is None:
        return a is b
    return round(a.lat, BOUNDS_FIXED_PRECISION) == round(
        b.lat, BOUNDS_FIXED_PRECISION
    ) and round(a.lng, BOUNDS_FIXED_PRECISION) == round(b.lng, BOUNDS_FIXED_PRECISION)


def _is_new_location_search(previous: MapViewProps, current: MapViewProps) -> bool:
    if current.map_search:
        return False
    return not _same_bounds(previous.bounds, current.bounds) or not _same_center(
        previous.center, current.center
    )


@dataclass(slots=True)
class ViewportSyncController:
    """Keeps one live map in step with the search page without fit/move loops.

    Programmatic fits are issued only for bounds the controller has not
    already fit to and that the live viewport does not already show. Idle
    signals from the map are turned into truncated viewport snapshots and
    reported through `on_viewport_changed` when they differ from the last
    one, or on the first idle of an address search.
    """

    provider: IMapProvider
    on_viewport_changed: ViewportChangedCallback
    on_map_load: Callable[[Any], None] | None = None
    marker_manager: MarkerLifecycleManager | None = None
    default_zoom: int = DEFAULT_ZOOM
    instance_handle: MapInstanceHandle | None = None
    hidden_handle: str = DEFAULT_HIDDEN_HANDLE
    fit_padding_px: int = 0

    state: ControllerState = field(default=ControllerState.UNINITIALIZED, init=False)
    _map: Any = field(default=None, init=False, repr=False)
    _container: MapNode | None = field(default=None, init=False, repr=False)
    _idle_listener: Any = field(default=None, init=False, repr=False)
    _props: MapViewProps | None = field(default=None, init=False, repr=False)
    _viewport_snapshot: ViewportSnapshot | None = field(default=None, init=False)
    _last_fit_bounds: Bounds | None = field(default=None, init=False)
    _fit_pending: bool = field(default=False, init=False)
    _origin_center: Coordinate | None = field(default=None, init=False)
    _origin_marker: Any = field(default=None, init=False, repr=False)
    _radius_overlay: Any = field(default=None, init=False, repr=False)
    _double_click_zoom: bool | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.marker_manager is None:
            self.marker_manager = MarkerLifecycleManager(self.provider)

    @property
    def map_handle(self) -> Any:
        return self._map

    @property
    def viewport_snapshot(self) -> ViewportSnapshot | None:
        return self._viewport_snapshot

    def is_available(self) -> bool:
        return self.state is not ControllerState.UNAVAILABLE and self.provider.is_lib_loaded()

    def render(self, container: MapNode, props: MapViewProps) -> None:
        """One render pass: initialize if possible, then sync view and overlays."""

        if self.state is ControllerState.UNAVAILABLE:
            return

        previous = self._props
        self._props = props
        self._container = container

        if previous is not None and _is_new_location_search(previous, props):
            self._viewport_snapshot = None
            self._last_fit_bounds = None
            self._fit_pending = False

        if self._map is None:
            if not self._initialize(container, props):
                return
            map_handle = self._map
        else:
            map_handle = self._live_map()
            if previous is not None and previous.refresh_token != props.refresh_token:
                self.provider.invalidate_size(map_handle)
                if self.on_map_load is not None:
                    self.on_map_load(map_handle)

        # Once the user owns the viewport only location searches move the map.
        if not props.map_search or self._viewport_snapshot is None:
            self.fit_bounds(
                props.bounds,
                padding_px=self.fit_padding_px,
                expand_to_radius=props.center is not None,
            )

        enable_zoom = not props.info_card_open
        if self._double_click_zoom is not enable_zoom:
            self.provider.set_double_click_zoom(map_handle, enable_zoom)
            self._double_click_zoom = enable_zoom

        self._sync_origin(map_handle, props.center)

        if self.marker_manager is not None:
            self.marker_manager.render(
                map_handle,
                props.listings,
                active_listing_id=props.active_listing_id,
                info_card_open=props.info_card_open,
            )

    def _live_map(self) -> Any:
        if self.instance_handle is not None:
            return self.instance_handle.get(self)
        return self._map

    def _initial_view(self, props: MapViewProps) -> tuple[Coordinate, int]:
        if props.center is not None:
            return props.center, props.zoom or self.default_zoom
        if props.bounds is not None and _is_valid_bounds(props.bounds):
            return bounds_center(props.bounds), AREA_ZOOM
        return DEFAULT_CENTER, self.default_zoom

    def _initialize(self, container: MapNode, props: MapViewProps) -> bool:
        if not self.provider.is_lib_loaded():
            logger.warning("Map library %s is not loaded", self.provider.name)
            self.state = ControllerState.UNAVAILABLE
            return False

        handle = self.instance_handle
        if handle is not None and handle.has_instance:
            # A parked map is taken over as is; creation is never repeated.
            map_handle = handle.transfer(self)
            self.provider.invalidate_size(map_handle)
        else:
            if not container.has_dimensions:
                logger.debug("Map container has no dimensions yet; deferring init")
                return False
            center, zoom = self._initial_view(props)
            map_handle = self.provider.init(container, center=center, zoom=zoom)
            if handle is not None:
                handle.adopt(self, map_handle)

        self._map = map_handle
        self._idle_listener = self.provider.on_idle(map_handle, self.handle_idle)
        self.state = ControllerState.READY
        logger.info("Map ready", extra={"provider": self.provider.name})

        if self.on_map_load is not None:
            self.on_map_load(map_handle)
        return True

    def fit_bounds(
        self,
        bounds: Bounds | None,
        *,
        padding_px: int = 0,
        expand_to_radius: bool = False,
    ) -> None:
        """Fit the map to `bounds` unless that would only echo the current view."""

        if self._map is None or bounds is None or not _is_valid_bounds(bounds):
            return
        map_handle = self._live_map()

        requested = truncate_bounds_precision(bounds, BOUNDS_FIXED_PRECISION)
        if bounds_equal(requested, self._last_fit_bounds):
            return

        live = self.provider.get_map_bounds(map_handle)
        if live is not None and bounds_equal(
            requested, truncate_bounds_precision(live, BOUNDS_FIXED_PRECISION)
        ):
            return

        if self._fit_pending:
            return

        target = bounds
        if expand_to_radius:
            try:
                target = bounds_for_radius(bounds_center(bounds), SEARCH_RADIUS_M)
            except ValueError:
                logger.debug("Search radius crosses a pole; fitting unexpanded bounds")

        self.provider.fit_bounds(map_handle, target, padding_px=padding_px)
        self._last_fit_bounds = requested
        self._fit_pending = True

    def handle_idle(self) -> None:
        """Provider settled after a gesture or a programmatic move."""

        map_handle = self._map
        if map_handle is None:
            return
        if self.instance_handle is not None and not self.instance_handle.is_owner(self):
            return
        # Some runtimes keep emitting events for a hidden map.
        if is_parked(self._container, self.hidden_handle):
            return

        live = self.provider.get_map_bounds(map_handle)
        if live is None:
            return

        snapshot = ViewportSnapshot(
            bounds=truncate_bounds_precision(live, BOUNDS_FIXED_PRECISION),
            center=self.provider.get_map_center(map_handle),
        )
        previous = self._viewport_snapshot
        changed = previous is not None and not bounds_equal(previous.bounds, snapshot.bounds)
        # The first idle of an address search must reach the search layer.
        initial = (
            previous is None and self._props is not None and self._props.center is not None
        )

        self._fit_pending = False
        self._viewport_snapshot = snapshot

        if changed or initial:
            self.on_viewport_changed(
                True,
                ViewportChange(
                    viewport_bounds=snapshot.bounds, viewport_center=snapshot.center
                ),
            )

    def _sync_origin(self, map_handle: Any, center: Coordinate | None) -> None:
        if center is not None and _same_center(center, self._origin_center):
            return
        self._remove_origin(map_handle)
        if center is None:
            return
        self._origin_marker = self.provider.add_origin_marker(map_handle, center)
        self._radius_overlay = self.provider.add_radius_overlay(
            map_handle, center, SEARCH_RADIUS_M
        )
        self._origin_center = center

    def _remove_origin(self, map_handle: Any) -> None:
        if self._origin_marker is not None:
            self.provider.remove_layer(map_handle, self._origin_marker)
        if self._radius_overlay is not None:
            self.provider.remove_layer(map_handle, self._radius_overlay)
        self._origin_marker = None
        self._radius_overlay = None
        self._origin_center = None

    def unmount(self) -> None:
        """Detach from the map; keep it for reuse when a handle is shared."""

        map_handle = self._map
        if map_handle is not None:
            if self._idle_listener is not None:
                self.provider.off_idle(map_handle, self._idle_listener)
            self._remove_origin(map_handle)
            if self.marker_manager is not None:
                self.marker_manager.clear(map_handle)

            handle = self.instance_handle
            if handle is None:
                self.provider.destroy(map_handle)
            elif handle.is_owner(self):
                handle.release(self)

        self._map = None
        self._container = None
        self._idle_listener = None
        self._props = None
        self._viewport_snapshot = None
        self._last_fit_bounds = None
        self._fit_pending = False
        self._double_click_zoom = None
        if self.state is ControllerState.READY:
            self.state = ControllerState.UNINITIALIZED
