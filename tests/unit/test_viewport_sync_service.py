from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from mapsync.app.services.reusable_map_container import (
    DEFAULT_HIDDEN_HANDLE,
    MapInstanceHandle,
)
from mapsync.app.services.viewport_sync_service import (
    AREA_ZOOM,
    DEFAULT_CENTER,
    ControllerState,
    MapViewProps,
    ViewportSyncController,
)
from mapsync.domain.algorithms.geo_utils import SEARCH_RADIUS_M, bounds_for_radius
from mapsync.domain.exceptions.map import MapOwnershipError
from mapsync.domain.models import Bounds, Coordinate, Listing, MapNode, ViewportChange

CENTER = Coordinate(lat=40.7128, lng=-74.006)
SMALL = Bounds(
    ne=Coordinate(lat=40.7138, lng=-74.005), sw=Coordinate(lat=40.7118, lng=-74.007)
)
AREA = Bounds(ne=Coordinate(lat=41.0, lng=-73.5), sw=Coordinate(lat=40.5, lng=-74.5))
OTHER = Bounds(ne=Coordinate(lat=42.0, lng=-72.5), sw=Coordinate(lat=41.5, lng=-73.5))


@dataclass
class Recorder:
    events: list[tuple[bool, ViewportChange]] = field(default_factory=list)
    loads: list[object] = field(default_factory=list)

    def on_viewport_changed(self, flag: bool, change: ViewportChange) -> None:
        self.events.append((flag, change))

    def on_map_load(self, map_handle: object) -> None:
        self.loads.append(map_handle)


def _container() -> MapNode:
    return MapNode(id="map", offset_width=800, offset_height=600)


def _controller(provider, recorder: Recorder, **kwargs) -> ViewportSyncController:
    return ViewportSyncController(
        provider=provider,
        on_viewport_changed=recorder.on_viewport_changed,
        on_map_load=recorder.on_map_load,
        **kwargs,
    )


@pytest.mark.unit
def test_init_is_deferred_until_container_has_size(fake_provider) -> None:
    rec = Recorder()
    ctl = _controller(fake_provider, rec)
    container = MapNode(id="map")

    ctl.render(container, MapViewProps(bounds=AREA))
    assert ctl.state is ControllerState.UNINITIALIZED
    assert fake_provider.maps == []

    container.offset_width, container.offset_height = 800, 600
    ctl.render(container, MapViewProps(bounds=AREA))

    assert ctl.state is ControllerState.READY
    assert len(fake_provider.maps) == 1
    assert rec.loads == [ctl.map_handle]


@pytest.mark.unit
def test_missing_runtime_marks_controller_unavailable(fake_provider) -> None:
    fake_provider.lib_loaded = False
    ctl = _controller(fake_provider, Recorder())

    ctl.render(_container(), MapViewProps(bounds=AREA))
    fake_provider.lib_loaded = True
    ctl.render(_container(), MapViewProps(bounds=AREA))

    assert ctl.state is ControllerState.UNAVAILABLE
    assert not ctl.is_available()
    assert fake_provider.maps == []


@pytest.mark.unit
@pytest.mark.parametrize(
    ("props", "center", "zoom"),
    [
        (MapViewProps(center=CENTER, zoom=9), CENTER, 9),
        (MapViewProps(center=CENTER), CENTER, 11),
        (MapViewProps(bounds=AREA), Coordinate(lat=40.75, lng=-74.0), AREA_ZOOM),
        (MapViewProps(), DEFAULT_CENTER, 11),
    ],
)
def test_initial_view(fake_provider, props: MapViewProps, center: Coordinate, zoom: int) -> None:
    ctl = _controller(fake_provider, Recorder())
    ctl.render(_container(), props)

    created = fake_provider.maps[0]
    assert created.center.lat == pytest.approx(center.lat)
    assert created.center.lng == pytest.approx(center.lng)
    assert created.zoom == zoom


@pytest.mark.unit
def test_same_bounds_with_jitter_do_not_refit(fake_provider) -> None:
    rec = Recorder()
    ctl = _controller(fake_provider, rec)
    container = _container()

    ctl.render(container, MapViewProps(bounds=AREA))
    assert fake_provider.fits == [AREA]

    fake_provider.settle(OTHER)
    jittered = Bounds(
        ne=Coordinate(lat=AREA.ne.lat + 1e-11, lng=AREA.ne.lng),
        sw=Coordinate(lat=AREA.sw.lat, lng=AREA.sw.lng - 1e-11),
    )
    for _ in range(3):
        ctl.render(container, MapViewProps(bounds=jittered))
        fake_provider.settle(OTHER)

    assert fake_provider.fits == [AREA]


@pytest.mark.unit
def test_no_fit_when_viewport_already_shows_bounds(fake_provider) -> None:
    ctl = _controller(fake_provider, Recorder())
    fake_provider.live_bounds = AREA

    ctl.render(_container(), MapViewProps(bounds=AREA))

    assert fake_provider.fits == []


@pytest.mark.unit
def test_pending_fit_blocks_further_fits_until_idle(fake_provider) -> None:
    ctl = _controller(fake_provider, Recorder())
    ctl.render(_container(), MapViewProps(bounds=AREA))

    ctl.fit_bounds(OTHER)
    assert fake_provider.fits == [AREA]

    fake_provider.settle(AREA)
    ctl.fit_bounds(OTHER)
    assert fake_provider.fits == [AREA, OTHER]


@pytest.mark.unit
def test_fit_bounds_ignores_missing_bounds_and_missing_map(fake_provider) -> None:
    ctl = _controller(fake_provider, Recorder())
    ctl.fit_bounds(AREA)
    assert fake_provider.fits == []

    ctl.render(_container(), MapViewProps())
    ctl.fit_bounds(None)
    assert fake_provider.fits == []


@pytest.mark.unit
def test_address_search_is_expanded_to_search_radius(fake_provider) -> None:
    ctl = _controller(fake_provider, Recorder())

    ctl.render(_container(), MapViewProps(bounds=SMALL, center=CENTER))

    (fitted,) = fake_provider.fits
    assert fitted.ne.lat - fitted.sw.lat == pytest.approx(2.897, abs=0.01)
    expected = bounds_for_radius(Coordinate(lat=40.7128, lng=-74.006), SEARCH_RADIUS_M)
    assert fitted.ne.lng == pytest.approx(expected.ne.lng)


@pytest.mark.unit
def test_search_radius_past_a_pole_fits_requested_bounds(fake_provider) -> None:
    polar = Bounds(ne=Coordinate(lat=89.6, lng=10.0), sw=Coordinate(lat=89.4, lng=-10.0))
    ctl = _controller(fake_provider, Recorder())

    ctl.render(_container(), MapViewProps(bounds=polar, center=Coordinate(lat=89.5, lng=0.0)))

    assert fake_provider.fits == [polar]


@pytest.mark.unit
def test_first_address_search_emits_once_on_first_idle(fake_provider) -> None:
    rec = Recorder()
    ctl = _controller(fake_provider, rec)
    ctl.render(_container(), MapViewProps(center=CENTER))

    fake_provider.settle(AREA, CENTER)
    fake_provider.settle(AREA, CENTER)

    assert len(rec.events) == 1
    flag, change = rec.events[0]
    assert flag is True
    assert change.viewport_bounds == AREA
    assert change.viewport_center == CENTER


@pytest.mark.unit
def test_first_idle_without_center_is_not_reported(fake_provider) -> None:
    rec = Recorder()
    ctl = _controller(fake_provider, rec)
    ctl.render(_container(), MapViewProps(bounds=AREA))

    fake_provider.settle(AREA)
    assert rec.events == []
    assert ctl.viewport_snapshot is not None

    fake_provider.settle(OTHER)
    assert [c.viewport_bounds for _, c in rec.events] == [OTHER]


@pytest.mark.unit
def test_user_owned_viewport_is_not_refit_by_map_search(fake_provider) -> None:
    rec = Recorder()
    ctl = _controller(fake_provider, rec)
    container = _container()
    ctl.render(container, MapViewProps(bounds=AREA))
    fake_provider.settle(AREA)

    # The user pans; the search layer answers with the new viewport.
    fake_provider.settle(OTHER)
    fake_provider.live_bounds = SMALL
    ctl.render(container, MapViewProps(bounds=OTHER, map_search=True))

    assert fake_provider.fits == [AREA]


@pytest.mark.unit
def test_new_location_search_forgets_viewport(fake_provider) -> None:
    rec = Recorder()
    ctl = _controller(fake_provider, rec)
    container = _container()
    ctl.render(container, MapViewProps(bounds=SMALL, center=CENTER))
    fake_provider.settle(AREA, CENTER)
    assert len(rec.events) == 1

    elsewhere = Coordinate(lat=34.05, lng=-118.24)
    ctl.render(container, MapViewProps(bounds=OTHER, center=elsewhere))
    assert ctl.viewport_snapshot is None
    assert len(fake_provider.fits) == 2

    fake_provider.settle(AREA, elsewhere)
    assert len(rec.events) == 2


@pytest.mark.unit
def test_origin_marker_recreated_only_when_center_changes(fake_provider) -> None:
    ctl = _controller(fake_provider, Recorder())
    container = _container()

    ctl.render(container, MapViewProps(center=CENTER))
    ctl.render(container, MapViewProps(center=CENTER, active_listing_id="x"))
    assert [layer[0] for layer in fake_provider.layers] == ["origin", "radius"]
    assert fake_provider.layers[1][2] == SEARCH_RADIUS_M

    ctl.render(container, MapViewProps(center=Coordinate(lat=1.0, lng=1.0)))
    assert len(fake_provider.layers) == 4
    assert len(fake_provider.removed_layers) == 2

    ctl.render(container, MapViewProps())
    assert len(fake_provider.removed_layers) == 4


@pytest.mark.unit
def test_refresh_token_invalidates_size_and_reports_load(fake_provider) -> None:
    rec = Recorder()
    ctl = _controller(fake_provider, rec)
    container = _container()

    ctl.render(container, MapViewProps(refresh_token=1))
    ctl.render(container, MapViewProps(refresh_token=1))
    ctl.render(container, MapViewProps(refresh_token=2))

    assert fake_provider.invalidations == 1
    assert len(rec.loads) == 2


@pytest.mark.unit
def test_double_click_zoom_disabled_while_info_card_open(fake_provider) -> None:
    ctl = _controller(fake_provider, Recorder())
    container = _container()
    listing = Listing(id="1", geolocation=CENTER, price=10.0)

    ctl.render(container, MapViewProps(listings=(listing,)))
    ctl.render(container, MapViewProps(listings=(listing,), info_card_open=("1",)))
    ctl.render(container, MapViewProps(listings=(listing,)))

    assert fake_provider.double_click_zoom == [True, False, True]


@pytest.mark.unit
def test_idle_ignored_while_parked(fake_provider) -> None:
    rec = Recorder()
    ctl = _controller(fake_provider, rec)
    parent = MapNode(id="search-map")
    container = _container()
    parent.append_child(container)
    ctl.render(container, MapViewProps(center=CENTER))

    parent.classes.add(DEFAULT_HIDDEN_HANDLE)
    fake_provider.settle(AREA)

    assert rec.events == []
    assert ctl.viewport_snapshot is None


@pytest.mark.unit
def test_unmount_destroys_unshared_map(fake_provider) -> None:
    ctl = _controller(fake_provider, Recorder())
    ctl.render(_container(), MapViewProps(center=CENTER))
    created = ctl.map_handle

    ctl.unmount()

    assert fake_provider.destroyed == [created]
    assert fake_provider.idle_handlers == []
    assert ctl.state is ControllerState.UNINITIALIZED


@pytest.mark.unit
def test_shared_handle_reuses_instance_across_controllers(fake_provider) -> None:
    handle = MapInstanceHandle()
    first = _controller(fake_provider, Recorder(), instance_handle=handle)
    first.render(_container(), MapViewProps(center=CENTER))
    first.unmount()

    rec = Recorder()
    second = _controller(fake_provider, rec, instance_handle=handle)
    second.render(MapNode(id="elsewhere"), MapViewProps(center=CENTER))

    assert len(fake_provider.maps) == 1
    assert fake_provider.destroyed == []
    assert handle.is_owner(second)
    assert rec.loads == [fake_provider.maps[0]]


@pytest.mark.unit
def test_revoked_controller_cannot_use_map(fake_provider) -> None:
    handle = MapInstanceHandle()
    rec_first = Recorder()
    first = _controller(fake_provider, rec_first, instance_handle=handle)
    container = _container()
    first.render(container, MapViewProps(center=CENTER))

    second = _controller(fake_provider, Recorder(), instance_handle=handle)
    second.render(_container(), MapViewProps(center=CENTER))

    fake_provider.settle(AREA, CENTER)
    assert rec_first.events == []

    with pytest.raises(MapOwnershipError):
        first.render(container, MapViewProps(center=CENTER))
