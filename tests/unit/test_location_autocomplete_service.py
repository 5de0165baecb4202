from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest

from mapsync.app.services.location_autocomplete_service import LocationAutocompleteService
from mapsync.domain.models import CURRENT_LOCATION_ID, PlaceCandidate, PlacePredictions


@dataclass(slots=True)
class GatedGeocoder:
    """Answers immediately unless a gate is registered for the query."""

    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def search(self, query, country_filter=None, locale=None):
        return []

    async def get_place_predictions(self, search, country_filter=None, locale=None):
        self.calls.append(search)
        gate = self.gates.get(search)
        if gate is not None:
            await gate.wait()
        return PlacePredictions(search=search, predictions=({"place_id": search},))

    async def get_place_details(self, prediction, current_location_bounds_distance=None):
        gate = self.gates.get(prediction["place_id"])
        if gate is not None:
            await gate.wait()
        return PlaceCandidate(
            place_id=prediction["place_id"], address=prediction["place_id"], origin=None, bounds=None
        )


@pytest.mark.unit
def test_superseded_predictions_are_dropped() -> None:
    async def scenario():
        geocoder = GatedGeocoder()
        geocoder.gates["ber"] = asyncio.Event()
        service = LocationAutocompleteService(geocoder)

        slow = asyncio.create_task(service.predictions("ber"))
        await asyncio.sleep(0)
        fast = await service.predictions("berlin")
        geocoder.gates["ber"].set()
        return await slow, fast

    slow, fast = asyncio.run(scenario())

    assert slow is None
    assert fast is not None and fast.search == "berlin"


@pytest.mark.unit
def test_fields_are_tracked_independently() -> None:
    async def scenario():
        geocoder = GatedGeocoder()
        geocoder.gates["from"] = asyncio.Event()
        service = LocationAutocompleteService(geocoder)

        origin = asyncio.create_task(service.predictions("from", field_key="origin"))
        await asyncio.sleep(0)
        destination = await service.predictions("to", field_key="destination")
        geocoder.gates["from"].set()
        return await origin, destination

    origin, destination = asyncio.run(scenario())

    assert origin is not None and origin.search == "from"
    assert destination is not None and destination.search == "to"


@pytest.mark.unit
def test_empty_search_offers_current_location() -> None:
    geocoder = GatedGeocoder()
    service = LocationAutocompleteService(geocoder, use_current_location=True)

    result = asyncio.run(service.predictions("  "))

    assert result is not None
    assert result.predictions == ({"id": CURRENT_LOCATION_ID},)
    assert geocoder.calls == []


@pytest.mark.unit
def test_select_drops_superseded_details() -> None:
    async def scenario():
        geocoder = GatedGeocoder()
        geocoder.gates["a"] = asyncio.Event()
        service = LocationAutocompleteService(geocoder)

        first = asyncio.create_task(service.select({"place_id": "a"}))
        await asyncio.sleep(0)
        second = await service.select({"place_id": "b"})
        geocoder.gates["a"].set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert first is None
    assert second is not None and second.place_id == "b"
