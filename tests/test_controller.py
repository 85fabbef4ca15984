"""
Tests for the selection controller state machine.
Fetchers are async fakes; gates hold a fetch open to interleave cycles.
"""
import asyncio
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import FakeSession
from utils import geometry
from utils.controller import CycleStatus, SelectionState
from utils.errors import (
    GeometryUnavailable,
    InvalidIdentifier,
    PreconditionNotMet,
    UnsupportedLevel,
    UpstreamUnavailable,
)
from utils.geography import GeographyLevel


def drawn_geoids(controller):
    return [f["properties"]["GEOID"] for f in controller.view_model.layer.features["features"]]


def test_initial_state_is_idle(backend):
    controller = backend.controller()
    assert controller.status is CycleStatus.IDLE
    assert controller.selection == SelectionState()
    assert controller.view_model.layer is None
    assert not controller.county_selector_enabled
    assert controller.enabled_levels() == [GeographyLevel.STATE]


def test_select_state_commits_state_view(backend):
    controller = backend.controller()
    assert asyncio.run(controller.select_state("6")) is True

    assert controller.status is CycleStatus.READY
    assert controller.selection == SelectionState("06", None, GeographyLevel.STATE)
    assert drawn_geoids(controller) == ["06"]
    summary = controller.view_model.state_summary
    assert (summary.name, summary.vacancy_rate_percent) == ("California", "10.0")
    assert [c.id for c in controller.view_model.counties] == ["059", "037"]
    assert controller.county_selector_enabled
    assert GeographyLevel.TRACT not in controller.enabled_levels()


def test_geometry_and_attributes_are_fetched_concurrently(backend):
    async def scenario():
        controller = backend.controller()
        gate = backend.gate("state", "06", None)
        task = asyncio.create_task(controller.select_state("06"))
        await asyncio.sleep(0.01)
        in_flight = [call[0] for call in backend.calls]
        assert controller.status is CycleStatus.LOADING
        gate.set()
        await task
        return in_flight

    in_flight = asyncio.run(scenario())
    assert "geometry" in in_flight and "attributes" in in_flight


def test_select_county_draws_counties_of_state(backend):
    async def scenario():
        controller = backend.controller()
        await controller.select_state("06")
        await controller.select_county("37")
        return controller

    controller = asyncio.run(scenario())
    assert controller.selection == SelectionState("06", "037", GeographyLevel.COUNTY)
    assert drawn_geoids(controller) == ["06037", "06059"]
    assert controller.view_model.county_summary.name == "Los Angeles County"
    assert controller.view_model.state_summary.name == "California"
    # county level draws the whole state
    assert ("geometry", "county", "06", None) in backend.calls
    assert set(controller.enabled_levels()) == set(GeographyLevel)


def test_new_state_resets_county(backend):
    async def scenario():
        controller = backend.controller()
        await controller.select_state("06")
        await controller.select_county("037")
        await controller.set_geo_level("tract")
        await controller.select_state("41")
        return controller

    controller = asyncio.run(scenario())
    assert controller.selection == SelectionState("41", None, GeographyLevel.STATE)
    assert controller.view_model.county_summary is None
    assert controller.view_model.state_summary.name == "Oregon"


def test_tract_without_county_is_rejected(backend):
    async def scenario():
        controller = backend.controller()
        await controller.select_state("06")
        cycle = controller.cycle
        ok = await controller.set_geo_level("tract")
        return controller, cycle, ok

    controller, cycle, ok = asyncio.run(scenario())
    assert ok is False
    assert isinstance(controller.error, PreconditionNotMet)
    assert controller.error_message == "Please select a county first"
    assert controller.selection.geo_level is GeographyLevel.STATE
    assert controller.cycle == cycle, "No fetch cycle should start"
    assert drawn_geoids(controller) == ["06"]


def test_unknown_level_is_rejected(backend):
    controller = backend.controller()
    assert asyncio.run(controller.set_geo_level("zip")) is False
    assert isinstance(controller.error, UnsupportedLevel)
    assert controller.selection.geo_level is GeographyLevel.STATE


def test_county_requires_state(backend):
    controller = backend.controller()
    assert asyncio.run(controller.select_county("037")) is False
    assert isinstance(controller.error, PreconditionNotMet)
    assert controller.selection == SelectionState()


def test_invalid_county_id(backend):
    async def scenario():
        controller = backend.controller()
        await controller.select_state("06")
        await controller.select_county("LA")
        return controller

    controller = asyncio.run(scenario())
    assert isinstance(controller.error, InvalidIdentifier)
    assert controller.selection.county_id is None


def test_empty_tract_geometry_keeps_previous_view(backend):
    async def empty_tracts(level, state_id=None, county_id=None):
        if GeographyLevel.parse(level) is GeographyLevel.TRACT:
            session = FakeSession({"features": []})
            return geometry.fetch_geometry(level, state_id, county_id, session=session)
        return await backend.geometry(level, state_id, county_id)

    async def scenario():
        controller = backend.controller()
        controller._fetch_geometry = empty_tracts
        await controller.select_state("06")
        await controller.select_county("037")
        before = controller.view_model
        ok = await controller.set_geo_level("tract")
        return controller, before, ok

    controller, before, ok = asyncio.run(scenario())
    assert ok is False
    assert controller.status is CycleStatus.ERROR
    assert isinstance(controller.error, GeometryUnavailable)
    assert controller.error_message.startswith("Failed to load tract data")
    assert controller.view_model is before
    assert controller.selection.state_id == "06"
    assert controller.selection.county_id == "037"


def test_failed_state_load_rolls_back_selection(backend):
    backend.failures[("state", "06", None)] = UpstreamUnavailable("Census API returned status 503")
    controller = backend.controller()
    assert asyncio.run(controller.select_state("06")) is False
    assert controller.status is CycleStatus.ERROR
    assert controller.selection == SelectionState()
    assert controller.view_model.layer is None
    assert "503" in controller.error_message


def test_superseded_cycle_result_is_discarded(backend):
    async def scenario():
        controller = backend.controller()
        await controller.select_state("06")
        await controller.select_county("037")

        gate_a = backend.gate("tract", "06", "037")
        cycle_a = asyncio.create_task(controller.set_geo_level("tract"))
        await asyncio.sleep(0.01)
        cycle_b = asyncio.create_task(controller.set_geo_level("block"))
        b_committed = await cycle_b
        gate_a.set()
        a_committed = await cycle_a
        return controller, a_committed, b_committed

    controller, a_committed, b_committed = asyncio.run(scenario())
    assert b_committed is True
    assert a_committed is False
    assert controller.status is CycleStatus.READY
    assert controller.selection.geo_level is GeographyLevel.BLOCK
    assert drawn_geoids(controller) == ["060371011101", "060371011102"]


def test_superseded_cycle_failure_is_discarded(backend):
    backend.failures[("tract", "06", "037")] = GeometryUnavailable("No boundaries returned")

    async def scenario():
        controller = backend.controller()
        await controller.select_state("06")
        await controller.select_county("037")

        gate_a = backend.gate("tract", "06", "037")
        cycle_a = asyncio.create_task(controller.set_geo_level("tract"))
        await asyncio.sleep(0.01)
        await controller.set_geo_level("county")
        gate_a.set()
        await cycle_a
        return controller

    controller = asyncio.run(scenario())
    assert controller.error is None
    assert controller.status is CycleStatus.READY
    assert controller.selection.geo_level is GeographyLevel.COUNTY


def test_deselecting_state_supersedes_in_flight_cycle(backend):
    async def scenario():
        controller = backend.controller()
        gate = backend.gate("state", "06", None)
        task = asyncio.create_task(controller.select_state("06"))
        await asyncio.sleep(0.01)
        await controller.select_state("")
        gate.set()
        await task
        return controller

    controller = asyncio.run(scenario())
    assert controller.status is CycleStatus.IDLE
    assert controller.selection == SelectionState()
    assert controller.view_model.layer is None


def test_dismiss_error(backend):
    async def scenario():
        controller = backend.controller()
        await controller.select_state("06")
        await controller.set_geo_level("tract")
        return controller

    controller = asyncio.run(scenario())
    assert controller.status is CycleStatus.ERROR
    controller.dismiss_error()
    assert controller.error is None
    assert controller.error_message is None
    assert controller.status is CycleStatus.READY


def test_load_states(backend):
    controller = backend.controller()
    assert asyncio.run(controller.load_states()) is True
    assert [s.id for s in controller.states] == ["06", "41"]


def test_national_view_without_state(backend):
    controller = backend.controller()
    assert asyncio.run(controller.set_geo_level("state")) is True
    assert drawn_geoids(controller) == ["06", "41"]
    assert controller.view_model.state_summary is None
