"""Shared fakes: a requests-like session and an in-memory Census/TIGERweb backend."""
import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from utils.census_api import AreaOption, AreaStatistic
from utils.controller import SelectionController
from utils.geography import GeographyLevel


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Stands in for requests.Session; records every GET."""

    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if isinstance(self.payload, BaseException) and not isinstance(self.payload, ValueError):
            raise self.payload
        return FakeResponse(self.payload, self.status_code)

    @property
    def last_params(self):
        return self.calls[-1]["params"]


def square(x: float, y: float, size: float = 1.0) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [[[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]],
    }


# (name, geoid, total, vacant) per level
AREAS = {
    "state": [("California", "06", 1000, 100), ("Oregon", "41", 500, 50)],
    "county": [("Los Angeles County", "06037", 3000, 300), ("Orange County", "06059", 1000, 50)],
    "tract": [("Census Tract 1011.10", "06037101110", 800, 40),
              ("Census Tract 1011.22", "06037101122", 600, 90)],
    "block": [("Block Group 1", "060371011101", 200, 10),
              ("Block Group 2", "060371011102", 150, 30)],
}
COUNTIES = [AreaOption("059", "Orange County"), AreaOption("037", "Los Angeles County")]


class FakeBackend:
    """
    Async fetchers for the selection controller. Calls can be held open with
    gates and made to fail with failures, both keyed by (level, state, county).
    """

    def __init__(self):
        self.gates = {}
        self.failures = {}
        self.calls = []

    def gate(self, level, state_id=None, county_id=None) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[(level, state_id, county_id)] = event
        return event

    async def _wait(self, key):
        event = self.gates.get(key)
        if event is not None:
            await event.wait()
        if key in self.failures:
            raise self.failures[key]

    async def geometry(self, level, state_id=None, county_id=None):
        level = GeographyLevel.parse(level).value
        self.calls.append(("geometry", level, state_id, county_id))
        await self._wait((level, state_id, county_id))
        features = []
        for i, (name, geoid, _, _) in enumerate(AREAS[level]):
            if level == "state" and state_id and geoid != state_id:
                continue
            features.append({
                "type": "Feature",
                "geometry": square(-120 + i, 34),
                "properties": {"GEOID": geoid, "NAME": name},
            })
        return {"type": "FeatureCollection", "features": features}

    async def attributes(self, level, state_id=None, county_id=None):
        level = GeographyLevel.parse(level).value
        self.calls.append(("attributes", level, state_id, county_id))
        await self._wait((level, state_id, county_id))
        return [AreaStatistic.from_counts(*area) for area in AREAS[level]]

    async def counties(self, state_id):
        self.calls.append(("counties", state_id))
        return list(COUNTIES)

    async def states(self):
        return [AreaOption("06", "California"), AreaOption("41", "Oregon")]

    def controller(self, **kwargs) -> SelectionController:
        return SelectionController(
            attribute_fetcher=self.attributes,
            geometry_fetcher=self.geometry,
            county_fetcher=self.counties,
            state_fetcher=self.states,
            **kwargs,
        )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def census_table():
    """Build a FakeSession serving a Census API table."""
    def _make(rows, status_code=200):
        return FakeSession(rows, status_code)
    return _make
