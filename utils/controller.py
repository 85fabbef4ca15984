"""
US Housing Vacancy Explorer — Selection Controller
Owns the selection (state, county, geography level) and the view model built
from it. Every selection change starts a fetch cycle; boundaries and vacancy
counts for the cycle are fetched concurrently and joined.

Only the most recently started cycle may commit. Each cycle captures a
sequence token when it starts and checks it before touching any state, so a
slow superseded cycle can never overwrite a newer one, whether it succeeds or fails.
"""
import asyncio
import functools
import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from utils import census_api, geometry
from utils.data_prep import RenderableLayer, join
from utils.errors import PreconditionNotMet, VacancyMapError
from utils.geography import (
    GeographyLevel,
    build_geoid,
    normalize_county_id,
    normalize_state_id,
)

logger = logging.getLogger(__name__)


class CycleStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class SelectionState:
    state_id: str | None = None
    county_id: str | None = None
    geo_level: GeographyLevel = GeographyLevel.STATE


@dataclass(frozen=True)
class ViewModel:
    layer: RenderableLayer | None = None
    state_summary: census_api.AreaStatistic | None = None
    county_summary: census_api.AreaStatistic | None = None
    counties: tuple = field(default=())


def in_thread(func):
    """Wrap a blocking loader so it runs off the event loop."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        return await asyncio.to_thread(func, *args, **kwargs)
    return wrapper


class SelectionController:
    """
    Drives the fetch-and-join pipeline from user selections.

    Fetchers are async callables; by default the requests-based loaders run
    in worker threads. Commands never raise VacancyMapError: failures land in
    `error` / `error_message` and the status becomes ERROR.
    """

    def __init__(
        self,
        attribute_fetcher=None,
        geometry_fetcher=None,
        county_fetcher=None,
        state_fetcher=None,
        top_n: int | None = None,
    ):
        self._fetch_attributes = attribute_fetcher or in_thread(census_api.fetch_attributes)
        self._fetch_geometry = geometry_fetcher or in_thread(geometry.fetch_geometry)
        self._fetch_counties = county_fetcher or in_thread(census_api.fetch_counties)
        self._fetch_states = state_fetcher or in_thread(census_api.fetch_states)
        self._top_n = top_n

        self.selection = SelectionState()
        self.view_model = ViewModel()
        self.status = CycleStatus.IDLE
        self.error: VacancyMapError | None = None
        self.error_message: str | None = None
        self.states: tuple = ()
        self._cycle = 0

    # --- queries ---

    @property
    def county_selector_enabled(self) -> bool:
        return self.selection.state_id is not None

    def enabled_levels(self) -> list[GeographyLevel]:
        """Levels the level selector offers for the current selection."""
        levels = [GeographyLevel.STATE]
        if self.selection.state_id:
            levels.append(GeographyLevel.COUNTY)
        if self.selection.county_id:
            levels.extend([GeographyLevel.TRACT, GeographyLevel.BLOCK])
        return levels

    @property
    def cycle(self) -> int:
        """Sequence number of the most recently started fetch cycle."""
        return self._cycle

    # --- commands ---

    async def load_states(self) -> bool:
        """Fill the state selector options."""
        try:
            states = await self._fetch_states()
        except VacancyMapError as e:
            self._fail(e, f"Failed to load states: {e}")
            return False
        self.states = tuple(states)
        return True

    async def select_state(self, state_id) -> bool:
        """
        Select a state: clears the county, its statistics and the drawn layer,
        returns to state level and loads the state. An empty id deselects.
        """
        if state_id is None or str(state_id).strip() == "":
            self._cycle += 1
            self.selection = SelectionState()
            self.view_model = ViewModel()
            self.status = CycleStatus.IDLE
            self.dismiss_error()
            return True

        try:
            state_id = normalize_state_id(state_id)
        except VacancyMapError as e:
            self._fail(e, f"Failed to load state data: {e}")
            return False

        self.selection = SelectionState(state_id=state_id, geo_level=GeographyLevel.STATE)
        self.view_model = ViewModel()
        return await self._run_cycle(self.selection, rollback_on_failure=True)

    async def select_county(self, county_id) -> bool:
        """Select a county of the current state and switch to county level."""
        try:
            if not self.selection.state_id:
                raise PreconditionNotMet("Please select a state first")
            county_id = normalize_county_id(county_id)
        except VacancyMapError as e:
            self._fail(e, f"Failed to load county data: {e}")
            return False

        self.selection = replace(
            self.selection, county_id=county_id, geo_level=GeographyLevel.COUNTY
        )
        self.view_model = replace(self.view_model, county_summary=None)
        return await self._run_cycle(self.selection)

    async def set_geo_level(self, level) -> bool:
        """Switch the geography level, keeping the current state and county."""
        try:
            level = GeographyLevel.parse(level)
            if level.needs_county and not self.selection.county_id:
                raise PreconditionNotMet("Please select a county first")
            if level.needs_state and not self.selection.state_id:
                raise PreconditionNotMet("Please select a state first")
        except VacancyMapError as e:
            # The level stays as it was; no cycle is started
            self._fail(e, str(e))
            return False

        self.selection = replace(self.selection, geo_level=level)
        return await self._run_cycle(self.selection)

    def dismiss_error(self):
        self.error = None
        self.error_message = None
        if self.status is CycleStatus.ERROR:
            self.status = CycleStatus.READY if self.view_model.layer else CycleStatus.IDLE

    # --- fetch cycle ---

    def _focus_geoid(self, selection: SelectionState) -> str | None:
        if selection.geo_level is GeographyLevel.STATE:
            return selection.state_id
        if selection.geo_level is GeographyLevel.COUNTY and selection.county_id:
            return build_geoid(selection.state_id, selection.county_id)
        return None

    async def _fetch_cycle(self, selection: SelectionState):
        level = selection.geo_level
        county_id = selection.county_id
        if level is GeographyLevel.COUNTY:
            # County level draws every county of the state
            county_id = None

        jobs = [
            self._fetch_geometry(level, selection.state_id, county_id),
            self._fetch_attributes(level, selection.state_id, county_id),
        ]
        load_counties = level is GeographyLevel.STATE and selection.state_id is not None
        if load_counties:
            jobs.append(self._fetch_counties(selection.state_id))

        results = await asyncio.gather(*jobs)
        features, statistics = results[0], results[1]
        layer = join(
            features,
            statistics,
            focus_geoid=self._focus_geoid(selection),
            top_n=self._top_n,
        )
        counties = tuple(results[2]) if load_counties else None
        return layer, counties

    async def _run_cycle(self, selection: SelectionState, rollback_on_failure: bool = False) -> bool:
        self._cycle += 1
        token = self._cycle
        self.status = CycleStatus.LOADING
        self.error = None
        self.error_message = None
        level = selection.geo_level.value
        logger.info(
            f"Cycle {token}: loading {level} level "
            f"(state={selection.state_id}, county={selection.county_id})"
        )

        try:
            layer, counties = await self._fetch_cycle(selection)
        except VacancyMapError as e:
            if token != self._cycle:
                logger.info(f"Cycle {token}: discarding failure from superseded cycle")
                return False
            if rollback_on_failure:
                self.selection = SelectionState()
                self.view_model = ViewModel()
            self._fail(e, f"Failed to load {level} data: {e}")
            return False

        if token != self._cycle:
            logger.info(f"Cycle {token}: discarding result from superseded cycle")
            return False

        view_model = replace(self.view_model, layer=layer)
        if counties is not None:
            view_model = replace(view_model, counties=counties)
        if selection.geo_level is GeographyLevel.STATE and selection.state_id:
            view_model = replace(view_model, state_summary=layer.summary)
        elif selection.geo_level is GeographyLevel.COUNTY:
            view_model = replace(view_model, county_summary=layer.summary)

        self.view_model = view_model
        self.status = CycleStatus.READY
        logger.info(f"Cycle {token}: drew {len(layer.statistics)} {level}-level areas")
        return True

    def _fail(self, error: VacancyMapError, message: str):
        logger.error(message)
        self.error = error
        self.error_message = message
        self.status = CycleStatus.ERROR
