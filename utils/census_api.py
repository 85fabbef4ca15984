"""
US Housing Vacancy Explorer — Census API Loaders
Pulls ACS occupancy counts (table B25002) for a geography level, and the
state/county lists that feed the selectors.
"""
import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
import requests

import config
from utils.errors import InvalidIdentifier, UpstreamUnavailable
from utils.geography import (
    GeographyLevel,
    build_geoid,
    normalize_county_id,
    normalize_state_id,
    require_ids,
    strip_display_name,
)

logger = logging.getLogger(__name__)

# Census annotation values that stand in for a missing estimate
CENSUS_SENTINELS = [-999999999, -888888888, -666666666, -555555555, -333333333, -222222222]


def vacancy_rate_percent(total, vacant) -> str:
    """Vacant / total * 100 rounded to one decimal, as text. "0.0" when total is 0."""
    if not total or total <= 0:
        return "0.0"
    return f"{round((vacant or 0) / total * 100, 1):.1f}"


@dataclass(frozen=True)
class AreaStatistic:
    name: str
    geoid: str
    total_housing_units: int
    vacant_units: int
    vacancy_rate_percent: str

    @classmethod
    def from_counts(cls, name: str, geoid: str, total: int, vacant: int) -> "AreaStatistic":
        return cls(
            name=name,
            geoid=geoid,
            total_housing_units=int(total),
            vacant_units=int(vacant),
            vacancy_rate_percent=vacancy_rate_percent(total, vacant),
        )

    @classmethod
    def empty(cls, geoid: str, name: str = "") -> "AreaStatistic":
        """Placeholder for an area with no reporting row."""
        return cls.from_counts(name or geoid, geoid, 0, 0)

    @property
    def occupied_units(self) -> int:
        return self.total_housing_units - self.vacant_units

    @property
    def vacancy_rate(self) -> float:
        return float(self.vacancy_rate_percent)

    @property
    def occupancy_rate_percent(self) -> str:
        if self.total_housing_units <= 0:
            return "0.0"
        return f"{100 - self.vacancy_rate:.1f}"


@dataclass(frozen=True)
class AreaOption:
    """One entry of the state or county selector."""
    id: str
    name: str


def _request_table(params: list, session=None, description: str = "Census data") -> list:
    """
    GET the Census API and return its JSON table (header row + data rows).

    Raises UpstreamUnavailable on network errors, non-200 status, invalid JSON,
    or anything that is not a list of at least two rows.
    """
    if config.CENSUS_API_KEY:
        params = params + [("key", config.CENSUS_API_KEY)]

    http = session or requests
    logger.info(f"Fetching {description} from Census API (vintage {config.ACS_VINTAGE})...")
    try:
        resp = http.get(config.CENSUS_API_BASE, params=params, timeout=config.REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise UpstreamUnavailable(f"Census API request failed: {e}") from e

    if resp.status_code != 200:
        raise UpstreamUnavailable(
            f"Census API returned status {resp.status_code}: {resp.text[:500]}"
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise UpstreamUnavailable("Census API returned invalid JSON") from e

    if not isinstance(data, list) or not all(isinstance(row, list) for row in data):
        raise UpstreamUnavailable("Census API returned a non-tabular response")
    if len(data) < 2:
        raise UpstreamUnavailable(f"Census API returned no rows for {description}")
    return data


def _to_frame(data: list) -> pd.DataFrame:
    headers = data[0]
    rows = data[1:]
    if not headers:
        raise UpstreamUnavailable("Census API returned an empty header row")
    try:
        return pd.DataFrame(rows, columns=headers)
    except ValueError as e:
        raise UpstreamUnavailable(f"Census API rows do not match the header row: {e}") from e


def _count_column(df: pd.DataFrame, variable: str) -> pd.Series:
    """Parse a count column; missing, non-numeric and sentinel values become 0."""
    if variable not in df.columns:
        logger.warning(f"Census response has no {variable} column; using 0")
        return pd.Series(0, index=df.index, dtype=int)
    values = pd.to_numeric(df[variable], errors="coerce").replace(CENSUS_SENTINELS, np.nan)
    return values.where(values >= 0).fillna(0).astype(int)


def _row_geoid(row: pd.Series, id_col: str, level: GeographyLevel, state_id, county_id) -> str:
    own = row[id_col]
    if level is GeographyLevel.STATE:
        return normalize_state_id(own)
    state = row.get("state", state_id)
    if level is GeographyLevel.COUNTY:
        return build_geoid(state, own)
    county = row.get("county", county_id)
    if level is GeographyLevel.TRACT:
        return build_geoid(state, county, own)
    return build_geoid(state, county, row.get("tract"), own)


def build_attribute_params(level, state_id=None, county_id=None) -> list:
    """Query parameters for the vacancy counts of every area at a level."""
    level = GeographyLevel.parse(level)
    state_id, county_id = require_ids(level, state_id, county_id)

    params = [
        ("get", ",".join(["NAME", *config.VACANCY_VARIABLES])),
        ("for", f"{config.API_GEOGRAPHY[level.value]}:*"),
    ]
    if level.needs_state:
        params.append(("in", f"state:{state_id}"))
    if level.needs_county:
        params.append(("in", f"county:{county_id}"))
    if level is GeographyLevel.BLOCK:
        # Block groups are only served with an explicit tract wildcard
        params.append(("in", "tract:*"))
    return params


def fetch_attributes(level, state_id=None, county_id=None, *, session=None) -> list[AreaStatistic]:
    """
    Fetch total and vacant housing units for all areas at a geography level.

    Scoped to the state (and county for tract/block levels) when the level
    is below state. Returns one AreaStatistic per data row, in row order.
    """
    level = GeographyLevel.parse(level)
    params = build_attribute_params(level, state_id, county_id)
    state_id, county_id = require_ids(level, state_id, county_id)

    data = _request_table(params, session, f"{level.value}-level vacancy data")
    df = _to_frame(data)
    # The area's own code is always the last column; parents are located by name.
    id_col = df.columns[-1]
    if id_col in ("NAME", *config.VACANCY_VARIABLES):
        raise UpstreamUnavailable(f"Census API response has no geography column for {level.value}")

    df["total_housing_units"] = _count_column(df, config.TOTAL_UNITS_VARIABLE)
    df["vacant_units"] = _count_column(df, config.VACANT_UNITS_VARIABLE)
    name_col = "NAME" if "NAME" in df.columns else df.columns[0]

    stats = []
    skipped = 0
    for _, row in df.iterrows():
        try:
            geoid = _row_geoid(row, id_col, level, state_id, county_id)
        except InvalidIdentifier as e:
            skipped += 1
            logger.debug(f"Skipping Census row with bad id: {e}")
            continue
        stats.append(AreaStatistic.from_counts(
            name=strip_display_name(row[name_col]),
            geoid=geoid,
            total=row["total_housing_units"],
            vacant=row["vacant_units"],
        ))

    if skipped:
        logger.warning(f"{skipped} Census rows had unusable geography ids")
    logger.info(f"Fetched vacancy data for {len(stats)} {level.value}-level areas")
    return stats


def fetch_states(*, session=None) -> list[AreaOption]:
    """All states (plus DC and Puerto Rico), sorted by name."""
    data = _request_table([("get", "NAME"), ("for", "state:*")], session, "state list")
    df = _to_frame(data)

    options = [
        AreaOption(id=normalize_state_id(row.iloc[-1]), name=str(row["NAME"]).strip())
        for _, row in df.iterrows()
    ]
    return sorted(options, key=lambda o: o.name)


def fetch_counties(state_id, *, session=None) -> list[AreaOption]:
    """Counties of a state, display names stripped of the state suffix, sorted by name."""
    state_id = normalize_state_id(state_id)
    data = _request_table(
        [("get", "NAME"), ("for", "county:*"), ("in", f"state:{state_id}")],
        session,
        f"county list for state {state_id}",
    )
    df = _to_frame(data)

    options = [
        AreaOption(id=normalize_county_id(row.iloc[-1]), name=strip_display_name(row["NAME"]))
        for _, row in df.iterrows()
    ]
    logger.info(f"Loaded {len(options)} counties for state {state_id}")
    return sorted(options, key=lambda o: o.name)
