"""
US Housing Vacancy Explorer — Geography Levels and Identifiers
Canonical zero-padded FIPS codes and composite GEOIDs. Every join between
Census API rows and boundary features goes through these helpers.
"""
import re
from enum import Enum

from utils.errors import InvalidIdentifier, UnsupportedLevel

STATE_WIDTH = 2
COUNTY_WIDTH = 3
TRACT_WIDTH = 6
BLOCK_GROUP_WIDTH = 1

# ACS names look like "Los Angeles County, California" or, since 2020,
# "Census Tract 1011.10; Los Angeles County; California".
_PARENT_SEPARATOR = re.compile(r"[,;]")


class GeographyLevel(str, Enum):
    STATE = "state"
    COUNTY = "county"
    TRACT = "tract"
    BLOCK = "block"

    @classmethod
    def parse(cls, value) -> "GeographyLevel":
        """Accept a GeographyLevel or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedLevel(f"Unsupported geography level: {value!r}") from None

    @property
    def needs_state(self) -> bool:
        return self is not GeographyLevel.STATE

    @property
    def needs_county(self) -> bool:
        return self in (GeographyLevel.TRACT, GeographyLevel.BLOCK)

    @property
    def geoid_width(self) -> int:
        """Digits in a full GEOID at this level (state 2 up to block group 12)."""
        widths = [STATE_WIDTH, COUNTY_WIDTH, TRACT_WIDTH, BLOCK_GROUP_WIDTH]
        depth = list(GeographyLevel).index(self) + 1
        return sum(widths[:depth])


def _normalize_code(raw, width: int, kind: str) -> str:
    if raw is None:
        raise InvalidIdentifier(f"Missing {kind} id")
    code = str(raw).strip()
    if not code:
        raise InvalidIdentifier(f"Missing {kind} id")
    if not code.isdigit():
        raise InvalidIdentifier(f"Invalid {kind} id {raw!r}: expected digits")
    if len(code) > width:
        raise InvalidIdentifier(
            f"Invalid {kind} id {raw!r}: longer than {width} digits"
        )
    return code.zfill(width)


def normalize_state_id(raw) -> str:
    """Zero-pad a state FIPS code to 2 digits ("6" -> "06")."""
    return _normalize_code(raw, STATE_WIDTH, "state")


def normalize_county_id(raw) -> str:
    """Zero-pad a county FIPS code to 3 digits ("37" -> "037")."""
    return _normalize_code(raw, COUNTY_WIDTH, "county")


def normalize_tract_id(raw) -> str:
    return _normalize_code(raw, TRACT_WIDTH, "tract")


def normalize_block_group_id(raw) -> str:
    return _normalize_code(raw, BLOCK_GROUP_WIDTH, "block group")


def normalize_geoid(raw, level) -> str:
    """Zero-pad a whole GEOID to the width of its level (6037 -> "06037")."""
    level = GeographyLevel.parse(level)
    return _normalize_code(raw, level.geoid_width, f"{level.value} GEOID")


def build_geoid(state_id, county_id=None, tract_id=None, block_group_id=None) -> str:
    """
    Build a composite GEOID: state(2) + county(3) + tract(6) + block group(1).

    Trailing parts may be omitted; a part without its parent is invalid.
    """
    parts = [normalize_state_id(state_id)]
    children = [
        (county_id, normalize_county_id, "county"),
        (tract_id, normalize_tract_id, "tract"),
        (block_group_id, normalize_block_group_id, "block group"),
    ]
    missing_parent = None
    for raw, normalize, kind in children:
        if raw is None or str(raw).strip() == "":
            missing_parent = missing_parent or kind
            continue
        if missing_parent:
            raise InvalidIdentifier(f"Cannot build GEOID with a {kind} but no {missing_parent}")
        parts.append(normalize(raw))
    return "".join(parts)


def strip_display_name(name) -> str:
    """Drop the parent geography suffix from an ACS display name."""
    if name is None:
        return ""
    return _PARENT_SEPARATOR.split(str(name), maxsplit=1)[0].strip()


def require_ids(level, state_id=None, county_id=None) -> tuple[str | None, str | None]:
    """
    Normalize the ids a geography level needs.

    State level takes an optional state id (used as a filter); county level
    requires a state and takes an optional county; tract and block levels
    require both. Returns (state_id, county_id) with absent ids as None.
    """
    level = GeographyLevel.parse(level)

    def _present(raw):
        return raw is not None and str(raw).strip() != ""

    if level.needs_state and not _present(state_id):
        raise InvalidIdentifier(f"A state id is required at {level.value} level")
    if level.needs_county and not _present(county_id):
        raise InvalidIdentifier(f"A county id is required at {level.value} level")

    state = normalize_state_id(state_id) if _present(state_id) else None
    county = None
    if level is not GeographyLevel.STATE and _present(county_id):
        county = normalize_county_id(county_id)
    return state, county
