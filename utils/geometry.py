"""
US Housing Vacancy Explorer — Boundary Loaders
Fetches area polygons and normalizes them into one GeoJSON shape whose
features carry the canonical GEOID under properties["GEOID"].

Two sources:
  - state level: a static national states GeoJSON, filtered client-side
  - county/tract/block: TIGERweb layer queries returning Esri JSON
"""
import logging

import requests

import config
from utils.errors import GeometryUnavailable, InvalidIdentifier
from utils.geography import (
    GeographyLevel,
    build_geoid,
    normalize_geoid,
    normalize_state_id,
    require_ids,
)

logger = logging.getLogger(__name__)

GEOID_PROPERTY = "GEOID"
NAME_PROPERTY = "NAME"


def _get_json(url: str, params: dict | None, session, description: str):
    http = session or requests
    logger.info(f"Fetching {description} from {url}...")
    try:
        resp = http.get(url, params=params, timeout=config.REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise GeometryUnavailable(f"Failed to download {description}: {e}") from e

    if resp.status_code != 200:
        raise GeometryUnavailable(
            f"Boundary service returned status {resp.status_code} for {description}"
        )
    try:
        return resp.json()
    except ValueError as e:
        raise GeometryUnavailable(f"Boundary service returned invalid JSON for {description}") from e


def _state_feature_id(feature: dict):
    # us-states.json puts the FIPS code on the feature; some copies repeat it in properties
    props = feature.get("properties") or {}
    return feature.get("id", props.get("id"))


def fetch_state_geometry(state_id=None, *, session=None) -> dict:
    """
    Download the national states document and keep the selected state
    (or every state when none is selected).
    """
    national = _get_json(config.NATIONAL_STATES_GEOJSON_URL, None, session, "national state boundaries")
    if not isinstance(national, dict):
        raise GeometryUnavailable("National state boundaries are not a GeoJSON document")

    state_id = normalize_state_id(state_id) if state_id else None
    features = []
    for feature in national.get("features") or []:
        try:
            geoid = normalize_state_id(_state_feature_id(feature))
        except InvalidIdentifier:
            continue
        if state_id and geoid != state_id:
            continue
        props = dict(feature.get("properties") or {})
        props[GEOID_PROPERTY] = geoid
        props.setdefault(NAME_PROPERTY, props.get("name", geoid))
        features.append({
            "type": "Feature",
            "id": geoid,
            "geometry": feature.get("geometry"),
            "properties": props,
        })

    if not features:
        target = f"state {state_id}" if state_id else "any state"
        raise GeometryUnavailable(f"No boundary found for {target}")

    logger.info(f"Filtered to {len(features)} state boundaries")
    return {"type": "FeatureCollection", "features": features}


def build_where_clause(level, state_id, county_id=None) -> str:
    """SQL-like filter for a TIGERweb layer query."""
    level = GeographyLevel.parse(level)
    clause = f"STATE='{state_id}'"
    if county_id and level is not GeographyLevel.STATE:
        clause += f" AND COUNTY='{county_id}'"
    return clause


# Attribute holding each level's own code in TIGERweb layers
_ESRI_CODE_FIELDS = {
    GeographyLevel.COUNTY: "COUNTY",
    GeographyLevel.TRACT: "TRACT",
    GeographyLevel.BLOCK: "BLKGRP",
}


def _esri_geoid(attributes: dict, level: GeographyLevel, state_id, county_id) -> str:
    """Build the GEOID from the code fields, else pad the echoed GEOID to the level's width."""
    own = attributes.get(_ESRI_CODE_FIELDS.get(level, ""))
    if own in (None, ""):
        return normalize_geoid(attributes.get("GEOID"), level)
    state = attributes.get("STATE", state_id)
    county = attributes.get("COUNTY", county_id)
    if level is GeographyLevel.COUNTY:
        return build_geoid(state, county)
    if level is GeographyLevel.TRACT:
        return build_geoid(state, county, own)
    return build_geoid(state, county, attributes.get("TRACT"), own)


def esri_to_geojson(esri: dict, level, state_id=None, county_id=None) -> dict:
    """
    Translate an Esri JSON feature set into a GeoJSON FeatureCollection.

    geometry.rings become Polygon coordinates and the attributes bag becomes
    the feature properties, with the canonical GEOID added.
    """
    level = GeographyLevel.parse(level)
    features = []
    for esri_feature in esri.get("features") or []:
        attributes = dict(esri_feature.get("attributes") or {})
        geometry = esri_feature.get("geometry") or {}
        rings = geometry.get("rings", geometry.get("coordinates"))
        if not rings:
            logger.debug(f"Skipping feature without rings: {attributes.get('NAME')}")
            continue

        try:
            geoid = _esri_geoid(attributes, level, state_id, county_id)
        except InvalidIdentifier as e:
            logger.warning(f"Skipping boundary without a usable id: {e}")
            continue
        attributes[GEOID_PROPERTY] = geoid
        attributes.setdefault(NAME_PROPERTY, geoid)
        features.append({
            "type": "Feature",
            "id": geoid,
            "geometry": {"type": "Polygon", "coordinates": rings},
            "properties": attributes,
        })
    return {"type": "FeatureCollection", "features": features}


def fetch_geometry(level, state_id=None, county_id=None, *, session=None) -> dict:
    """
    Fetch the boundaries of every area at a level inside the selection.

    Raises GeometryUnavailable on HTTP failure or an empty result and
    UnsupportedLevel for unknown levels.
    """
    level = GeographyLevel.parse(level)
    state_id, county_id = require_ids(level, state_id, county_id)

    if level is GeographyLevel.STATE:
        return fetch_state_geometry(state_id, session=session)

    url = f"{config.TIGERWEB_BASE}/{config.TIGERWEB_LAYERS[level.value]}/query"
    params = {
        "where": build_where_clause(level, state_id, county_id),
        "outFields": "*",
        "f": "json",
        "outSR": config.TIGERWEB_OUT_SR,
        "returnGeometry": "true",
    }
    description = f"{level.value} boundaries ({params['where']})"
    esri = _get_json(url, params, session, description)

    if not isinstance(esri, dict):
        raise GeometryUnavailable(f"Unexpected response for {description}")
    if "error" in esri:
        error = esri["error"]
        message = error.get("message", "unknown error") if isinstance(error, dict) else error
        raise GeometryUnavailable(f"Boundary service error for {description}: {message}")

    collection = esri_to_geojson(esri, level, state_id, county_id)
    if not collection["features"]:
        raise GeometryUnavailable(f"No boundaries returned for {description}")

    logger.info(f"Fetched {len(collection['features'])} {level.value} boundaries")
    return collection
