"""
US Housing Vacancy Explorer — Data Preparation
Join boundaries with vacancy statistics, classify vacancy buckets, rank areas.
Everything here is a pure function of its inputs.
"""
import logging
import math
from dataclasses import dataclass, field

import pandas as pd

import config
from utils.census_api import AreaStatistic
from utils.geometry import GEOID_PROPERTY, NAME_PROPERTY

logger = logging.getLogger(__name__)

NO_DATA = ("No data", "#CCCCCC")


@dataclass(frozen=True)
class RenderableLayer:
    """Joined features plus the aggregates shown next to the map."""
    features: dict
    statistics: tuple = ()
    summary: AreaStatistic | None = None
    top_areas: tuple = ()
    unmatched: int = field(default=0, compare=False)

    @property
    def is_empty(self) -> bool:
        return not self.features.get("features")


def classify_vacancy_bucket(rate: float, buckets: list[dict] | None = None) -> tuple[str, str]:
    """
    Given a vacancy rate in percent and the VACANCY_BUCKETS config,
    return (bucket_label, bucket_color).
    """
    if buckets is None:
        buckets = config.VACANCY_BUCKETS
    if rate is None or pd.isna(rate) or rate < 0:
        return NO_DATA

    for bucket in buckets:
        if rate >= bucket["min"]:
            return (bucket["label"], bucket["color"])
    return NO_DATA


def rank_top_n(statistics, n: int | None = None) -> list[AreaStatistic]:
    """Top n areas by vacancy rate, highest first; ties keep their input order."""
    if n is None:
        n = config.TOP_N
    stats = list(statistics)
    if not stats or n <= 0:
        return []

    df = pd.DataFrame({"vacancy_rate": [s.vacancy_rate for s in stats]})
    ranked = df.sort_values("vacancy_rate", ascending=False, kind="stable").head(n)
    return [stats[i] for i in ranked.index]


def _feature_properties(feature: dict, stat: AreaStatistic, buckets: list[dict]) -> dict:
    bucket_label, fill_color = classify_vacancy_bucket(stat.vacancy_rate, buckets)
    props = dict(feature.get("properties") or {})
    props.update({
        NAME_PROPERTY: stat.name,
        "total_housing_units": stat.total_housing_units,
        "vacant_units": stat.vacant_units,
        "occupied_units": stat.occupied_units,
        "vacancy_rate_percent": stat.vacancy_rate_percent,
        "vacancy_rate": stat.vacancy_rate,
        "bucket_label": bucket_label,
        "fill_color": fill_color,
    })
    return props


def join(
    features: dict,
    statistics,
    *,
    focus_geoid: str | None = None,
    top_n: int | None = None,
    buckets: list[dict] | None = None,
) -> RenderableLayer:
    """
    Attach a vacancy statistic to every boundary feature by GEOID.

    Features without a matching statistic are kept and drawn at a zero rate.
    Output features are ordered by GEOID, so the result does not depend on
    the order of either input.

    focus_geoid names the selected area whose statistic becomes the summary;
    without one, the summary is the only area in scope (if there is just one).
    """
    if buckets is None:
        buckets = config.VACANCY_BUCKETS
    feature_list = list((features or {}).get("features") or [])
    stats = list(statistics)

    stats_df = pd.DataFrame(
        {"GEOID": [s.geoid for s in stats], "row_order": range(len(stats))}
    ).astype({"GEOID": str})
    duplicated = stats_df.duplicated("GEOID")
    if duplicated.any():
        logger.warning(f"{int(duplicated.sum())} duplicate GEOIDs in statistics; keeping first")
        stats_df = stats_df[~duplicated]

    feature_df = pd.DataFrame({
        "GEOID": [str((f.get("properties") or {}).get(GEOID_PROPERTY, "")) for f in feature_list],
        "feature_index": range(len(feature_list)),
    }).astype({"GEOID": str})
    merged = (
        feature_df.merge(stats_df, on="GEOID", how="left")
        .sort_values(["GEOID", "feature_index"], kind="stable")
    )

    joined_features = []
    joined_stats = []
    unmatched = 0
    for row in merged.itertuples(index=False):
        feature = feature_list[row.feature_index]
        if pd.isna(row.row_order):
            unmatched += 1
            name = (feature.get("properties") or {}).get(NAME_PROPERTY, "")
            stat = AreaStatistic.empty(row.GEOID, name)
        else:
            stat = stats[int(row.row_order)]
        joined_stats.append(stat)
        joined_features.append({
            "type": "Feature",
            "id": row.GEOID,
            "geometry": feature.get("geometry"),
            "properties": _feature_properties(feature, stat, buckets),
        })

    if unmatched:
        logger.warning(
            f"Join: {unmatched}/{len(feature_list)} boundaries have no statistic; drawn at 0%"
        )

    by_geoid = {}
    for stat in stats:
        by_geoid.setdefault(stat.geoid, stat)

    summary = None
    if focus_geoid and focus_geoid in by_geoid:
        summary = by_geoid[focus_geoid]
    elif len(joined_stats) == 1:
        summary = joined_stats[0]

    # Ranked in GEOID order, so tied rates come out by GEOID
    drawn = set(merged["GEOID"])
    matched = [by_geoid[geoid] for geoid in sorted(drawn) if geoid in by_geoid]

    return RenderableLayer(
        features={"type": "FeatureCollection", "features": joined_features},
        statistics=tuple(joined_stats),
        summary=summary,
        top_areas=tuple(rank_top_n(matched, top_n)),
        unmatched=unmatched,
    )


def _walk_positions(coordinates):
    if not coordinates:
        return
    if isinstance(coordinates[0], (int, float)):
        yield coordinates
        return
    for part in coordinates:
        yield from _walk_positions(part)


def feature_bounds(collection: dict) -> list | None:
    """[[south, west], [north, east]] around every feature, or None when empty."""
    south = west = math.inf
    north = east = -math.inf
    for feature in (collection or {}).get("features") or []:
        geometry = feature.get("geometry") or {}
        for position in _walk_positions(geometry.get("coordinates")):
            lon, lat = position[0], position[1]
            south, north = min(south, lat), max(north, lat)
            west, east = min(west, lon), max(east, lon)
    if south == math.inf:
        return None
    return [[south, west], [north, east]]
