"""
US Housing Vacancy Explorer — Vacancy Choropleth Layer
Area polygons colored by vacancy-rate bucket, with hover highlight and click popups.
"""
from dataclasses import dataclass
from typing import Callable

import folium

import config
from utils.data_prep import RenderableLayer
from utils.popup import build_popup_html, build_tooltip_html


def base_style(feature: dict) -> dict:
    return {
        "fillColor": feature["properties"].get("fill_color", "#CCCCCC"),
        "weight": 1,
        "opacity": 1,
        "color": config.LINE_COLOR,
        "dashArray": "",
        "fillOpacity": config.FILL_OPACITY,
    }


def highlight_style(feature: dict) -> dict:
    return {
        "weight": 2,
        "color": config.LINE_COLOR,
        "dashArray": "",
        "fillOpacity": config.HIGHLIGHT_FILL_OPACITY,
    }


@dataclass(frozen=True)
class InteractionHooks:
    """
    Per-feature callbacks handed to the map.

    on_hover returns the highlight style, on_hover_end the style restored on
    mouse-out (Leaflet restores the base style, so it doubles as the style
    function). Both take the GeoJSON feature. on_activate takes the feature
    properties and returns the popup HTML shown on click.
    """
    on_hover: Callable[[dict], dict] = highlight_style
    on_hover_end: Callable[[dict], dict] = base_style
    on_activate: Callable[[dict], str] = build_popup_html


def build_vacancy_layer(
    layer: RenderableLayer,
    name: str = "Housing Vacancy Rate",
    hooks: InteractionHooks | None = None,
) -> folium.FeatureGroup:
    """
    Build the vacancy choropleth FeatureGroup from a joined layer.

    Popup and tooltip HTML are rendered per feature ahead of time and stored
    in the feature properties, since Leaflet popups cannot call back into Python.
    """
    if hooks is None:
        hooks = InteractionHooks()

    features = []
    for feature in layer.features["features"]:
        props = dict(feature["properties"])
        props["popup_html"] = hooks.on_activate(props)
        props["tooltip_html"] = build_tooltip_html(props)
        features.append({**feature, "properties": props})
    geojson_data = {"type": "FeatureCollection", "features": features}

    fg = folium.FeatureGroup(name=name, show=True)
    folium.GeoJson(
        geojson_data,
        name=name,
        style_function=hooks.on_hover_end,
        highlight_function=hooks.on_hover,
        tooltip=folium.GeoJsonTooltip(
            fields=["tooltip_html"],
            labels=False,
            style="font-family:Arial,sans-serif;font-size:12px;",
        ),
        popup=folium.GeoJsonPopup(fields=["popup_html"], labels=False, max_width=280),
    ).add_to(fg)
    return fg
