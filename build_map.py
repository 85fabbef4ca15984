"""
US Housing Vacancy Explorer — Build Script
Applies state / county / geography-level selections through the selection
controller and writes the resulting vacancy map as a standalone HTML file.
"""
import argparse
import asyncio
import logging
import os
import sys

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import folium

from layers.vacancy_choropleth import build_vacancy_layer
from utils.branding import (
    build_error_banner,
    build_legend,
    build_popup_styles,
    build_selection_panel,
    build_summary_panel,
    build_title_bar,
    build_top_areas_table,
)
from utils.controller import CycleStatus, SelectionController
from utils.data_prep import feature_bounds
import config

logger = logging.getLogger(__name__)

LEVEL_LABELS = {
    "state": "States",
    "county": "Counties",
    "tract": "Census Tracts",
    "block": "Block Groups",
}


def _subtitle(controller: SelectionController) -> str:
    selection = controller.selection
    vm = controller.view_model
    parts = []
    if vm.state_summary is not None:
        parts.append(vm.state_summary.name)
    elif selection.state_id:
        parts.append(f"State {selection.state_id}")
    if vm.county_summary is not None:
        parts.append(vm.county_summary.name)
    elif selection.county_id:
        parts.append(f"County {selection.county_id}")
    scope = " / ".join(parts) if parts else "United States"
    return f"{scope}: {LEVEL_LABELS[selection.geo_level.value]}, ACS {config.ACS_VINTAGE}"


def render_map(controller: SelectionController) -> folium.Map:
    """Compose the folium map for the controller's current view model."""
    vm = controller.view_model

    m = folium.Map(
        location=config.DEFAULT_CENTER,
        zoom_start=config.DEFAULT_ZOOM,
        tiles=config.TILE_PROVIDER,
    )
    folium.TileLayer(
        tiles=config.SATELLITE_TILES,
        attr=config.SATELLITE_ATTRIBUTION,
        name="Satellite",
        show=False,
    ).add_to(m)

    if vm.layer is not None and not vm.layer.is_empty:
        level_label = LEVEL_LABELS[controller.selection.geo_level.value]
        build_vacancy_layer(vm.layer, name=f"Vacancy Rate ({level_label})").add_to(m)
        bounds = feature_bounds(vm.layer.features)
        if bounds:
            m.fit_bounds(bounds, padding=(50, 50))

    folium.LayerControl(collapsed=False).add_to(m)

    root = m.get_root().html
    root.add_child(build_popup_styles())
    root.add_child(build_title_bar(
        f"Housing Vacancy Rates ({config.ACS_VINTAGE})", _subtitle(controller)
    ))
    root.add_child(build_legend(config.VACANCY_BUCKETS))
    root.add_child(build_selection_panel(
        state_id=controller.selection.state_id,
        county_id=controller.selection.county_id,
        geo_level=controller.selection.geo_level.value,
        states=controller.states,
        counties=vm.counties,
        enabled_levels=controller.enabled_levels(),
    ))
    for element in (
        build_summary_panel(vm.state_summary, vm.county_summary),
        build_top_areas_table(vm.layer.top_areas if vm.layer else ()),
    ):
        if element is not None:
            root.add_child(element)
    if controller.error_message:
        root.add_child(build_error_banner(controller.error_message))
    return m


async def apply_selections(controller: SelectionController, args) -> None:
    """Replay the requested selections in the order a user would make them."""
    if args.list_states or args.state:
        await controller.load_states()
    if args.state:
        await controller.select_state(args.state)
    if args.county and controller.status is not CycleStatus.ERROR:
        await controller.select_county(args.county)
    if args.level and controller.status is not CycleStatus.ERROR:
        await controller.set_geo_level(args.level)
    elif not args.state and not args.list_states and controller.status is not CycleStatus.ERROR:
        # Nothing selected: national view of every state
        await controller.set_geo_level("state")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build an interactive map of US housing vacancy rates."
    )
    parser.add_argument("--state", help="State FIPS code, e.g. 06")
    parser.add_argument("--county", help="County FIPS code within the state, e.g. 037")
    parser.add_argument(
        "--level",
        help="Geography level to draw: state, county, tract or block (block group)",
    )
    parser.add_argument(
        "--output",
        default=os.path.join(config.OUTPUT_DIR, config.OUTPUT_FILE),
        help="Path of the HTML file to write",
    )
    parser.add_argument("--list-states", action="store_true", help="Print state ids and exit")
    parser.add_argument(
        "--list-counties", action="store_true",
        help="Print the county ids of --state and exit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)
    if (args.county or args.list_counties) and not args.state:
        parser.error("--county and --list-counties need --state")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    logger.info("=== US Housing Vacancy Explorer ===")

    controller = SelectionController()
    asyncio.run(apply_selections(controller, args))

    if args.list_states:
        for state in controller.states:
            print(f"{state.id}  {state.name}")
        return 1 if controller.status is CycleStatus.ERROR else 0
    if args.list_counties:
        for county in controller.view_model.counties:
            print(f"{county.id}  {county.name}")
        return 1 if controller.status is CycleStatus.ERROR else 0

    m = render_map(controller)
    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    m.save(args.output)

    file_size_mb = os.path.getsize(args.output) / (1024 * 1024)
    logger.info(f"Map saved to {args.output} ({file_size_mb:.1f} MB)")

    if controller.status is CycleStatus.ERROR:
        logger.error(f"Build finished with an error: {controller.error_message}")
        return 1
    logger.info("Build complete. Open the HTML file in a browser to review.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
