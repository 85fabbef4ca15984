"""
US Housing Vacancy Explorer — Page Chrome
Title bar, legend, selection panel, summary cards, top-areas table,
error banner, and popup CSS.
"""
import html

import folium

from utils.popup import POPUP_CSS, format_count

_PANEL_STYLE = (
    "background:white; padding:12px 16px; border-radius:6px;"
    "box-shadow:0 1px 4px rgba(0,0,0,0.2);"
    "font-family:Arial,sans-serif; font-size:12px; line-height:1.4;"
)


def build_popup_styles() -> folium.Element:
    """Inject shared CSS classes for popup/tooltip HTML to reduce file size."""
    return folium.Element(POPUP_CSS)


def build_title_bar(title: str, subtitle: str) -> folium.Element:
    """Fixed-position title bar at the top of the map."""
    html_str = f'''
    <div id="title-bar" style="
        position:fixed; top:0; left:0; right:0; z-index:1000;
        background:rgba(255,255,255,0.95);
        padding:10px 20px;
        box-shadow:0 2px 6px rgba(0,0,0,0.15);
        font-family:Arial,sans-serif;
        max-height:65px; overflow:hidden;
    ">
        <div style="font-size:14px;font-weight:bold;letter-spacing:0.5px;color:#222">
            {html.escape(title.upper())}
        </div>
        <div style="font-size:12px;color:#555;margin-top:2px">{html.escape(subtitle)}</div>
        <div style="font-size:11px;color:#999;margin-top:1px">
            Hover to highlight &middot; Click for details &middot; Source: ACS 5-Year, table B25002
        </div>
    </div>
    '''
    return folium.Element(html_str)


def build_legend(buckets: list[dict]) -> folium.Element:
    """Discrete legend matching the vacancy buckets, highest first, bottom-right."""
    rows = ""
    for bucket in buckets:
        rows += (
            f'<div style="display:flex;align-items:center;gap:5px;margin:3px 0">'
            f'<span style="display:inline-block;width:18px;height:18px;'
            f'background:{bucket["color"]}"></span>'
            f'<span>{bucket["label"]}</span></div>\n'
        )

    html_str = f'''
    <div id="legend" style="position:fixed; bottom:30px; right:10px; z-index:1000; {_PANEL_STYLE}">
        <div style="font-weight:bold;margin-bottom:6px">Vacancy Rate</div>
        {rows}
    </div>
    '''
    return folium.Element(html_str)


def _options(options, selected, placeholder: str) -> str:
    out = f'<option value="">{placeholder}</option>'
    for option_id, name, enabled in options:
        attrs = ""
        if option_id == selected:
            attrs += " selected"
        if not enabled:
            attrs += " disabled"
        out += f'<option value="{html.escape(option_id)}"{attrs}>{html.escape(name)}</option>'
    return out


def build_selection_panel(
    state_id: str | None,
    county_id: str | None,
    geo_level: str,
    states,
    counties,
    enabled_levels,
) -> folium.Element:
    """
    Static HTML for the three selectors. The county selector is
    disabled until a state is chosen; tract and block group stay disabled
    until a county is chosen.
    """
    state_options = [(s.id, s.name, True) for s in states]
    if state_id and state_id not in {s.id for s in states}:
        state_options.append((state_id, f"State {state_id}", True))
    county_options = [(c.id, c.name, True) for c in counties]
    if county_id and county_id not in {c.id for c in counties}:
        county_options.append((county_id, f"County {county_id}", True))

    enabled = {getattr(level, "value", level) for level in enabled_levels}
    level_options = [
        (value, label, value in enabled)
        for value, label in [
            ("state", "State"), ("county", "County"),
            ("tract", "Census Tract"), ("block", "Block Group"),
        ]
    ]
    county_disabled = "" if state_id else " disabled"

    html_str = f'''
    <div id="selection-panel" style="position:fixed; top:75px; left:50px; z-index:1000; {_PANEL_STYLE}">
        <div style="margin-bottom:4px"><b>State</b><br>
            <select id="state-select">{_options(state_options, state_id, "Select a state")}</select></div>
        <div style="margin-bottom:4px"><b>County</b><br>
            <select id="county-select"{county_disabled}>{_options(county_options, county_id, "Select a county")}</select></div>
        <div><b>Geography Level</b><br>
            <select id="level-select">{_options(level_options, geo_level, "Select a level")}</select></div>
    </div>
    '''
    return folium.Element(html_str)


def _summary_card(title: str, stats) -> str:
    return (
        f'<div class="summary-card" style="margin-bottom:8px">'
        f'<div style="font-weight:bold;margin-bottom:4px">'
        f'{title} Statistics: {html.escape(stats.name)}</div>'
        f'<div>Vacancy Rate: <b>{stats.vacancy_rate_percent}%</b></div>'
        f'<div>Total Housing Units: {format_count(stats.total_housing_units)}</div>'
        f'<div>Vacant Units: {format_count(stats.vacant_units)}</div>'
        f'<div>Occupied Units: {format_count(stats.occupied_units)}</div>'
        f'</div>'
    )


def build_summary_panel(state_summary, county_summary) -> folium.Element | None:
    """State and county statistic cards, top-right. None when there is nothing to show."""
    cards = ""
    if state_summary is not None:
        cards += _summary_card("State", state_summary)
    if county_summary is not None:
        cards += _summary_card("County", county_summary)
    if not cards:
        return None
    return folium.Element(
        f'<div id="summary-panel" style="position:fixed; top:75px; right:10px; '
        f'z-index:1000; {_PANEL_STYLE}">{cards}</div>'
    )


def build_top_areas_table(top_areas, title: str = "Highest Vacancy Rates") -> folium.Element | None:
    """Ranked statistics table, bottom-left."""
    if not top_areas:
        return None
    rows = ""
    for rank, stats in enumerate(top_areas, start=1):
        rows += (
            f'<tr><td>{rank}</td><td>{html.escape(stats.name)}</td>'
            f'<td style="text-align:right">{stats.vacancy_rate_percent}%</td>'
            f'<td style="text-align:right">{format_count(stats.vacant_units)}</td>'
            f'<td style="text-align:right">{format_count(stats.total_housing_units)}</td></tr>'
        )
    html_str = f'''
    <div id="top-areas" style="position:fixed; bottom:30px; left:10px; z-index:1000; {_PANEL_STYLE}">
        <div style="font-weight:bold;margin-bottom:6px">{html.escape(title)}</div>
        <table style="border-collapse:collapse">
            <tr><th>#</th><th>Area</th><th>Vacancy</th><th>Vacant</th><th>Total</th></tr>
            {rows}
        </table>
    </div>
    '''
    return folium.Element(html_str)


def build_error_banner(message: str) -> folium.Element:
    """Dismissible error banner below the title bar."""
    html_str = f'''
    <div id="error-banner" role="alert" style="
        position:fixed; top:75px; left:50%; transform:translateX(-50%); z-index:1100;
        background:#f8d7da; color:#842029; border:1px solid #f5c2c7;
        padding:10px 36px 10px 16px; border-radius:6px;
        font-family:Arial,sans-serif; font-size:13px;
    "><strong>Error:</strong> {html.escape(message)}
        <button type="button" aria-label="Close"
            onclick="this.parentElement.style.display='none'"
            style="position:absolute; top:6px; right:8px; border:none;
                   background:none; font-size:16px; cursor:pointer">&times;</button>
    </div>
    '''
    return folium.Element(html_str)
