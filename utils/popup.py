"""
US Housing Vacancy Explorer — Tooltip and Popup HTML Generation
Transforms joined feature properties into styled HTML for Leaflet tooltips and popups.
"""
import html
import math


# CSS classes injected once into the page (via branding.py build_popup_styles)
# to keep per-feature HTML small.
POPUP_CSS = """
<style>
.vm-p{font-family:Arial,sans-serif;width:240px;font-size:13px;line-height:1.5;margin:0;padding:0}
.vm-h{color:#fff;padding:8px 12px;border-radius:6px 6px 0 0;font-size:11px;font-weight:bold;letter-spacing:.5px;text-transform:uppercase}
.vm-b{padding:10px 12px}
.vm-n{font-weight:bold;font-size:15px;margin-bottom:8px}
.vm-g{display:grid;grid-template-columns:1fr 1fr;gap:6px}
.vm-sl{font-size:11px;color:#555;text-transform:uppercase;letter-spacing:.5px}
.vm-sv{font-size:17px;font-weight:bold}
.vm-m{color:#888;font-size:11px}
.vm-tt{font-family:Arial,sans-serif;font-size:12px;padding:4px 8px;max-width:220px;line-height:1.4}
</style>
"""


def format_count(value) -> str:
    """Thousands-separated integer, or N/A."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "N/A"
    try:
        return f"{int(value):,}"
    except (ValueError, TypeError):
        return "N/A"


def build_tooltip_html(props: dict) -> str:
    """Lightweight hover tooltip. Name and vacancy rate."""
    name = html.escape(str(props.get("NAME", "")))
    color = props.get("fill_color", "#CCCCCC")
    rate = props.get("vacancy_rate_percent", "0.0")
    return (
        f'<div class="vm-tt">'
        f'<b>{name}</b><br>'
        f'<span style="color:{color};font-size:14px">&#9632;</span> '
        f'{rate}% vacant</div>'
    )


def build_popup_html(props: dict) -> str:
    """Data card shown on click: vacancy rate and unit counts."""
    name = html.escape(str(props.get("NAME", "")))
    color = props.get("fill_color", "#CCCCCC")
    bucket = props.get("bucket_label", "No data")
    rate = props.get("vacancy_rate_percent", "0.0")

    return (
        f'<div class="vm-p">'
        f'<div class="vm-h" style="background:{color}">Vacancy {bucket}</div>'
        f'<div class="vm-b">'
        f'<div class="vm-n">{name}</div>'
        f'<div class="vm-g">'
        f'<div><div class="vm-sl">Vacancy Rate</div><div class="vm-sv">{rate}%</div></div>'
        f'<div><div class="vm-sl">Total Units</div>'
        f'<div class="vm-sv">{format_count(props.get("total_housing_units"))}</div></div>'
        f'<div><div class="vm-sl">Vacant</div>'
        f'<div>{format_count(props.get("vacant_units"))}</div></div>'
        f'<div><div class="vm-sl">Occupied</div>'
        f'<div>{format_count(props.get("occupied_units"))}</div></div>'
        f'</div>'
        f'<div class="vm-m">GEOID {html.escape(str(props.get("GEOID", "")))}</div>'
        f'</div></div>'
    )
