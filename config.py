"""
US Housing Vacancy Explorer — Configuration
All configuration: API endpoints, variables, color buckets, map defaults, file paths.
"""
import os

# --- Census API Configuration ---
ACS_VINTAGE = 2022  # ACS 5-Year (covers 2018-2022)
CENSUS_API_BASE = f"https://api.census.gov/data/{ACS_VINTAGE}/acs/acs5"
CENSUS_API_KEY = os.environ.get("CENSUS_API_KEY", None)

# Variables to pull from ACS. Format: {api_variable: friendly_name}
VACANCY_VARIABLES = {
    # Occupancy Status (Table B25002)
    "B25002_001E": "total_housing_units",
    "B25002_003E": "vacant_units",
}
TOTAL_UNITS_VARIABLE = "B25002_001E"
VACANT_UNITS_VARIABLE = "B25002_003E"

# Census API geography names per geography level
API_GEOGRAPHY = {
    "state": "state",
    "county": "county",
    "tract": "tract",
    "block": "block group",
}

# --- Geometry Sources ---
NATIONAL_STATES_GEOJSON_URL = (
    "https://raw.githubusercontent.com/PublicaMundi/MappingAPI/"
    "master/data/geojson/us-states.json"
)
TIGERWEB_BASE = "https://tigerweb.geo.census.gov/arcgis/rest/services/TIGERweb"
TIGERWEB_LAYERS = {
    "county": "State_County/MapServer/1",
    "tract": "Tracts_Blocks/MapServer/0",
    "block": "Tracts_Blocks/MapServer/1",
}
TIGERWEB_OUT_SR = "4326"  # WGS84

REQUEST_TIMEOUT = 60  # seconds, per request; no retries

# --- Vacancy Rate Buckets ---
# Ordered highest first; a rate falls in the first bucket whose min it reaches.
VACANCY_BUCKETS = [
    {"label": "25%+",   "min": 25, "color": "#a50f15"},
    {"label": "20–25%", "min": 20, "color": "#de2d26"},
    {"label": "15–20%", "min": 15, "color": "#fb6a4a"},
    {"label": "10–15%", "min": 10, "color": "#fcae91"},
    {"label": "7–10%",  "min": 7,  "color": "#fee5d9"},
    {"label": "5–7%",   "min": 5,  "color": "#edf8e9"},
    {"label": "3–5%",   "min": 3,  "color": "#bae4b3"},
    {"label": "1–3%",   "min": 1,  "color": "#74c476"},
    {"label": "<1%",    "min": 0,  "color": "#238b45"},
]

# Number of areas in the ranked statistics table
TOP_N = 5

# --- Map Defaults ---
DEFAULT_CENTER = [37.8, -96.0]  # Continental US
DEFAULT_ZOOM = 4
TILE_PROVIDER = "OpenStreetMap"
SATELLITE_TILES = (
    "https://server.arcgisonline.com/ArcGIS/rest/services/"
    "World_Imagery/MapServer/tile/{z}/{y}/{x}"
)
SATELLITE_ATTRIBUTION = "&copy; Esri"
FILL_OPACITY = 0.7
HIGHLIGHT_FILL_OPACITY = 0.9
LINE_COLOR = "#666"

# --- File Paths ---
OUTPUT_DIR = "output"
OUTPUT_FILE = "housing_vacancy.html"
