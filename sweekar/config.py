"""Project configuration.

Keeps API request shapes and pipeline thresholds centralized here. Category
profiles can be overridden from categories.json at startup.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

_REPO_ROOT = Path(__file__).resolve().parent.parent

# --- API endpoints ---

PLACES_NEARBY_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PLACES_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
PLACES_PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"
MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/"
MAPS_SEARCH_URL = "https://www.google.com/maps"
WHATSAPP_SHARE_URL = "https://wa.me/"

API_KEY_ENV = "GOOGLE_MAPS_API_KEY"

# --- Places request shape ---

PLACES_DETAILS_FIELDS: List[str] = [
    "place_id",
    "name",
    "vicinity",
    "geometry",
    "formatted_phone_number",
    "business_status",
    "opening_hours",
    "photos",
    "types",
]
PLACES_STATUS_OK = "OK"
PLACES_STATUS_ZERO_RESULTS = "ZERO_RESULTS"

PHOTO_MAX_WIDTH = 400
PHOTO_MAX_HEIGHT = 300

# --- Discovery ---

SEARCH_RADIUS_M = 10000
MAX_RESOURCE_DISTANCE_M = 10000.0
REFETCH_DISTANCE_M = 100.0
LOCATION_TIMEOUT_SECONDS = 5.0
DEFAULT_CENTER_LAT = 20.5937
DEFAULT_CENTER_LNG = 78.9629
EARTH_RADIUS_M = 6371000.0

FALLBACK_KEYWORD = "women health services"
NOT_AVAILABLE = "N/A"
STATUS_OPEN = "Open"
STATUS_CLOSED = "Closed"

# --- Budgets ---

# None derives the cap from the category: one search per keyword plus one
# details lookup for every place a full search page can return.
MAX_PLACES_REQUESTS_PER_CYCLE: Optional[int] = None
NEARBY_SEARCH_MAX_RESULTS = 20

# --- HTTP ---

HTTP_TIMEOUT_SECONDS = 20

# --- Listing ---

ITEMS_PER_PAGE = 9

# --- Store and outputs ---

STORE_DB_PATH = "sweekar.db"
STORE_COMMIT_EVERY = 1
OUTPUT_DIR = "out"

# Populated by load_category_overrides; read by categories.lookup.
CATEGORY_OVERRIDES: Dict[str, Dict[str, List[str]]] = {}


def _string_list(value: Any, field: str, key: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"Category {key!r}: {field} must be a list of strings")
    return [v.strip() for v in value if v.strip()]


def load_category_overrides(path: Optional[str] = None) -> bool:
    """Load category keyword/type overrides from a JSON file.

    Replaces CATEGORY_OVERRIDES with the file contents.
    Returns True if the file was loaded, False if it does not exist.
    """
    if path is None:
        path = str(_REPO_ROOT / "categories.json")

    config_path = Path(path)
    if not config_path.exists():
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("categories.json must contain an object keyed by category")

    overrides: Dict[str, Dict[str, List[str]]] = {}
    for key, entry in data.items():
        if not isinstance(entry, dict):
            raise ValueError(f"Category {key!r} must map to an object")
        keywords = _string_list(entry.get("keywords"), "keywords", key)
        if not keywords:
            raise ValueError(f"Category {key!r} needs at least one keyword")
        overrides[str(key)] = {
            "keywords": keywords,
            "acceptable_types": _string_list(entry.get("acceptable_types"), "acceptable_types", key),
        }

    globals()["CATEGORY_OVERRIDES"] = overrides
    return True
