"""
Environment-driven settings for the map sync engine.

- INCIDENT_API_URL: backend base URL (default http://localhost:3001/api; "/api" appended when missing).
- INCIDENT_STREAM_URL: push channel URL (default derived from the API URL: ws(s)://host/ws).
- FETCH_TIMEOUT: bulk fetch timeout in seconds (default 15).
- API_TOKEN: optional bearer token for the bulk fetch.
- USER_LAT / USER_LNG: optional fixed device location.
- MAP_VIEW_WIDTH / MAP_VIEW_HEIGHT: viewport size in pixels used for auto-fit (default 1024x768).
"""

import logging
import os
from typing import Optional

from core.models import Coordinates

logger = logging.getLogger("incident_map.core.config")

DEFAULT_API_URL = "http://localhost:3001/api"
DEFAULT_VIEW_SIZE = (1024, 768)


def api_base_url() -> str:
    url = (os.environ.get("INCIDENT_API_URL") or DEFAULT_API_URL).strip().rstrip("/")
    if not url.endswith("/api"):
        url = f"{url}/api"
    return url


def stream_url() -> str:
    explicit = (os.environ.get("INCIDENT_STREAM_URL") or "").strip()
    if explicit:
        return explicit
    base = api_base_url()[: -len("/api")]
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    return f"{base}/ws"


def fetch_timeout() -> float:
    v = os.environ.get("FETCH_TIMEOUT")
    if v is None or v.strip() == "":
        return 15.0
    try:
        return max(1.0, float(v.strip()))
    except ValueError:
        logger.warning("invalid FETCH_TIMEOUT=%r, using 15s", v)
        return 15.0


def api_token() -> Optional[str]:
    token = (os.environ.get("API_TOKEN") or "").strip()
    return token or None


def fixed_user_location() -> Optional[Coordinates]:
    lat, lng = os.environ.get("USER_LAT"), os.environ.get("USER_LNG")
    if not lat or not lng:
        return None
    try:
        return Coordinates(float(lat), float(lng))
    except ValueError:
        logger.warning("invalid USER_LAT/USER_LNG=%r,%r; location disabled", lat, lng)
        return None


def view_size() -> tuple[int, int]:
    try:
        width = int(os.environ.get("MAP_VIEW_WIDTH") or DEFAULT_VIEW_SIZE[0])
        height = int(os.environ.get("MAP_VIEW_HEIGHT") or DEFAULT_VIEW_SIZE[1])
    except ValueError:
        return DEFAULT_VIEW_SIZE
    if width <= 0 or height <= 0:
        return DEFAULT_VIEW_SIZE
    return width, height
