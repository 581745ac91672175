"""
Viewport controller: pick one camera command out of competing centering intents.

Priority (first that applies wins):
  1. highlight  - deep-linked incident, zoom 16, suppresses auto-fit
  2. manual     - explicit center/zoom, kept until recenter()
  3. fit        - bounding box of filtered incidents with coordinates, 50px padding, zoom <= 15
  4. user       - user location at zoom 13
  5. default    - static fallback center
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from core.models import Coordinates, Incident

logger = logging.getLogger("incident_map.geo.viewport")

HIGHLIGHT_ZOOM = 16
MAX_ZOOM = 19
FIT_MAX_ZOOM = 15
FIT_PADDING_PX = 50
USER_ZOOM = 13
DEFAULT_ZOOM = 13
DEFAULT_CENTER = Coordinates(28.6139, 77.2090)
DEFAULT_VIEW_SIZE = (1024, 768)

TILE_SIZE = 256
MAX_MERCATOR_LAT = 85.0511287798

MODE_HIGHLIGHT = "highlight"
MODE_MANUAL = "manual"
MODE_FIT = "fit"
MODE_USER = "user"
MODE_DEFAULT = "default"


@dataclass(frozen=True)
class Bounds:
    south: float
    west: float
    north: float
    east: float

    def to_dict(self):
        return {"south": self.south, "west": self.west, "north": self.north, "east": self.east}


@dataclass(frozen=True)
class ViewportCommand:
    mode: str
    center: Coordinates
    zoom: int
    bounds: Optional[Bounds] = None

    def to_dict(self):
        d = {"mode": self.mode, "center": self.center.to_dict(), "zoom": self.zoom}
        if self.bounds is not None:
            d["bounds"] = self.bounds.to_dict()
        return d


def bounding_box(incidents: Iterable[Incident]) -> Optional[Bounds]:
    """Minimal box over incidents that have coordinates; None if there are none."""
    lats, lngs = [], []
    for inc in incidents:
        if inc.has_coordinates:
            lats.append(inc.latitude)
            lngs.append(inc.longitude)
    if not lats:
        return None
    return Bounds(south=min(lats), west=min(lngs), north=max(lats), east=max(lngs))


def _project(lat: float, lng: float) -> tuple[float, float]:
    """Web-Mercator pixel coords at zoom 0 (256px world)."""
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
    x = (lng + 180.0) / 360.0 * TILE_SIZE
    s = math.sin(math.radians(lat))
    y = (0.5 - math.log((1 + s) / (1 - s)) / (4 * math.pi)) * TILE_SIZE
    return x, y


def _unproject(x: float, y: float) -> Coordinates:
    lng = x / TILE_SIZE * 360.0 - 180.0
    n = math.pi - 2 * math.pi * y / TILE_SIZE
    lat = math.degrees(math.atan(math.sinh(n)))
    return Coordinates(lat, lng)


def fit_bounds(
    bounds: Bounds,
    width_px: int = DEFAULT_VIEW_SIZE[0],
    height_px: int = DEFAULT_VIEW_SIZE[1],
    padding_px: int = FIT_PADDING_PX,
    max_zoom: int = FIT_MAX_ZOOM,
) -> tuple[Coordinates, int]:
    """Center and largest integer zoom at which bounds fit inside the padded viewport."""
    x1, y1 = _project(bounds.north, bounds.west)
    x2, y2 = _project(bounds.south, bounds.east)
    center = _unproject((x1 + x2) / 2, (y1 + y2) / 2)

    avail_w = width_px - 2 * padding_px
    avail_h = height_px - 2 * padding_px
    if avail_w <= 0 or avail_h <= 0:
        return center, 0
    dx, dy = abs(x2 - x1), abs(y2 - y1)
    scales = []
    if dx > 0:
        scales.append(avail_w / dx)
    if dy > 0:
        scales.append(avail_h / dy)
    if not scales:
        return center, max_zoom
    zoom = math.floor(math.log2(min(scales)))
    return center, max(0, min(max_zoom, zoom))


class ViewportController:
    def __init__(self, width_px: int = DEFAULT_VIEW_SIZE[0], height_px: int = DEFAULT_VIEW_SIZE[1]):
        self.width_px = width_px
        self.height_px = height_px
        self._highlight: Optional[Coordinates] = None
        self._manual: Optional[tuple[Coordinates, int]] = None

    @property
    def has_override(self) -> bool:
        return self._highlight is not None or self._manual is not None

    def focus(self, center: Coordinates) -> ViewportCommand:
        """Snap to a highlighted incident. Also becomes the manual override until recenter()."""
        self._highlight = center
        self._manual = (center, HIGHLIGHT_ZOOM)
        logger.info("viewport focus lat=%s lng=%s zoom=%d", center.lat, center.lng, HIGHLIGHT_ZOOM)
        return ViewportCommand(MODE_HIGHLIGHT, center, HIGHLIGHT_ZOOM)

    def clear_highlight(self) -> None:
        """Highlight target changed: the old focus stays only as the manual override."""
        self._highlight = None

    def set_manual(self, center: Coordinates, zoom: int) -> None:
        self._manual = (center, zoom)

    def recenter(self) -> None:
        """Drop highlight and manual overrides so auto-fit / user / default apply again."""
        self._highlight = None
        self._manual = None
        logger.info("viewport recenter")

    def evaluate(self, filtered: list[Incident], user_location: Optional[Coordinates] = None) -> ViewportCommand:
        if self._highlight is not None:
            return ViewportCommand(MODE_HIGHLIGHT, self._highlight, HIGHLIGHT_ZOOM)
        if self._manual is not None:
            center, zoom = self._manual
            return ViewportCommand(MODE_MANUAL, center, zoom)
        if filtered:
            bounds = bounding_box(filtered)
            if bounds is not None:
                center, zoom = fit_bounds(bounds, self.width_px, self.height_px)
                return ViewportCommand(MODE_FIT, center, zoom, bounds)
        if user_location is not None:
            return ViewportCommand(MODE_USER, user_location, USER_ZOOM)
        return ViewportCommand(MODE_DEFAULT, DEFAULT_CENTER, DEFAULT_ZOOM)
