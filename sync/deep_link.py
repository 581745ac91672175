"""Deep-link highlight: IDLE -> PENDING(id) -> RESOLVED(id, coords), one viewport command per id."""

import logging
from typing import Optional

from core.models import Coordinates
from core.store import IncidentStore
from geo.viewport import HIGHLIGHT_ZOOM, MODE_HIGHLIGHT, ViewportCommand

logger = logging.getLogger("incident_map.sync.deep_link")

IDLE = "IDLE"
PENDING = "PENDING"
RESOLVED = "RESOLVED"


class DeepLinkResolver:
    def __init__(self):
        self.state = IDLE
        self.target: Optional[str] = None
        self.coordinates: Optional[Coordinates] = None
        self._seen_version: Optional[int] = None

    def set_target(self, incident_id: Optional[str]) -> None:
        """Same id is a no-op; a new id restarts resolution; None returns to IDLE."""
        if incident_id is not None:
            incident_id = str(incident_id).strip() or None
        if incident_id == self.target:
            return
        self.target = incident_id
        self.coordinates = None
        self._seen_version = None
        self.state = PENDING if incident_id is not None else IDLE
        logger.info("deep link target=%s state=%s", incident_id, self.state)

    def observe(self, store: IncidentStore) -> Optional[ViewportCommand]:
        """Issue the highlight command the first time the target is known with coordinates."""
        if self.state != PENDING or store.version == self._seen_version:
            return None
        self._seen_version = store.version
        incident = store.get(self.target)
        if incident is None or not incident.has_coordinates:
            return None
        self.coordinates = incident.coordinates
        self.state = RESOLVED
        logger.info("deep link resolved incident_id=%s", self.target)
        return ViewportCommand(MODE_HIGHLIGHT, self.coordinates, HIGHLIGHT_ZOOM)
