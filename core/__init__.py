"""Core incident model, in-memory store, and push-event reducer."""

from core.models import Incident, FilterState, Coordinates, Severity, IncidentStatus, IncidentType
from core.store import IncidentStore
from core.events import StreamEvent, apply_event, decode_frame, unwrap_payload

__all__ = [
    "Incident",
    "FilterState",
    "Coordinates",
    "Severity",
    "IncidentStatus",
    "IncidentType",
    "IncidentStore",
    "StreamEvent",
    "apply_event",
    "decode_frame",
    "unwrap_payload",
]
