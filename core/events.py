"""Push-channel events: frame decoding, envelope unwrapping, and the store reducer."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from core.models import InvalidIncidentPayload, incident_from_dict
from core.store import IncidentStore

logger = logging.getLogger("incident_map.core.events")

EVENT_CREATED = "incident:new"
EVENT_UPDATED = "incident:update"
EVENT_KINDS = (EVENT_CREATED, EVENT_UPDATED)


@dataclass(frozen=True)
class StreamEvent:
    kind: str
    payload: Any


def unwrap_payload(payload: Any) -> Any:
    """Backend sends either the bare record or {"data": record}."""
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"]
    return payload


def decode_frame(text) -> Optional[StreamEvent]:
    """
    Decode one channel frame. Accepted shapes:
      ["incident:new", payload]
      {"event": "incident:update", "payload": payload}
    Anything else returns None.
    """
    try:
        frame = json.loads(text)
    except (TypeError, ValueError):
        logger.debug("dropping undecodable frame %.80r", text)
        return None

    if isinstance(frame, list) and len(frame) == 2 and isinstance(frame[0], str):
        kind, payload = frame
    elif isinstance(frame, dict) and isinstance(frame.get("event"), str):
        kind, payload = frame["event"], frame.get("payload")
    else:
        logger.debug("dropping frame with unknown shape %.80r", text)
        return None

    if kind not in EVENT_KINDS:
        logger.debug("ignoring event kind=%s", kind)
        return None
    return StreamEvent(kind=kind, payload=payload)


def apply_event(store: IncidentStore, event: StreamEvent) -> IncidentStore:
    """
    Single-consumer reducer: (store, event) -> store.

    Both kinds are upserts; an update for an unknown id inserts, a repeated create
    replaces. Payloads without an id are logged and dropped.
    """
    record = unwrap_payload(event.payload)
    try:
        incident = incident_from_dict(record)
    except InvalidIncidentPayload as e:
        logger.warning("dropping %s event: %s", event.kind, e)
        return store
    inserted = store.upsert(incident)
    logger.info(
        "event applied kind=%s incident_id=%s inserted=%s mappable=%s",
        event.kind, incident.incident_id, inserted, incident.has_coordinates,
    )
    return store
