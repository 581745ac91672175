"""Incident records, filter state, and wire (de)serialisation for the map view."""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class InvalidIncidentPayload(ValueError):
    """Record rejected before it reaches the store (no identifier)."""


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class IncidentStatus(str, Enum):
    REPORTED = "REPORTED"
    VERIFIED = "VERIFIED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    FLAGGED = "FLAGGED"


class IncidentType(str, Enum):
    FIRE = "FIRE"
    MEDICAL = "MEDICAL"
    ACCIDENT = "ACCIDENT"
    FLOOD = "FLOOD"
    PUBLIC_DISTURBANCE = "PUBLIC_DISTURBANCE"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    POWER_OUTAGE = "POWER_OUTAGE"
    NATURAL_DISASTER = "NATURAL_DISASTER"
    SUSPICIOUS = "SUSPICIOUS"
    OTHER = "OTHER"


INCIDENT_TYPE_LABELS = {
    IncidentType.FIRE: "Fire Outbreak",
    IncidentType.MEDICAL: "Medical Emergency",
    IncidentType.ACCIDENT: "Vehicle Accident",
    IncidentType.FLOOD: "Water Leak / Flood",
    IncidentType.PUBLIC_DISTURBANCE: "Crowd Disturbance",
    IncidentType.INFRASTRUCTURE: "Route Hazard",
    IncidentType.POWER_OUTAGE: "Power Outage",
    IncidentType.NATURAL_DISASTER: "Natural Disaster",
    IncidentType.SUSPICIOUS: "Suspicious Activity",
    IncidentType.OTHER: "Other",
}

ALL_TYPES = "ALL"
MIN_RADIUS_KM = 1.0
MAX_RADIUS_KM = 50.0


def _type_key(value: str) -> str:
    return re.sub(r"[^A-Z0-9]+", "_", value.strip().upper()).strip("_")


# Lookup by enum value and by label ("Fire Outbreak" -> FIRE), both normalised
_TYPE_LOOKUP = {t.value: t for t in IncidentType}
_TYPE_LOOKUP.update({_type_key(label): t for t, label in INCIDENT_TYPE_LABELS.items()})


def parse_incident_type(value) -> IncidentType:
    """Closed enumeration with an OTHER fallback for anything unrecognised."""
    if isinstance(value, IncidentType):
        return value
    if not value:
        return IncidentType.OTHER
    return _TYPE_LOOKUP.get(_type_key(str(value)), IncidentType.OTHER)


def parse_severity(value) -> Severity:
    if isinstance(value, Severity):
        return value
    try:
        return Severity(str(value).strip().upper())
    except ValueError:
        raise InvalidIncidentPayload(f"unknown severity {value!r}") from None


def _optional_severity(value) -> Optional[Severity]:
    if value is None:
        return None
    try:
        return parse_severity(value)
    except InvalidIncidentPayload:
        return None


def parse_status(value) -> IncidentStatus:
    if isinstance(value, IncidentStatus):
        return value
    try:
        return IncidentStatus(str(value).strip().upper())
    except ValueError:
        return IncidentStatus.REPORTED


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_dict(self):
        return {"lat": round(self.lat, 6), "lng": round(self.lng, 6)}


@dataclass
class Incident:
    incident_id: str
    incident_type: IncidentType = IncidentType.OTHER
    severity: Optional[Severity] = Severity.LOW  # None: missing or unknown, never passes a severity filter
    status: IncidentStatus = IncidentStatus.REPORTED
    description: str = ""
    latitude: Optional[float] = None  # absent coords: kept in the store, never rendered
    longitude: Optional[float] = None
    location: Optional[str] = None  # free-text address
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    upvote_count: int = 0
    media_url: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if not self.has_coordinates:
            return None
        return Coordinates(self.latitude, self.longitude)


@dataclass(frozen=True)
class FilterState:
    """Map filter configuration. Supplied from outside, never mutated by the engine."""
    radius_km: float = MAX_RADIUS_KM
    severities: frozenset = field(default_factory=lambda: frozenset(Severity))
    incident_type: object = ALL_TYPES  # "ALL" or an IncidentType

    def __post_init__(self):
        radius = max(MIN_RADIUS_KM, min(MAX_RADIUS_KM, float(self.radius_km)))
        object.__setattr__(self, "radius_km", radius)
        severities = frozenset(parse_severity(s) for s in self.severities)
        if not severities:
            raise ValueError("severity filter must select at least one level")
        object.__setattr__(self, "severities", severities)
        if self.incident_type != ALL_TYPES:
            object.__setattr__(self, "incident_type", parse_incident_type(self.incident_type))

    def to_dict(self):
        return {
            "radius": self.radius_km,
            "severity": sorted(s.value for s in self.severities),
            "type": self.incident_type if self.incident_type == ALL_TYPES else self.incident_type.value,
        }


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _first(payload: dict, *keys):
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def incident_from_dict(payload: dict) -> Incident:
    """Build an Incident from a backend record (camelCase keys, legacy aliases accepted)."""
    if not isinstance(payload, dict):
        raise InvalidIncidentPayload(f"expected an object, got {type(payload).__name__}")
    raw_id = payload.get("id")
    if raw_id is None or str(raw_id).strip() == "":
        raise InvalidIncidentPayload("incident record has no id")
    try:
        upvotes = int(_first(payload, "upvoteCount", "upvotes") or 0)
    except (TypeError, ValueError):
        upvotes = 0
    return Incident(
        incident_id=str(raw_id),
        incident_type=parse_incident_type(_first(payload, "incidentType", "type")),
        severity=_optional_severity(payload.get("severity")),
        status=parse_status(payload.get("status")),
        description=payload.get("description") or "",
        latitude=_optional_float(payload.get("latitude")),
        longitude=_optional_float(payload.get("longitude")),
        location=payload.get("location"),
        created_at=payload.get("createdAt"),
        updated_at=payload.get("updatedAt"),
        upvote_count=upvotes,
        media_url=_first(payload, "mediaUrl", "image"),
    )


def get_incident_dict(incident: Incident) -> dict:
    """Serialize an incident back to the wire shape used by the map client."""
    return {
        "id": incident.incident_id,
        "incidentType": incident.incident_type.value,
        "typeLabel": INCIDENT_TYPE_LABELS[incident.incident_type],
        "severity": incident.severity.value if incident.severity is not None else None,
        "status": incident.status.value,
        "description": incident.description,
        "latitude": incident.latitude,
        "longitude": incident.longitude,
        "location": incident.location,
        "createdAt": incident.created_at,
        "updatedAt": incident.updated_at,
        "upvoteCount": incident.upvote_count,
        "mediaUrl": incident.media_url,
    }
