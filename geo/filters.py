"""Filter predicate for the map view: highlight override, type, severity, radius."""

from typing import Iterable, Optional

from core.models import ALL_TYPES, Coordinates, FilterState, Incident
from geo.distance import haversine_km


def incident_passes(
    incident: Incident,
    filters: FilterState,
    user_location: Optional[Coordinates] = None,
    highlight_id: Optional[str] = None,
) -> bool:
    """
    Pure predicate, evaluated in order:
    1. highlighted incident always passes
    2. type selector (unless "ALL")
    3. severity membership
    4. radius around the user, only when the user location is known
    An incident without coordinates has no distance and skips step 4.
    """
    if highlight_id is not None and incident.incident_id == highlight_id:
        return True
    if filters.incident_type != ALL_TYPES and incident.incident_type != filters.incident_type:
        return False
    if incident.severity not in filters.severities:
        return False
    if user_location is not None and incident.has_coordinates:
        dist = haversine_km(user_location.lat, user_location.lng, incident.latitude, incident.longitude)
        if dist > filters.radius_km:
            return False
    return True


def filter_incidents(
    incidents: Iterable[Incident],
    filters: FilterState,
    user_location: Optional[Coordinates] = None,
    highlight_id: Optional[str] = None,
) -> list[Incident]:
    """Filtered view in store order."""
    return [i for i in incidents if incident_passes(i, filters, user_location, highlight_id)]


def mappable(incidents: Iterable[Incident]) -> list[Incident]:
    """Incidents that can be drawn as markers (coordinates present)."""
    return [i for i in incidents if i.has_coordinates]
