"""Geospatial filtering and viewport selection for the incident map."""

from geo.distance import haversine_km, EARTH_RADIUS_KM
from geo.filters import incident_passes, filter_incidents, mappable
from geo.viewport import ViewportController, ViewportCommand, Bounds, bounding_box, fit_bounds

__all__ = [
    "haversine_km",
    "EARTH_RADIUS_KM",
    "incident_passes",
    "filter_incidents",
    "mappable",
    "ViewportController",
    "ViewportCommand",
    "Bounds",
    "bounding_box",
    "fit_bounds",
]
