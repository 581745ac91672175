"""Live synchronization: bulk load, push stream, deep links, and the map session tying them together."""

from sync.loader import BulkLoader, build_client, parse_incident_list
from sync.stream import EventStreamAdapter
from sync.deep_link import DeepLinkResolver
from sync.session import MapSession

__all__ = [
    "BulkLoader",
    "build_client",
    "parse_incident_list",
    "EventStreamAdapter",
    "DeepLinkResolver",
    "MapSession",
]
