"""In-memory incident store: ordered, newest-first, upsert by identifier."""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.models import Incident

logger = logging.getLogger("incident_map.core.store")


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _newer(live: Incident, bulk: Incident) -> bool:
    """True when the live copy is strictly newer than the bulk copy."""
    live_ts, bulk_ts = _parse_ts(live.updated_at), _parse_ts(bulk.updated_at)
    if live_ts is None or bulk_ts is None:
        return False
    return live_ts > bulk_ts


class IncidentStore:
    """
    Single source of truth for the map view.

    Identity is the incident id: a later write with the same id replaces the
    record where it sits, a write with an unseen id goes to the front.
    Callers run on one event loop; each upsert/seed is a single synchronous step.
    """

    def __init__(self):
        self._order: list[str] = []
        self._records: dict[str, Incident] = {}
        self._seeded = False
        self.version = 0

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, incident_id: str) -> bool:
        return incident_id in self._records

    @property
    def seeded(self) -> bool:
        return self._seeded

    def get(self, incident_id: str) -> Optional[Incident]:
        return self._records.get(incident_id)

    def snapshot(self) -> list[Incident]:
        """Ordered copy of the current records (newest first)."""
        return [self._records[iid] for iid in self._order]

    def upsert(self, incident: Incident) -> bool:
        """Insert at the front if unseen, else replace in place. Returns True on insert."""
        iid = incident.incident_id
        inserted = iid not in self._records
        if inserted:
            self._order.insert(0, iid)
        self._records[iid] = incident
        self.version += 1
        return inserted

    def seed(self, incidents: Iterable[Incident]) -> None:
        """
        Replace the sequence with a bulk snapshot.

        Records upserted from the live channel before the snapshot landed are not
        dropped: ones the snapshot lacks stay in front, and for ids present in both
        the copy with the later updated_at wins (the snapshot on a tie).
        """
        if self._seeded:
            logger.warning("store seeded more than once; merging snapshot of %d records", len(self._order))
        order: list[str] = []
        records: dict[str, Incident] = {}
        for incident in incidents:
            iid = incident.incident_id
            if iid not in records:
                order.append(iid)
            records[iid] = incident

        early = [iid for iid in self._order if iid not in records]
        for iid, live in self._records.items():
            if iid in records and _newer(live, records[iid]):
                records[iid] = live
        for iid in early:
            records[iid] = self._records[iid]

        if early:
            logger.info("seed kept %d live records not present in bulk response", len(early))
        self._order = early + order
        self._records = records
        self._seeded = True
        self.version += 1
