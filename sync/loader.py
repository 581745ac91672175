"""One-shot bulk fetch that seeds the incident store."""

import logging
from typing import Callable, Optional

import httpx

from core.models import Incident, InvalidIncidentPayload, incident_from_dict
from core.store import IncidentStore

logger = logging.getLogger("incident_map.sync.loader")

INCIDENTS_PATH = "/incidents"


def build_client(base_url: str, timeout: float = 15.0, token: Optional[str] = None) -> httpx.AsyncClient:
    """Async HTTP client for the incident backend (bearer token attached when set)."""
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers)


def parse_incident_list(body) -> list[Incident]:
    """Body is a bare array or {"data": [...]}. Records without an id are dropped."""
    if isinstance(body, dict):
        body = body.get("data") or []
    if not isinstance(body, list):
        raise ValueError(f"expected a list of incidents, got {type(body).__name__}")
    incidents = []
    for record in body:
        try:
            incidents.append(incident_from_dict(record))
        except InvalidIncidentPayload as e:
            logger.warning("bulk record dropped: %s", e)
    return incidents


class BulkLoader:
    """
    Issues exactly one GET and seeds the store on success.
    On failure the store is left as it was. No retry.
    """

    def __init__(self, client: httpx.AsyncClient, path: str = INCIDENTS_PATH):
        self.client = client
        self.path = path
        self.loading = True
        self.error: Optional[str] = None

    async def fetch(self) -> list[Incident]:
        r = await self.client.get(self.path)
        r.raise_for_status()
        return parse_incident_list(r.json())

    async def load(self, store: IncidentStore, is_active: Optional[Callable[[], bool]] = None) -> bool:
        """
        Fetch and seed. Returns True when the store was seeded.
        is_active is checked once the response is in; a torn-down owner is not mutated.
        """
        try:
            incidents = await self.fetch()
        except (httpx.HTTPError, ValueError) as e:
            self.error = str(e)
            logger.exception("failed to load incidents: %s", e)
            return False
        finally:
            self.loading = False
        if is_active is not None and not is_active():
            logger.info("bulk load finished after teardown; discarding %d incidents", len(incidents))
            return False
        store.seed(incidents)
        logger.info("bulk load seeded %d incidents (store size %d)", len(incidents), len(store))
        return True
