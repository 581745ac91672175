"""Pytest fixtures for incident map sync tests."""

import asyncio

import pytest

from core.models import Incident, IncidentType, Severity
from core.store import IncidentStore


def make_incident(incident_id="INC001", incident_type=IncidentType.FIRE, severity=Severity.HIGH,
                  lat=28.6139, lng=77.2090, updated_at=None, **kwargs):
    """Incident with sensible defaults; pass lat=None for one without coordinates."""
    return Incident(
        incident_id=incident_id,
        incident_type=incident_type,
        severity=severity,
        latitude=lat,
        longitude=lng,
        updated_at=updated_at,
        **kwargs,
    )


def make_record(incident_id="INC001", **overrides):
    """Wire record as the backend sends it (camelCase)."""
    record = {
        "id": incident_id,
        "incidentType": "FIRE",
        "severity": "HIGH",
        "status": "REPORTED",
        "description": "Structure fire",
        "latitude": 28.6139,
        "longitude": 77.2090,
        "createdAt": "2025-01-15T14:30:00Z",
        "updatedAt": "2025-01-15T14:30:00Z",
        "upvoteCount": 3,
    }
    record.update(overrides)
    return record


async def wait_until(predicate, timeout=2.0):
    """Yield to the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class FakeSocket:
    """Async-iterable stand-in for a websockets connection."""

    def __init__(self, frames, hold=True):
        self.frames = list(frames)
        self.hold = hold
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for frame in self.frames:
            yield frame
        if self.hold:
            await asyncio.Event().wait()


class FakeConnector:
    """connect(url) replacement: hands out queued sockets, then idle ones."""

    def __init__(self, *sockets):
        self.sockets = list(sockets)
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        if self.sockets:
            item = self.sockets.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        return FakeSocket([], hold=True)


@pytest.fixture
def store():
    return IncidentStore()


@pytest.fixture
def high_fire():
    return make_incident("A", IncidentType.FIRE, Severity.HIGH)


@pytest.fixture
def low_flood():
    return make_incident("B", IncidentType.FLOOD, Severity.LOW)
