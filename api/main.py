"""
FastAPI backend for the live incident map: filtered markers, camera command, live indicator.
The map session (bulk load + push subscription) lives for the lifetime of the app.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core import config
from core.models import ALL_TYPES, Coordinates, FilterState, IncidentType, Severity, get_incident_dict
from core.store import IncidentStore
from geo.viewport import MAX_ZOOM, USER_ZOOM, ViewportController
from sync.loader import BulkLoader, build_client
from sync.session import MapSession
from sync.stream import EventStreamAdapter

load_dotenv(override=True)

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("incident_map.api")

# -----------------------------------------------------------------------------
# Session (replaced by a connected one in lifespan)
# -----------------------------------------------------------------------------
session = MapSession()


async def _fixed_location() -> Optional[Coordinates]:
    return config.fixed_user_location()


def build_session() -> tuple[MapSession, object]:
    """Session wired to the configured backend. Returns (session, http_client)."""
    client = build_client(config.api_base_url(), timeout=config.fetch_timeout(), token=config.api_token())
    width, height = config.view_size()
    store = IncidentStore()
    new_session = MapSession(
        store=store,
        loader=BulkLoader(client),
        stream=EventStreamAdapter(store, config.stream_url()),
        locate=_fixed_location,
        viewport=ViewportController(width, height),
    )
    return new_session, client


@asynccontextmanager
async def lifespan(app: FastAPI):
    global session
    live_session, client = build_session()
    session = live_session
    logger.info("map session api=%s stream=%s", config.api_base_url(), config.stream_url())
    try:
        async with live_session:
            yield
    finally:
        await client.aclose()


app = FastAPI(title="Incident Map Sync API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------------------------------------------------------
# Request models
# -----------------------------------------------------------------------------
class FilterRequest(BaseModel):
    radius: float = Field(50, ge=1, le=50)
    severity: list[Severity] = Field(default_factory=lambda: list(Severity), min_length=1)
    type: str = ALL_TYPES


class LocationRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ViewRequest(LocationRequest):
    zoom: int = Field(USER_ZOOM, ge=0, le=MAX_ZOOM)


NO_CACHE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate", "Pragma": "no-cache"}


def _view_response():
    return JSONResponse(content=session.state_dict(), headers=NO_CACHE_HEADERS)


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
# Handlers are async so session state is only touched from the event loop.
@app.get("/map")
async def get_map(highlight: Optional[str] = None):
    """Filtered markers and camera command. ?highlight=<id> deep-links one incident."""
    if highlight is not None:
        session.set_highlight(highlight)
    return _view_response()


@app.put("/map/filters")
async def put_filters(body: FilterRequest):
    if body.type != ALL_TYPES and body.type not in IncidentType.__members__:
        raise HTTPException(status_code=422, detail=f"unknown incident type {body.type!r}")
    session.set_filters(FilterState(radius_km=body.radius, severities=frozenset(body.severity), incident_type=body.type))
    logger.info("filters updated %s", session.filters.to_dict())
    return _view_response()


@app.post("/map/location")
async def post_location(body: LocationRequest):
    session.set_user_location(Coordinates(body.lat, body.lng))
    return _view_response()


@app.delete("/map/location")
async def delete_location():
    session.set_user_location(None)
    return _view_response()


@app.post("/map/view")
async def post_view(body: ViewRequest):
    """Manual camera; held until /map/recenter."""
    session.set_view(Coordinates(body.lat, body.lng), body.zoom)
    return _view_response()


@app.post("/map/recenter")
async def post_recenter():
    session.recenter()
    return _view_response()


@app.get("/map/incidents/{incident_id}")
async def get_incident(incident_id: str):
    """Single record from the store, mappable or not."""
    incident = session.store.get(incident_id)
    if incident is None:
        raise HTTPException(status_code=404, detail="Incident not found")
    return JSONResponse(content=get_incident_dict(incident), headers=NO_CACHE_HEADERS)


@app.get("/health")
async def health():
    return JSONResponse(
        content={"status": "ok", "live": session.live, "loading": session.loading, "incidents": len(session.store)},
        headers=NO_CACHE_HEADERS,
    )
