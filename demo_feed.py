"""
Demo incident backend for local runs of the map sync engine.

Serves the two interfaces the engine consumes:
  GET /api/incidents   -> {"data": [...]}
  WS  /ws              -> frames ["incident:new" | "incident:update", {"data": record}]
POST /demo/emit records an incident and broadcasts it to every connected client.

Run:
  python demo_feed.py            (DEMO_FEED_PORT, default 3001)
  then INCIDENT_API_URL=http://localhost:3001/api python run_api.py
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from core.events import EVENT_CREATED, EVENT_KINDS

load_dotenv(override=True)

LOG = logging.getLogger("incident_map.demo_feed")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

DEMO_FEED_PORT = int(os.environ.get("DEMO_FEED_PORT", "3001"))

# Demo incidents around New Delhi; one without coordinates (kept in the list, never drawn)
DEMO_INCIDENTS = [
    {"id": "INC001", "incidentType": "FIRE", "severity": "HIGH", "status": "REPORTED",
     "description": "Structure fire at an office complex.", "latitude": 28.6139, "longitude": 77.2090,
     "location": "Connaught Place", "createdAt": "2025-01-15T14:30:00Z", "updatedAt": "2025-01-15T14:30:00Z", "upvoteCount": 12},
    {"id": "INC002", "incidentType": "MEDICAL", "severity": "HIGH", "status": "IN_PROGRESS",
     "description": "Person collapsed near the metro exit.", "latitude": 28.6280, "longitude": 77.2190,
     "location": "Rajiv Chowk", "createdAt": "2025-01-15T15:05:00Z", "updatedAt": "2025-01-15T15:05:00Z", "upvoteCount": 8},
    {"id": "INC003", "incidentType": "FLOOD", "severity": "MEDIUM", "status": "VERIFIED",
     "description": "Water main leak flooding the underpass.", "latitude": 28.5900, "longitude": 77.2300,
     "location": "Lodhi Road underpass", "createdAt": "2025-01-15T16:10:00Z", "updatedAt": "2025-01-15T16:40:00Z", "upvoteCount": 3},
    {"id": "INC004", "incidentType": "POWER_OUTAGE", "severity": "LOW", "status": "REPORTED",
     "description": "Street lights out on the whole block.", "latitude": None, "longitude": None,
     "location": "Sector 9", "createdAt": "2025-01-15T17:00:00Z", "updatedAt": "2025-01-15T17:00:00Z", "upvoteCount": 0},
]

incidents: dict[str, dict] = {r["id"]: dict(r) for r in DEMO_INCIDENTS}


class ConnectionManager:
    def __init__(self):
        self.connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.connections:
            self.connections.remove(websocket)

    async def broadcast(self, event: str, payload: dict) -> int:
        frame = json.dumps([event, payload])
        sent = 0
        for connection in list(self.connections):
            try:
                await connection.send_text(frame)
                sent += 1
            except (WebSocketDisconnect, RuntimeError) as e:
                LOG.warning("broadcast failed, dropping client: %s", e)
                self.disconnect(connection)
        return sent


manager = ConnectionManager()

app = FastAPI(title="Demo Incident Feed", description="Bulk list + push channel for the incident map")


class EmitRequest(BaseModel):
    event: str = EVENT_CREATED
    incident: dict
    wrap: bool = True  # send {"data": record} instead of the bare record


@app.get("/api/incidents")
async def list_incidents():
    # newest first, like the real backend
    ordered = sorted(incidents.values(), key=lambda r: r.get("createdAt") or "", reverse=True)
    return {"data": ordered}


@app.post("/demo/emit")
async def emit(body: EmitRequest):
    if body.event not in EVENT_KINDS:
        raise HTTPException(status_code=400, detail=f"event must be one of {list(EVENT_KINDS)}")
    record = dict(body.incident)
    if not record.get("id"):
        raise HTTPException(status_code=400, detail="incident.id is required")
    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    record.setdefault("createdAt", now)
    record["updatedAt"] = record.get("updatedAt") or now
    incidents[record["id"]] = record
    payload = {"data": record} if body.wrap else record
    sent = await manager.broadcast(body.event, payload)
    LOG.info("emitted %s id=%s to %d clients", body.event, record["id"], sent)
    return {"status": "ok", "clients": sent, "incident": record}


@app.websocket("/ws")
async def push_channel(websocket: WebSocket):
    await manager.connect(websocket)
    LOG.info("client connected (%d total)", len(manager.connections))
    try:
        while True:
            # Clients never send anything meaningful; keep reading to detect disconnect.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
        LOG.info("client disconnected (%d total)", len(manager.connections))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=DEMO_FEED_PORT)
