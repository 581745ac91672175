"""
Map session: the lifetime of one active map view.

Owns the store and wires the bulk load, the push subscription, the fire-once
location request, deep-link resolution and the viewport controller. Everything
runs on one event loop. After close() no completion (fetch, location, event)
may touch the session state.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.models import Coordinates, FilterState, get_incident_dict
from core.store import IncidentStore
from geo.filters import filter_incidents, mappable
from geo.viewport import ViewportCommand, ViewportController
from sync.deep_link import DeepLinkResolver
from sync.loader import BulkLoader
from sync.stream import STATUS_CONNECTING, EventStreamAdapter

logger = logging.getLogger("incident_map.sync.session")

LocateFn = Callable[[], Awaitable[Optional[Coordinates]]]


class MapSession:
    def __init__(
        self,
        store: Optional[IncidentStore] = None,
        loader: Optional[BulkLoader] = None,
        stream: Optional[EventStreamAdapter] = None,
        filters: Optional[FilterState] = None,
        locate: Optional[LocateFn] = None,
        viewport: Optional[ViewportController] = None,
    ):
        self.store = store if store is not None else IncidentStore()
        self.loader = loader
        self.stream = stream
        if stream is not None and stream.on_change is None:
            stream.on_change = self.refresh
        self.filters = filters or FilterState()
        self.locate = locate
        self.viewport_controller = viewport or ViewportController()
        self.deep_link = DeepLinkResolver()
        self.user_location: Optional[Coordinates] = None
        self.last_command: Optional[ViewportCommand] = None
        self.closed = False
        self._started = False
        self._tasks: list[asyncio.Task] = []

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def start(self) -> None:
        if self.closed:
            raise RuntimeError("map session already closed")
        if self._started:
            return
        self._started = True
        try:
            if self.stream is not None:
                await self.stream.start()
            if self.loader is not None:
                self._tasks.append(asyncio.create_task(self._load(), name="incident-bulk-load"))
            if self.locate is not None:
                self._tasks.append(asyncio.create_task(self._locate(), name="incident-locate"))
        except BaseException:
            await self.close()
            raise
        logger.info("map session started")

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        # Stream first: no push event may land while the other tasks unwind.
        try:
            if self.stream is not None:
                await self.stream.close()
        finally:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("map session closed")

    def _is_active(self) -> bool:
        return not self.closed

    async def _load(self) -> None:
        if await self.loader.load(self.store, is_active=self._is_active):
            self.refresh()

    async def _locate(self) -> None:
        try:
            location = await self.locate()
        except Exception as e:
            logger.info("location unavailable, using default center: %s", e)
            return
        if self.closed:
            return
        if location is None:
            logger.info("location unavailable, using default center")
            return
        self.set_user_location(location)

    async def wait_ready(self) -> None:
        """Wait for the bulk load and location tasks (not the stream) to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------
    def refresh(self) -> None:
        """Run after every store change: resolve a pending deep link."""
        if self.closed:
            return
        command = self.deep_link.observe(self.store)
        if command is not None:
            self.last_command = self.viewport_controller.focus(command.center)

    def set_filters(self, filters: FilterState) -> None:
        if self.closed:
            return
        self.filters = filters

    def set_user_location(self, location: Optional[Coordinates]) -> None:
        if self.closed:
            return
        self.user_location = location
        logger.info("user location set %s", location)

    def set_highlight(self, incident_id: Optional[str]) -> None:
        if self.closed:
            return
        previous = self.deep_link.target
        self.deep_link.set_target(incident_id)
        if self.deep_link.target != previous:
            self.viewport_controller.clear_highlight()
        self.refresh()

    def set_view(self, center: Coordinates, zoom: int) -> None:
        """User panned or zoomed: hold this camera until recenter()."""
        if self.closed:
            return
        self.viewport_controller.set_manual(center, zoom)

    def recenter(self) -> None:
        if self.closed:
            return
        self.viewport_controller.recenter()

    # -------------------------------------------------------------------------
    # Derived view
    # -------------------------------------------------------------------------
    @property
    def loading(self) -> bool:
        return self.loader.loading if self.loader is not None else False

    @property
    def live(self) -> bool:
        return self.stream.connected if self.stream is not None else False

    @property
    def status(self) -> str:
        return self.stream.status if self.stream is not None else STATUS_CONNECTING

    def filtered_view(self):
        return filter_incidents(self.store.snapshot(), self.filters, self.user_location, self.deep_link.target)

    def viewport(self) -> ViewportCommand:
        return self.viewport_controller.evaluate(mappable(self.filtered_view()), self.user_location)

    def state_dict(self) -> dict:
        """Serialize the map view (markers + camera + indicators) for the API."""
        filtered = self.filtered_view()
        markers = mappable(filtered)
        return {
            "incidents": [get_incident_dict(i) for i in markers],
            "viewport": self.viewport_controller.evaluate(markers, self.user_location).to_dict(),
            "highlight": self.deep_link.target,
            "highlight_state": self.deep_link.state,
            "live": self.live,
            "status": self.status,
            "loading": self.loading,
            "total": len(self.store),
            "matched": len(filtered),
            "filters": self.filters.to_dict(),
            "user_location": self.user_location.to_dict() if self.user_location else None,
        }
