"""
Push-channel subscription: websocket frames -> queue -> single consumer -> store.

One reader task owns the connection (reconnect with exponential backoff, no replay
of events missed while disconnected). One consumer task drains the queue strictly
in arrival order through apply_event. close() releases both; nothing is applied after.
"""

import asyncio
import logging
from typing import Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from core.events import StreamEvent, apply_event, decode_frame
from core.store import IncidentStore

logger = logging.getLogger("incident_map.sync.stream")

STATUS_LIVE = "LIVE FEED ACTIVE"
STATUS_CONNECTING = "CONNECTING..."
INITIAL_BACKOFF = 1.0
MAX_BACKOFF = 30.0


class EventStreamAdapter:
    def __init__(
        self,
        store: IncidentStore,
        url: str,
        connect: Optional[Callable] = None,
        on_change: Optional[Callable[[], None]] = None,
        initial_backoff: float = INITIAL_BACKOFF,
        max_backoff: float = MAX_BACKOFF,
    ):
        self.store = store
        self.url = url
        self.on_change = on_change
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.connected = False
        self.events_applied = 0
        self._connect = connect or websockets.connect
        self._queue: Optional[asyncio.Queue] = None
        self._tasks: list[asyncio.Task] = []
        self._closed = False

    @property
    def status(self) -> str:
        return STATUS_LIVE if self.connected else STATUS_CONNECTING

    @property
    def active(self) -> bool:
        return bool(self._tasks) and not self._closed

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self) -> None:
        if self._closed:
            raise RuntimeError("stream adapter already closed")
        if self._tasks:
            return
        self._queue = asyncio.Queue()
        self._tasks = [
            asyncio.create_task(self._read_loop(), name="incident-stream-reader"),
            asyncio.create_task(self._consume(), name="incident-stream-consumer"),
        ]
        logger.info("subscribed to %s", self.url)

    async def close(self) -> None:
        self._closed = True
        self.connected = False
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._queue is not None:
            dropped = self._queue.qsize()
            if dropped:
                logger.info("dropping %d queued events on teardown", dropped)
        self._queue = None
        logger.info("unsubscribed from %s", self.url)

    async def _read_loop(self) -> None:
        delay = self.initial_backoff
        while not self._closed:
            try:
                async with self._connect(self.url) as ws:
                    self.connected = True
                    delay = self.initial_backoff
                    logger.info("channel connected %s", self.url)
                    async for message in ws:
                        event = decode_frame(message)
                        if event is not None and not self._closed:
                            self._queue.put_nowait(event)
                logger.info("channel closed by server")
            except ConnectionClosed as e:
                logger.warning("channel closed with error: code=%s reason=%s", getattr(e, "code", None), getattr(e, "reason", None))
            except (WebSocketException, OSError, asyncio.TimeoutError) as e:
                logger.warning("channel connection error: %s", e)
            finally:
                self.connected = False
            if self._closed:
                break
            # Events missed while disconnected are not replayed.
            logger.info("reconnecting in %.1fs", delay)
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_backoff)

    async def _consume(self) -> None:
        queue = self._queue
        while True:
            event: StreamEvent = await queue.get()
            try:
                if self._closed:
                    continue
                apply_event(self.store, event)
                self.events_applied += 1
                if self.on_change is not None:
                    self.on_change()
            except Exception as e:
                logger.exception("failed to apply %s event: %s", event.kind, e)
            finally:
                queue.task_done()
