"""Per-order notification channels."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import defaultdict
from typing import Any, Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class NotificationChannel(Protocol):
    def publish(self, order_id: str, event: str, payload: dict[str, Any]) -> None:
        """Deliver ``event`` to every listener of the order's topic."""
        ...


class ConnectionHub:
    """WebSocket rooms keyed by order id.

    ``publish`` is called from worker threads (the engine runs in the
    threadpool); frames are handed to the event loop that owns the sockets.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def join(self, order_id: str, websocket: WebSocket) -> None:
        with self._lock:
            self._rooms[order_id].add(websocket)
        logger.info(f"Listener joined order room {order_id}")

    def leave(self, order_id: str, websocket: WebSocket) -> None:
        with self._lock:
            room = self._rooms.get(order_id)
            if room is None:
                return
            room.discard(websocket)
            if not room:
                del self._rooms[order_id]
        logger.info(f"Listener left order room {order_id}")

    def listener_count(self, order_id: str) -> int:
        with self._lock:
            return len(self._rooms.get(order_id, ()))

    def publish(self, order_id: str, event: str, payload: dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._rooms.get(order_id, ()))
        if not listeners:
            logger.debug(f"No listeners for {event} on order {order_id}")
            return
        if self._loop is None or self._loop.is_closed():
            logger.warning(f"Dropping {event} for order {order_id}: hub is not bound to a running loop")
            return
        message = {"event": event, "data": payload}
        coroutine = self._broadcast(order_id, listeners, message)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._loop.create_task(coroutine)
        else:
            asyncio.run_coroutine_threadsafe(coroutine, self._loop)

    async def _broadcast(self, order_id: str, listeners: list[WebSocket], message: dict[str, Any]) -> None:
        for websocket in listeners:
            if websocket.application_state is WebSocketState.CONNECTING:
                # Joined but not yet accepted; it stays in the room for later events.
                logger.debug(f"Skipping {message['event']} for a listener still connecting to order room {order_id}")
                continue
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.info(f"Removing dead listener from order room {order_id}: {e}")
                self.leave(order_id, websocket)
