"""WebSocket channel for live tracking of a single order."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from ...models.domain import Position
from ...schemas.tracking import LocationUpdate, SocketMessage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tracking"])


async def _send_error(websocket: WebSocket, detail: str) -> None:
    await websocket.send_json({"event": "error", "data": {"detail": detail}})


@router.websocket("/ws/orders/{order_id}")
async def order_channel(websocket: WebSocket, order_id: str) -> None:
    """Join the order's room, then accept ``update_location`` frames.

    Every decision published for ``order_id`` is pushed to this socket.
    """
    hub = websocket.app.state.hub
    hub.bind_loop(asyncio.get_running_loop())
    # Joined before accept; the hub skips this socket until the handshake completes.
    hub.join(order_id, websocket)
    try:
        await websocket.accept()
        while True:
            raw = await websocket.receive_text()
            try:
                message = SocketMessage.model_validate_json(raw)
                update = LocationUpdate.model_validate(message.data)
            except ValidationError as exc:
                logger.warning(f"Rejected malformed frame on order room {order_id}: {exc.errors()}")
                await _send_error(websocket, "Malformed update_location payload.")
                continue
            if update.order_id != order_id:
                logger.warning(f"Rejected update for order {update.order_id} sent on room {order_id}")
                await _send_error(websocket, "orderId does not match this channel.")
                continue

            engine = websocket.app.state.engine
            if engine is None:
                await _send_error(websocket, "ETA provider is not configured.")
                continue
            position = Position(update.latitude, update.longitude, update.speed)
            await run_in_threadpool(engine.process_update, update.order_id, position)
    except WebSocketDisconnect:
        pass
    finally:
        hub.leave(order_id, websocket)
