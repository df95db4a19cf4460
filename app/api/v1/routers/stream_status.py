"""Websocket feed of stream status events.

Each connected client receives every `stream_status` event published after it
connected: {"event": "stream_status", "sessionId", "status", "streamKey", "timestamp"}.
An optional `session_id` query parameter filters the feed to one session.
"""

import asyncio

from fastapi import APIRouter, WebSocket
from loguru import logger

from app.services.live_services import LiveServices

router = APIRouter(prefix="/stream_status", tags=["Stream Status"])


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue[dict], session_id: str | None) -> None:
    while True:
        payload = await queue.get()
        if session_id and payload.get("sessionId") != session_id:
            continue
        await websocket.send_json(payload)


async def _wait_disconnect(websocket: WebSocket) -> None:
    # Client messages are ignored; only the disconnect matters
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def stream_status_ws(websocket: WebSocket, session_id: str | None = None):
    live: LiveServices = websocket.app.state.live

    queue = live.broadcaster.subscribe()
    await websocket.accept()

    sender = asyncio.create_task(_forward_events(websocket, queue, session_id))
    receiver = asyncio.create_task(_wait_disconnect(websocket))
    try:
        done, _pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.warning(f"Stream status websocket closed: {task.exception()!r}")
    finally:
        sender.cancel()
        receiver.cancel()
        live.broadcaster.unsubscribe(queue)
        logger.debug("Stream status websocket disconnected")
