"""WebSocket route for the push snapshot stream."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket

from presentation.api.dependencies import get_container

logger = logging.getLogger(__name__)
router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws/snapshots")
async def snapshot_stream(websocket: WebSocket) -> None:
    """Stream one ``Snapshot`` JSON document per push tick.

    Protocol:
        1. Client connects; the latest snapshot (if any) is sent right away.
        2. Server sends a snapshot on every tick. A client that reads slowly
           only ever receives the newest pending snapshot.
        3. Messages from the client are ignored; the receive loop only
           detects disconnects.
    """
    manager = get_container().connection_manager()
    conn = await manager.connect(websocket)
    sender = asyncio.create_task(manager.stream(conn))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug("WS client '%s' disconnected", conn.client)
                break
    finally:
        await manager.disconnect(conn)
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
