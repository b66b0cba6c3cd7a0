"""Per-connection WebSocket snapshot streaming."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect

from application.services.snapshot_broadcaster import SnapshotBroadcaster, Subscription

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class WSConnection:
    websocket: WebSocket
    subscription: Subscription
    client: str = "unknown"
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_sent: Optional[datetime] = None
    sent: int = 0


class ConnectionManager:
    def __init__(self, broadcaster: SnapshotBroadcaster) -> None:
        self.broadcaster = broadcaster
        self._connections: list[WSConnection] = []

    async def connect(self, websocket: WebSocket) -> WSConnection:
        await websocket.accept()
        client = websocket.client
        conn = WSConnection(
            websocket=websocket,
            subscription=self.broadcaster.subscribe(),
            client=f"{client.host}:{client.port}" if client else "unknown",
        )
        self._connections.append(conn)
        logger.info(
            "WS connected: client='%s' (total=%d)",
            conn.client,
            self.total_connections,
        )
        # New clients get the latest snapshot without waiting for the next tick
        if self.broadcaster.latest is not None:
            conn.subscription.offer(self.broadcaster.latest)
        return conn

    async def disconnect(self, conn: WSConnection) -> None:
        conn.subscription.close()
        if conn in self._connections:
            self._connections.remove(conn)
            logger.info(
                "WS disconnected: client='%s' sent=%d (total=%d)",
                conn.client,
                conn.sent,
                self.total_connections,
            )

    async def stream(self, conn: WSConnection) -> None:
        """Send snapshots from the connection's own subscription until it ends."""
        try:
            async for snapshot in conn.subscription:
                await conn.websocket.send_json(snapshot.to_dict())
                conn.sent += 1
                conn.last_sent = datetime.now(timezone.utc)
        except WebSocketDisconnect:
            logger.debug("WS client '%s' went away", conn.client)
        except RuntimeError as e:
            # Starlette raises RuntimeError when sending on a closed socket
            logger.warning("WS send failed: client='%s': %s", conn.client, e)
        finally:
            await self.disconnect(conn)

    async def close_all(self) -> None:
        for conn in list(self._connections):
            await self.disconnect(conn)

    @property
    def total_connections(self) -> int:
        return len(self._connections)
