"""
WebSocket Manager - Pushes sync events to connected editors.

Server sends:
    {"type": "connected", "client_id": 3}
    {"type": "graph_updated"}                  graph editor re-fetches GET /api/graph
    {"type": "text_updated", "text": "..."}    text editor replaces its buffer
    {"type": "pong"}

Client sends:
    "ping" or {"type": "ping"}
"""
import asyncio
import itertools
import json
import logging
from enum import Enum

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class SyncEventType(str, Enum):
    CONNECTED = "connected"
    GRAPH_UPDATED = "graph_updated"
    TEXT_UPDATED = "text_updated"
    PONG = "pong"


def is_ping(raw: str) -> bool:
    """Accept both the bare and the JSON form of a ping."""
    if raw == "ping":
        return True
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return False
    return isinstance(data, dict) and data.get("type") == "ping"


class WebSocketManager:
    """
    Connection pool keyed by a per-process client id.

    Sends happen outside the lock so one slow client cannot stall
    connects and disconnects; clients whose send fails are dropped.
    """

    def __init__(self):
        self._clients: dict[int, WebSocket] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> int:
        """Accept a connection, greet it and return its client id."""
        await websocket.accept()
        async with self._lock:
            client_id = next(self._ids)
            self._clients[client_id] = websocket
        logger.info("WebSocket client %d connected (%d open)", client_id, len(self._clients))
        await self.send(client_id, {"type": SyncEventType.CONNECTED.value, "client_id": client_id})
        return client_id

    async def disconnect(self, client_id: int):
        async with self._lock:
            removed = self._clients.pop(client_id, None)
        if removed is not None:
            logger.info("WebSocket client %d disconnected (%d open)", client_id, len(self._clients))

    async def send(self, client_id: int, message: dict) -> bool:
        """Send to one client; False (and the client dropped) if that fails."""
        websocket = self._clients.get(client_id)
        if websocket is None:
            return False
        try:
            await websocket.send_text(json.dumps(message))
        except Exception:
            logger.debug("Dropping WebSocket client %d after failed send", client_id, exc_info=True)
            await self.disconnect(client_id)
            return False
        return True

    async def broadcast(self, message: dict) -> int:
        """Send to every client. Returns how many sends succeeded."""
        async with self._lock:
            client_ids = list(self._clients)
        if not client_ids:
            return 0
        results = await asyncio.gather(*(self.send(cid, message) for cid in client_ids))
        return sum(results)

    async def notify_graph_updated(self):
        await self.broadcast({"type": SyncEventType.GRAPH_UPDATED.value})

    async def notify_text_updated(self, text: str):
        await self.broadcast({"type": SyncEventType.TEXT_UPDATED.value, "text": text})

    @property
    def connection_count(self) -> int:
        return len(self._clients)
