"""
Live diagram subscribers.

Clients connected on `/ws` are pushed a `diagram_updated` message with the
current (nodes, edges) snapshot each time the Document accepts a mutation.
"""
import asyncio
import json
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Tracks `/ws` subscribers and fans diagram snapshots out to them."""

    def __init__(self):
        self._subscribers: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._subscribers.add(websocket)
        logger.info("Subscriber joined (%d live)", len(self._subscribers))

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._subscribers.discard(websocket)
        logger.info("Subscriber left (%d live)", len(self._subscribers))

    async def _send(self, websocket: WebSocket, text: str) -> bool:
        try:
            await websocket.send_text(text)
        except Exception:
            logger.warning("Subscriber send failed, dropping it", exc_info=True)
            return False
        return True

    async def broadcast(self, message: dict):
        """
        Send `message` as JSON to every subscriber.

        Subscribers whose send fails are removed; the rest still receive it.
        """
        async with self._lock:
            subscribers = list(self._subscribers)
        if not subscribers:
            return

        text = json.dumps(message)
        dead = [ws for ws in subscribers if not await self._send(ws, text)]

        if dead:
            async with self._lock:
                self._subscribers.difference_update(dead)

    async def notify_diagram_updated(self, snapshot: dict):
        await self.broadcast({"type": "diagram_updated", "diagram": snapshot})

    @property
    def connection_count(self) -> int:
        return len(self._subscribers)
