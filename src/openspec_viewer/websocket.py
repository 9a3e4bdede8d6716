"""WebSocket connection registry and change broadcasting."""

import json
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from .core import FileChangeEvent, OpenSpecData
from .serialize import refresh_payload

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected browser clients for one server instance."""

    def __init__(self):
        self.clients: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a client and tell it to load everything."""
        await websocket.accept()
        self.clients.add(websocket)
        await self.send(websocket, {"type": "data:refresh", "entity": "all"})

    def disconnect(self, websocket: WebSocket) -> None:
        self.clients.discard(websocket)

    async def broadcast_change(self, event: FileChangeEvent, data: OpenSpecData) -> None:
        """Store subscriber: push the refreshed slice to every client."""
        await self.broadcast({
            "type": "data:refresh",
            "entity": event.affected_entity,
            "entityId": event.entity_id,
            "data": refresh_payload(event, data),
        })

    async def broadcast(self, message: dict) -> None:
        payload = json.dumps(message)
        for client in list(self.clients):
            try:
                await client.send_text(payload)
            except Exception as e:
                logger.debug("Dropping WebSocket client: %s", e)
                self.disconnect(client)

    async def send(self, websocket: WebSocket, message: dict) -> None:
        if websocket.application_state == WebSocketState.CONNECTED:
            await websocket.send_text(json.dumps(message))

    @property
    def client_count(self) -> int:
        return len(self.clients)
