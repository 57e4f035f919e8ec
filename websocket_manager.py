import logging
from typing import Dict, List
from fastapi import WebSocket

logger = logging.getLogger(__name__)

AUTH_EVENTS = ("SIGNED_IN", "SIGNED_OUT", "USER_UPDATED")


#websocket manager
class ConnectionManager:
    """Open sockets grouped by channel; the auth channel of a user is its user id."""

    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    # CONNECT TO WEBSOCKET AND APPEND TO THE LIST
    async def connect(self, websocket: WebSocket, channel_id: str):
        await websocket.accept()
        self.active_connections.setdefault(channel_id, []).append(websocket)

    # PURGE WEBSOCKET LIST STORE
    async def disconnect(self, channel_id: str, websocket: WebSocket):
        connections = self.active_connections.get(channel_id)
        if connections and websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(channel_id, None)

    def connection_count(self, channel_id: str) -> int:
        return len(self.active_connections.get(channel_id, []))

    async def broadcast(self, channel_id: str, message: dict):
        stale = []
        for ws in list(self.active_connections.get(channel_id, [])):
            try:
                await ws.send_json(message)
            except (RuntimeError, ConnectionError) as e:
                logger.warning("Dropping socket on channel %s: %s", channel_id, e)
                stale.append(ws)
        for ws in stale:
            await self.disconnect(channel_id, ws)


websocketManager = ConnectionManager()


async def notify_auth_event(channel_id, event: str, **payload):
    """Push an auth-state change to every open tab of the user."""
    if event not in AUTH_EVENTS:
        raise ValueError(f"Unknown auth event '{event}'")
    await websocketManager.broadcast(str(channel_id), {"event": event, **payload})
