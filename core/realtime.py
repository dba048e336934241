"""
core/realtime.py — Live Connection Registry
============================================
Maps an authenticated user id to their open websocket so new
notifications can be pushed as they are created.

Process-local: nothing here is persisted, and the registry starts empty
after a restart. Clients re-authenticate on reconnect.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import WebSocket

logger = logging.getLogger("jataayu.realtime")


class ConnectionRegistry:

    def __init__(self):
        self._connections: Dict[str, WebSocket] = {}

    def __len__(self):
        return len(self._connections)

    def get(self, user_id: str) -> Optional[WebSocket]:
        return self._connections.get(user_id)

    def register(self, user_id: str, websocket: WebSocket):
        # One live connection per user; the newest wins
        self._connections[user_id] = websocket
        logger.info(f"User {user_id} connected ({len(self)} live)")

    def unregister(self, user_id: str, websocket: WebSocket):
        # Only drop the entry if it still points at this socket
        if self._connections.get(user_id) is websocket:
            del self._connections[user_id]
            logger.info(f"User {user_id} disconnected ({len(self)} live)")

    @asynccontextmanager
    async def session(self, user_id: str, websocket: WebSocket):
        """Registers for the duration of the block; removal is guaranteed."""
        self.register(user_id, websocket)
        try:
            yield
        finally:
            self.unregister(user_id, websocket)

    async def push(self, user_id: str, payload: dict) -> bool:
        """Send to the user's live socket if any. Never raises."""
        websocket = self._connections.get(user_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(payload)
            return True
        except Exception as exc:
            logger.warning(f"Push to user {user_id} failed: {exc}")
            return False


# Singleton, import this everywhere:  from core.realtime import connections
connections = ConnectionRegistry()
