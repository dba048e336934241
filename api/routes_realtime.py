"""
api/routes_realtime.py — Live Notification Channel

    WS /ws/notifications[?token=<jwt>]

If no token is given in the query string, the first text message must be
the token. Once authenticated the socket receives
{"event": "notification", "notification": {...}} for every notification
created for that user while connected.
"""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.access import resolve_token
from core.realtime import connections
from db.session import get_session_factory

logger = logging.getLogger("jataayu.api.realtime")

router = APIRouter()


@router.websocket("/notifications")
async def notifications_socket(
    websocket: WebSocket,
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    await websocket.accept()
    try:
        token = websocket.query_params.get("token") or await websocket.receive_text()
    except WebSocketDisconnect:
        return

    async with session_factory() as db:
        user = await resolve_token(db, token)
    if user is None:
        logger.warning("Socket authentication failed")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with connections.session(user.id, websocket):
        await websocket.send_json({"event": "authenticated", "user_id": user.id})
        try:
            while True:
                await websocket.receive_text()      # keep-alive; clients send nothing we act on
        except WebSocketDisconnect:
            pass
