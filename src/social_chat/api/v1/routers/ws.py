from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from social_chat.api.deps import get_verifier
from social_chat.application.exceptions import AuthError
from social_chat.config import settings
from social_chat.domain.value_objects.enums import ConnectionState
from social_chat.infrastructure.ws.connection import Connection
from social_chat.infrastructure.ws.hub import ChatHub
from social_chat.infrastructure.ws.protocol import PONG

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

AUTH_FAILED_CLOSE_CODE = 4001


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(""),
) -> None:
    hub: ChatHub = websocket.app.state.hub
    conn = Connection(
        websocket,
        send_timeout=settings.WS_SEND_TIMEOUT_SECONDS,
        queue_size=settings.WS_SEND_QUEUE_SIZE,
    )

    try:
        identity = await get_verifier().verify(token)
    except AuthError as exc:
        logger.info("WS auth rejected: %s", exc.detail)
        conn.state = ConnectionState.CLOSED
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason="Authentication error")
        return

    await websocket.accept()
    await hub.connect(conn, identity)

    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{conn.id[:8]}",
    )
    try:
        while True:
            raw = await websocket.receive_text()
            await hub.dispatch(conn, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %r", conn)
    finally:
        heartbeat_task.cancel()
        await hub.disconnect(conn)


async def _heartbeat(conn: Connection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await conn.send(PONG, {})
    except asyncio.CancelledError:
        pass
    except Exception:  # noqa: BLE001
        logger.debug("Heartbeat stopped for %r", conn)
