"""Starlette WebSocket endpoint bridging client frames to the MessageRouter."""

from __future__ import annotations

import contextlib
import re
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from game.messaging.encoder import DecodeError, decode
from game.messaging.protocol import ConnectionProtocol
from game.messaging.types import ErrorMessage, SessionErrorCode

logger = structlog.get_logger()

if TYPE_CHECKING:
    from game.messaging.router import MessageRouter

SESSION_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,50}$")

# consecutive undecodable frames tolerated before the socket is closed
MAX_DECODE_ERRORS = 5

CLOSE_INVALID_SESSION_ID = 4000
CLOSE_TOO_MANY_DECODE_ERRORS = 4004


class WebSocketConnection(ConnectionProtocol):
    """ConnectionProtocol over a Starlette WebSocket; transport errors surface as ConnectionError."""

    def __init__(self, websocket: WebSocket, session_id: str, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._session_id = session_id
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def session_id(self) -> str:
        return self._session_id

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        try:
            return await self._websocket.receive_bytes()
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


async def _serve(connection: WebSocketConnection, router: MessageRouter) -> None:
    """Feed decoded frames to the router until the client goes away or misbehaves."""
    strikes = 0
    while True:
        raw = await connection.receive_bytes()
        try:
            data = decode(raw)
        except DecodeError as e:
            strikes += 1
            logger.warning("decode error", error=str(e), strikes=strikes)
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE.value, message=str(e)).model_dump(),
            )
            if strikes >= MAX_DECODE_ERRORS:
                logger.info("too many decode errors, disconnecting")
                await connection.close(code=CLOSE_TOO_MANY_DECODE_ERRORS, reason="too_many_decode_errors")
                return
            continue
        strikes = 0
        await router.handle_message(connection, data)


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    session_id = websocket.path_params["session_id"]
    if not SESSION_ID_PATTERN.match(session_id):
        await websocket.close(code=CLOSE_INVALID_SESSION_ID, reason="invalid_session_id")
        return

    await websocket.accept()
    connection = WebSocketConnection(websocket, session_id=session_id)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id, session_id=session_id)
    logger.info("websocket connected")
    await router.handle_connect(connection)
    try:
        await _serve(connection, router)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("websocket disconnected")
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
