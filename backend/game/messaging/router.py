from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from game.logic.exceptions import GameRuleError, NotFoundError
from game.messaging.types import (
    ErrorMessage,
    GuessLetterMessage,
    GuessResultMessage,
    JoinedMessage,
    JoinGameMessage,
    PingMessage,
    PongMessage,
    SendHintMessage,
    SessionErrorCode,
    SubmitWordMessage,
    parse_client_message,
)
from game.session.commands import GuessLetter, PlayerDisconnected, PlayerReconnected, SendHint, SubmitWord

if TYPE_CHECKING:
    from game.messaging.hub import Binding, ConnectionHub
    from game.messaging.protocol import ConnectionProtocol
    from game.session.registry import SessionRegistry

logger = structlog.get_logger()


class MessageRouter:
    """
    Translate client frames into session commands.

    Contains no transport code so it can be tested with fake connections.
    Rejected commands are reported to the sending connection only.
    """

    def __init__(self, registry: SessionRegistry, hub: ConnectionHub) -> None:
        self._registry = registry
        self._hub = hub

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._hub.register(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        result = self._hub.unregister(connection)
        if result is None:
            return
        binding, last = result
        if last:
            await self._report_disconnect(binding)

    async def _report_disconnect(self, binding: Binding) -> None:
        try:
            await self._registry.dispatch(binding.session_id, PlayerDisconnected(participant_id=binding.participant_id))
        except GameRuleError as e:
            # session already finished and left the registry
            logger.debug("disconnect not delivered", session_id=binding.session_id, error=e.message)

    async def handle_message(self, connection: ConnectionProtocol, raw_message: dict[str, Any]) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await self._send_error(connection, SessionErrorCode.INVALID_MESSAGE, str(e))
            return

        if isinstance(message, PingMessage):
            await self._hub.send(connection, PongMessage().model_dump())
            return

        try:
            if isinstance(message, JoinGameMessage):
                await self._handle_join(connection, message)
            else:
                await self._handle_command(connection, message)
        except GameRuleError as e:
            logger.info("command rejected", connection_id=connection.connection_id, code=e.code.value, error=e.message)
            await self._send_error(connection, e.code.value, e.message)
        except Exception:
            logger.exception("unexpected error handling message", connection_id=connection.connection_id)
            await self._send_error(connection, SessionErrorCode.ACTION_FAILED, "internal error")

    async def _handle_join(self, connection: ConnectionProtocol, message: JoinGameMessage) -> None:
        try:
            session = self._registry.get_session(connection.session_id)
        except NotFoundError:
            await self._send_error(connection, SessionErrorCode.SESSION_NOT_FOUND, "Game not found")
            return
        if not session.state.is_participant(message.participant_id):
            await self._send_error(connection, SessionErrorCode.NOT_A_PARTICIPANT, "Not a participant of this game")
            return

        released = self._hub.bind(connection, message.participant_id)
        if released is not None:
            # the connection switched participants; the one it spoke for has no socket left
            await self._report_disconnect(released)
        structlog.contextvars.bind_contextvars(participant_id=message.participant_id)
        await self._hub.send(
            connection,
            JoinedMessage(session_id=session.session_id, participant_id=message.participant_id).model_dump(),
        )
        # a first join is treated like a reconnect: the session replies with the current view
        await session.handle(PlayerReconnected(participant_id=message.participant_id))

    async def _handle_command(
        self,
        connection: ConnectionProtocol,
        message: SubmitWordMessage | GuessLetterMessage | SendHintMessage,
    ) -> None:
        binding = self._hub.binding_for(connection.connection_id)
        if binding is None:
            await self._send_error(connection, SessionErrorCode.NOT_JOINED, "You must join the game first")
            return
        caller_id = binding.participant_id

        if isinstance(message, SubmitWordMessage):
            await self._registry.dispatch(
                binding.session_id,
                SubmitWord(
                    caller_id=caller_id,
                    word=message.word,
                    use_random=message.use_random,
                    category=message.category.value,
                ),
            )
        elif isinstance(message, GuessLetterMessage):
            outcome = await self._registry.dispatch(
                binding.session_id,
                GuessLetter(caller_id=caller_id, letter=message.letter),
            )
            if outcome is not None:
                await self._hub.send(connection, GuessResultMessage(**outcome.model_dump()).model_dump())
        elif isinstance(message, SendHintMessage):
            await self._registry.dispatch(binding.session_id, SendHint(caller_id=caller_id, text=message.text))

    async def _send_error(self, connection: ConnectionProtocol, code: str, message: str) -> None:
        await self._hub.send(connection, ErrorMessage(code=str(code), message=message).model_dump())
