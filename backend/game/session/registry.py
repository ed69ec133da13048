"""Process-wide registry of active game sessions."""

from __future__ import annotations

import random
import uuid
from typing import TYPE_CHECKING

import structlog

from game.logic.exceptions import AlreadyInProgressError, NotFoundError
from game.logic.game import init_game
from game.session.broadcast import NullEventSink
from game.session.game_session import GameSession
from game.words.source import FallbackWordSource

if TYPE_CHECKING:
    from game.logic.round import GuessOutcome
    from game.logic.settings import GameSettings
    from game.session.broadcast import EventSink
    from game.session.commands import SessionCommand
    from game.session.results import GameArchive, GameSummary, StatsRecorder
    from game.words.source import WordSource

logger = structlog.get_logger()


class SessionRegistry:
    """
    Map session ids to GameSessions.

    Room and participant associations are kept here explicitly: a room or
    a participant belongs to at most one active session at a time.
    """

    def __init__(
        self,
        sink: EventSink | None = None,
        word_source: WordSource | None = None,
        stats: StatsRecorder | None = None,
        archive: GameArchive | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._sink = sink or NullEventSink()
        self._word_source = word_source or FallbackWordSource()
        self._stats = stats
        self._archive = archive
        self._rng = rng or random.Random()  # noqa: S311
        self._sessions: dict[str, GameSession] = {}
        self._by_room: dict[str, str] = {}  # room_id -> session_id
        self._by_participant: dict[str, str] = {}  # participant_id -> session_id

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def get_session(self, session_id: str) -> GameSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"session {session_id} not found")
        return session

    def find_session_for_room(self, room_id: str) -> GameSession | None:
        session_id = self._by_room.get(room_id)
        return self._sessions.get(session_id) if session_id else None

    def find_session_for_participant(self, participant_id: str) -> GameSession | None:
        session_id = self._by_participant.get(participant_id)
        return self._sessions.get(session_id) if session_id else None

    async def start_game(
        self,
        room_id: str,
        participant_ids: list[str],
        settings: GameSettings | None = None,
        session_id: str | None = None,
    ) -> str:
        """
        Create, register and open a session for the room.

        Raises:
            AlreadyInProgressError: If the room, the session id or a participant is already in a game
            InsufficientPlayersError: If fewer than the minimum participants are given
            TooManyPlayersError: If more than the maximum participants are given

        """
        if room_id in self._by_room:
            raise AlreadyInProgressError(f"room {room_id} already has a game in progress")
        busy = [pid for pid in participant_ids if pid in self._by_participant]
        if busy:
            raise AlreadyInProgressError(f"participants already in a game: {', '.join(busy)}")
        session_id = session_id or uuid.uuid4().hex
        if session_id in self._sessions:
            raise AlreadyInProgressError(f"session {session_id} already exists")

        state, events = init_game(session_id, room_id, participant_ids, settings, self._rng)
        session = GameSession(
            state,
            self._sink,
            self._word_source,
            stats=self._stats,
            archive=self._archive,
            on_finished=self._on_session_finished,
            rng=self._rng,
        )
        self._sessions[session_id] = session
        self._by_room[room_id] = session_id
        for pid in state.turn_order:
            self._by_participant[pid] = session_id

        logger.info("session registered", session_id=session_id, room_id=room_id, players=len(state.turn_order))
        await session.start(events)
        return session_id

    async def dispatch(self, session_id: str, command: SessionCommand) -> GuessOutcome | None:
        """Deliver an inbound event to the owning session."""
        return await self.get_session(session_id).handle(command)

    def _unregister(self, session: GameSession) -> None:
        if self._sessions.get(session.session_id) is not session:
            return
        del self._sessions[session.session_id]
        if self._by_room.get(session.room_id) == session.session_id:
            del self._by_room[session.room_id]
        for pid in session.participant_ids:
            if self._by_participant.get(pid) == session.session_id:
                del self._by_participant[pid]

    async def _on_session_finished(self, session: GameSession, summary: GameSummary) -> None:
        self._unregister(session)
        logger.info(
            "session removed",
            session_id=session.session_id,
            abandoned=summary.abandoned,
            remaining=len(self._sessions),
        )

    async def shutdown(self) -> None:
        """Release every session's timers and forget all sessions."""
        sessions = list(self._sessions.values())
        for session in sessions:
            await session.close()
            self._unregister(session)
        if sessions:
            logger.info("registry shut down", sessions=len(sessions))
