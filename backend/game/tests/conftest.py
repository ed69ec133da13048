import asyncio
from typing import Any

import pytest

from game.logic.enums import ConnectionState, SessionStatus
from game.logic.round import begin_round
from game.logic.settings import GameSettings
from game.logic.state import GameState, PlayerState
from game.messaging.hub import ConnectionHub
from game.messaging.router import MessageRouter
from game.session.game_session import GameSession
from game.session.registry import SessionRegistry
from game.session.results import InMemoryGameArchive, InMemoryStatsRecorder
from game.tests.mocks import MockConnection, RecordingEventSink, StaticWordSource

# tiny durations keep timer-driven tests fast
FAST_SETTINGS = GameSettings(
    total_rounds=2,
    turn_seconds=0.2,
    grace_seconds=0.2,
    settle_seconds=0.05,
    tick_seconds=0,
)


# ============================================================================
# Test State Builder Helpers
# ============================================================================


def create_game_state(
    participants: tuple[str, ...] = ("wm", "alice", "bob"),
    *,
    settings: GameSettings | None = None,
    connections: dict[str, ConnectionState] | None = None,
    scores: dict[str, int] | None = None,
    **overrides: Any,
) -> GameState:
    """
    Create a GameState in WORD_SELECTION with a fixed turn order.

    The first participant is the word-master.
    """
    game_settings = settings or GameSettings()
    connections = connections or {}
    scores = scores or {}
    kwargs: dict[str, Any] = {
        "session_id": "test-session",
        "room_id": "test-room",
        "settings": game_settings,
        "total_rounds": game_settings.total_rounds,
        "turn_order": participants,
        "word_master_id": participants[0],
        "players": tuple(
            PlayerState(
                participant_id=pid,
                connection=connections.get(pid, ConnectionState.CONNECTED),
                score=scores.get(pid, 0),
            )
            for pid in participants
        ),
        "max_incorrect": game_settings.max_incorrect_guesses,
        "hints_remaining": game_settings.max_hints,
    }
    kwargs.update(overrides)
    return GameState(**kwargs)


def create_round_state(word: str = "cat", **kwargs: Any) -> GameState:
    """Create a GameState with the word set and the first guesser on turn."""
    state = create_game_state(**kwargs)
    state, _ = begin_round(state, word, "all", now=1000.0)
    assert state.status == SessionStatus.IN_PROGRESS
    return state


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll predicate until it is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def sink():
    return RecordingEventSink()


@pytest.fixture
def word_source():
    return StaticWordSource()


@pytest.fixture
def stats():
    return InMemoryStatsRecorder()


@pytest.fixture
def archive():
    return InMemoryGameArchive()


@pytest.fixture
async def session_factory(sink, word_source, stats, archive):
    """Build GameSessions around hand-made states; timers are released on teardown."""
    sessions: list[GameSession] = []

    def _make(state: GameState, **kwargs: Any) -> GameSession:
        kwargs.setdefault("stats", stats)
        kwargs.setdefault("archive", archive)
        session = GameSession(state, sink, word_source, **kwargs)
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        await session.close()


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
async def registry(hub, word_source, stats, archive):
    reg = SessionRegistry(sink=hub, word_source=word_source, stats=stats, archive=archive)
    yield reg
    await reg.shutdown()


@pytest.fixture
def message_router(registry, hub):
    return MessageRouter(registry, hub)


@pytest.fixture
def mock_connection():
    return MockConnection()
