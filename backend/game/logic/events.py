"""Outbound notification models and the service event transport container.

Domain event classes are the canonical notification types produced by the
engine. ServiceEvent wraps one of them with a typed routing target so the
broadcast collaborator knows whether to fan it out to the whole session or
deliver it to a single participant.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from game.logic.enums import ConnectionState, SessionStatus, SkipReason  # noqa: TC001
from game.logic.state import RoundSummary  # noqa: TC001
from game.logic.view import SessionView  # noqa: TC001

# ---------------------------------------------------------------------------
# Typed routing targets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BroadcastTarget:
    """Event should be sent to every participant of the session."""


@dataclass(frozen=True)
class ParticipantTarget:
    """Event should be sent to one participant only."""

    participant_id: str


EventTarget = BroadcastTarget | ParticipantTarget


# ---------------------------------------------------------------------------
# Event type enum
# ---------------------------------------------------------------------------


class EventType(StrEnum):
    """Types of outbound notifications."""

    GAME_STARTED = "game-started"
    WORD_SELECTION_STARTED = "word-selection-started"
    WORD_SET = "word-set"
    LETTER_RESULT = "letter-result"
    WORD_MASK_UPDATE = "word-mask-update"
    SCORE_UPDATE = "score-update"
    TURN_CHANGED = "turn-changed"
    TURN_TIMER_TICK = "turn-timer-tick"
    TURN_SKIPPED = "turn-skipped"
    HINT_ISSUED = "hint-issued"
    ROUND_ENDED = "round-ended"
    GAME_ENDED = "game-ended"
    GAME_ABANDONED = "game-abandoned"
    PLAYER_DISCONNECTED = "player-disconnected"
    PLAYER_RECONNECTED = "player-reconnected"
    SESSION_STATE = "session-state"


# ---------------------------------------------------------------------------
# Shared payload pieces
# ---------------------------------------------------------------------------


class PlayerScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    participant_id: str
    score: int
    connection: ConnectionState


class PlayerStanding(BaseModel):
    """Final ranking entry."""

    model_config = ConfigDict(frozen=True)

    rank: int
    participant_id: str
    score: int
    correct_guess_count: int
    wrong_guess_count: int


# ---------------------------------------------------------------------------
# Domain event models
# ---------------------------------------------------------------------------


class GameEvent(BaseModel):
    """Base class for all outbound notifications."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    session_id: str


class GameStartedEvent(GameEvent):
    type: Literal[EventType.GAME_STARTED] = EventType.GAME_STARTED
    room_id: str
    turn_order: list[str]
    total_rounds: int
    max_incorrect: int


class WordSelectionStartedEvent(GameEvent):
    """A new round is waiting for the word-master's word."""

    type: Literal[EventType.WORD_SELECTION_STARTED] = EventType.WORD_SELECTION_STARTED
    round_index: int
    total_rounds: int
    word_master_id: str


class WordSetEvent(GameEvent):
    """The secret word is fixed; only public metadata is included."""

    type: Literal[EventType.WORD_SET] = EventType.WORD_SET
    word_length: int
    category: str
    masked_word: str
    current_turn_player_id: str | None
    turn_deadline: float | None = None
    auto_selected: bool = False


class LetterResultEvent(GameEvent):
    type: Literal[EventType.LETTER_RESULT] = EventType.LETTER_RESULT
    letter: str
    correct: bool
    positions: list[int]
    guessed_by: str


class WordMaskUpdateEvent(GameEvent):
    type: Literal[EventType.WORD_MASK_UPDATE] = EventType.WORD_MASK_UPDATE
    masked_word: str
    incorrect_count: int
    max_incorrect: int
    guessed_letters: list[str]


class ScoreUpdateEvent(GameEvent):
    type: Literal[EventType.SCORE_UPDATE] = EventType.SCORE_UPDATE
    deltas: dict[str, int]
    players: list[PlayerScore]


class TurnChangedEvent(GameEvent):
    """Turn passed to a new player; current_turn_player_id is None while paused."""

    type: Literal[EventType.TURN_CHANGED] = EventType.TURN_CHANGED
    current_turn_player_id: str | None
    turn_number: int
    turn_deadline: float | None = None


class TurnTimerTickEvent(GameEvent):
    type: Literal[EventType.TURN_TIMER_TICK] = EventType.TURN_TIMER_TICK
    turn_number: int
    seconds_left: int


class TurnSkippedEvent(GameEvent):
    type: Literal[EventType.TURN_SKIPPED] = EventType.TURN_SKIPPED
    reason: SkipReason
    skipped_player_id: str
    next_turn_player_id: str | None


class HintIssuedEvent(GameEvent):
    type: Literal[EventType.HINT_ISSUED] = EventType.HINT_ISSUED
    hint: str
    hints_remaining: int
    sent_by: str


class RoundEndedEvent(GameEvent):
    """Round resolved; this is the first notification that reveals the secret word."""

    type: Literal[EventType.ROUND_ENDED] = EventType.ROUND_ENDED
    round_index: int
    total_rounds: int
    word: str
    solved: bool
    round_winner_id: str | None
    word_master_id: str
    players: list[PlayerScore]


class GameEndedEvent(GameEvent):
    type: Literal[EventType.GAME_ENDED] = EventType.GAME_ENDED
    winner_id: str
    standings: list[PlayerStanding]
    round_history: list[RoundSummary]


class GameAbandonedEvent(GameEvent):
    type: Literal[EventType.GAME_ABANDONED] = EventType.GAME_ABANDONED
    status: SessionStatus
    round_index: int


class PlayerDisconnectedEvent(GameEvent):
    """Sent twice per outage: once when the grace window opens, once if it elapses."""

    type: Literal[EventType.PLAYER_DISCONNECTED] = EventType.PLAYER_DISCONNECTED
    participant_id: str
    connection: ConnectionState
    grace_seconds: float | None = None


class PlayerReconnectedEvent(GameEvent):
    type: Literal[EventType.PLAYER_RECONNECTED] = EventType.PLAYER_RECONNECTED
    participant_id: str


class SessionStateEvent(GameEvent):
    """Redacted full state for a single viewer (sent on reconnect)."""

    type: Literal[EventType.SESSION_STATE] = EventType.SESSION_STATE
    view: SessionView


Event = (
    GameStartedEvent
    | WordSelectionStartedEvent
    | WordSetEvent
    | LetterResultEvent
    | WordMaskUpdateEvent
    | ScoreUpdateEvent
    | TurnChangedEvent
    | TurnTimerTickEvent
    | TurnSkippedEvent
    | HintIssuedEvent
    | RoundEndedEvent
    | GameEndedEvent
    | GameAbandonedEvent
    | PlayerDisconnectedEvent
    | PlayerReconnectedEvent
    | SessionStateEvent
)


# ---------------------------------------------------------------------------
# Service event transport container
# ---------------------------------------------------------------------------


class ServiceEvent(BaseModel):
    """Event transport container for the session layer.

    Uses typed internal targets (BroadcastTarget / ParticipantTarget) for routing.
    """

    model_config = {"arbitrary_types_allowed": True}

    event: EventType
    data: GameEvent
    target: EventTarget = BroadcastTarget()

    @model_validator(mode="after")
    def _ensure_event_matches_data(self) -> ServiceEvent:
        if self.event.value != self.data.type.value:
            raise ValueError(
                f"ServiceEvent.event '{self.event.value}' does not match data.type '{self.data.type.value}'",
            )
        return self


def broadcast(data: GameEvent) -> ServiceEvent:
    """Wrap a domain event for delivery to every participant."""
    return ServiceEvent(event=data.type, data=data, target=BroadcastTarget())


def to_participant(participant_id: str, data: GameEvent) -> ServiceEvent:
    """Wrap a domain event for delivery to a single participant."""
    return ServiceEvent(event=data.type, data=data, target=ParticipantTarget(participant_id=participant_id))


def player_scores(players: tuple) -> list[PlayerScore]:
    """Public score table for the given PlayerState tuple."""
    return [
        PlayerScore(participant_id=p.participant_id, score=p.score, connection=p.connection) for p in players
    ]
