"""Per-viewer redacted projection of the session state."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from game.logic.enums import ConnectionState, SessionStatus
from game.logic.state import GameState, RoundSummary
from game.logic.words import mask_word


class PlayerView(BaseModel):
    model_config = ConfigDict(frozen=True)

    participant_id: str
    score: int
    connection: ConnectionState
    is_word_master: bool
    is_current_turn: bool


class SessionView(BaseModel):
    """What a single participant is allowed to see."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    room_id: str
    status: SessionStatus
    round_index: int
    total_rounds: int
    turn_order: list[str]
    word_master_id: str
    masked_word: str
    word_length: int
    category: str
    secret_word: str | None = None
    guessed_letters: list[str]
    correct_letters: list[str]
    incorrect_letters: list[str]
    incorrect_count: int
    max_incorrect: int
    hints: list[str]
    hints_remaining: int
    current_turn_player_id: str | None
    turn_number: int
    turn_deadline: float | None
    round_winner_id: str | None
    game_winner_id: str | None
    players: list[PlayerView]
    round_history: list[RoundSummary]


def can_see_secret(state: GameState, viewer_id: str | None) -> bool:
    """Only the word-master sees the word, and not before it has been set."""
    return viewer_id == state.word_master_id and state.status != SessionStatus.WORD_SELECTION


def build_view(state: GameState, viewer_id: str | None = None) -> SessionView:
    """
    Build the redacted view of the state for the given viewer.

    A viewer of None gets the fully public projection. Completed rounds
    in round_history always carry their word, since it was revealed by
    the round-ended notification.
    """
    return SessionView(
        session_id=state.session_id,
        room_id=state.room_id,
        status=state.status,
        round_index=state.round_index,
        total_rounds=state.total_rounds,
        turn_order=list(state.turn_order),
        word_master_id=state.word_master_id,
        masked_word=mask_word(state.secret_word, state.correct_letters),
        word_length=state.word_length,
        category=state.category,
        secret_word=state.secret_word if can_see_secret(state, viewer_id) else None,
        guessed_letters=list(state.guessed_letters),
        correct_letters=list(state.correct_letters),
        incorrect_letters=list(state.incorrect_letters),
        incorrect_count=state.incorrect_count,
        max_incorrect=state.max_incorrect,
        hints=list(state.hints),
        hints_remaining=state.hints_remaining,
        current_turn_player_id=state.current_turn_player_id,
        turn_number=state.turn_number,
        turn_deadline=state.turn_deadline,
        round_winner_id=state.round_winner_id,
        game_winner_id=state.game_winner_id,
        players=[
            PlayerView(
                participant_id=p.participant_id,
                score=p.score,
                connection=p.connection,
                is_word_master=p.participant_id == state.word_master_id,
                is_current_turn=p.participant_id == state.current_turn_player_id,
            )
            for p in state.players
        ],
        round_history=list(state.round_history),
    )
