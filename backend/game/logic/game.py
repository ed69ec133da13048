"""
Game initialization and abandonment.
"""

from __future__ import annotations

import random

import structlog

from game.logic.events import GameAbandonedEvent, GameEvent, GameStartedEvent, WordSelectionStartedEvent
from game.logic.exceptions import InsufficientPlayersError, InvalidPhaseError, TooManyPlayersError
from game.logic.settings import GameSettings
from game.logic.state import GameState, PlayerState

logger = structlog.get_logger()


def validate_participants(participant_ids: list[str], settings: GameSettings) -> list[str]:
    """
    Return the participant ids with duplicates removed, preserving order.

    Raises:
        InsufficientPlayersError: If fewer than settings.min_players remain
        TooManyPlayersError: If more than settings.max_players remain

    """
    unique = list(dict.fromkeys(pid for pid in participant_ids if pid))
    if len(unique) < settings.min_players:
        raise InsufficientPlayersError(f"need at least {settings.min_players} players, got {len(unique)}")
    if len(unique) > settings.max_players:
        raise TooManyPlayersError(f"at most {settings.max_players} players allowed, got {len(unique)}")
    return unique


def init_game(
    session_id: str,
    room_id: str,
    participant_ids: list[str],
    settings: GameSettings | None = None,
    rng: random.Random | None = None,
) -> tuple[GameState, list[GameEvent]]:
    """
    Create the initial state for a new game.

    The turn order is shuffled once and stays fixed for the whole game;
    its first entry is the word-master of round one. The game starts in
    WORD_SELECTION with nobody holding the turn.
    """
    game_settings = settings or GameSettings()
    participants = validate_participants(participant_ids, game_settings)

    turn_order = list(participants)
    (rng or random.Random()).shuffle(turn_order)  # noqa: S311

    state = GameState(
        session_id=session_id,
        room_id=room_id,
        settings=game_settings,
        total_rounds=game_settings.total_rounds,
        turn_order=tuple(turn_order),
        word_master_id=turn_order[0],
        players=tuple(PlayerState(participant_id=pid) for pid in participants),
        max_incorrect=game_settings.max_incorrect_guesses,
        hints_remaining=game_settings.max_hints,
    )
    logger.info("game created", session_id=session_id, room_id=room_id, turn_order=turn_order)
    return state, [
        GameStartedEvent(
            session_id=session_id,
            room_id=room_id,
            turn_order=turn_order,
            total_rounds=state.total_rounds,
            max_incorrect=state.max_incorrect,
        ),
        WordSelectionStartedEvent(
            session_id=session_id,
            round_index=state.round_index,
            total_rounds=state.total_rounds,
            word_master_id=state.word_master_id,
        ),
    ]


def abandon_game(state: GameState) -> tuple[GameState, list[GameEvent]]:
    """
    Mark the game abandoned after every participant dropped out.

    Raises:
        InvalidPhaseError: If the game has already finished

    """
    if state.is_terminal:
        raise InvalidPhaseError("game has already finished")
    new_state = state.model_copy(
        update={
            "abandoned": True,
            "current_turn_player_id": None,
            "turn_number": state.turn_number + 1,
            "turn_deadline": None,
        },
    )
    logger.warning("game abandoned", session_id=state.session_id, status=state.status.value)
    return new_state, [
        GameAbandonedEvent(session_id=state.session_id, status=state.status, round_index=state.round_index),
    ]
