"""
Turn rotation for the guessing phase.

Eligibility is "not the word-master and connected". Rotation scans the
turn order starting just after the current player and wraps once, so the
current player is the last candidate considered.
"""

from __future__ import annotations

import structlog

from game.logic.enums import SessionStatus, SkipReason
from game.logic.events import GameEvent, TurnChangedEvent, TurnSkippedEvent
from game.logic.exceptions import InvalidPhaseError
from game.logic.state import GameState

logger = structlog.get_logger()


def next_eligible_player(state: GameState, after: str | None = None) -> str | None:
    """
    Return the next participant that may take a turn, or None.

    Scanning starts after `after` (the word-master when omitted or not in
    the turn order) and wraps around exactly once.
    """
    order = state.turn_order
    anchor = after if after in order else state.word_master_id
    start = order.index(anchor)
    for offset in range(1, len(order) + 1):
        candidate = order[(start + offset) % len(order)]
        if state.is_eligible(candidate):
            return candidate
    return None


def assign_turn(state: GameState, player_id: str | None, now: float) -> GameState:
    """
    Hand the turn to player_id (or pause when None).

    Every assignment bumps turn_number so timer firings armed for an
    earlier turn can be recognized as stale.
    """
    deadline = now + state.settings.turn_seconds if player_id is not None else None
    return state.model_copy(
        update={
            "current_turn_player_id": player_id,
            "turn_number": state.turn_number + 1,
            "turn_deadline": deadline,
        },
    )


def turn_changed(state: GameState) -> TurnChangedEvent:
    return TurnChangedEvent(
        session_id=state.session_id,
        current_turn_player_id=state.current_turn_player_id,
        turn_number=state.turn_number,
        turn_deadline=state.turn_deadline,
    )


def advance_turn(state: GameState, now: float) -> tuple[GameState, list[GameEvent]]:
    """Move the turn to the next eligible guesser after the current one."""
    next_player = next_eligible_player(state, state.current_turn_player_id)
    new_state = assign_turn(state, next_player, now)
    if next_player is None:
        logger.info("no eligible guesser, round paused", session_id=state.session_id)
    return new_state, [turn_changed(new_state)]


def skip_turn(state: GameState, reason: SkipReason, now: float) -> tuple[GameState, list[GameEvent]]:
    """
    Forfeit the current player's turn without a guess or a score change.

    Raises:
        InvalidPhaseError: If no round is in progress or nobody holds the turn

    """
    skipped = state.current_turn_player_id
    if state.status != SessionStatus.IN_PROGRESS or skipped is None:
        raise InvalidPhaseError("no turn to skip")

    new_state, events = advance_turn(state, now)
    skipped_event = TurnSkippedEvent(
        session_id=state.session_id,
        reason=reason,
        skipped_player_id=skipped,
        next_turn_player_id=new_state.current_turn_player_id,
    )
    logger.info(
        "turn skipped",
        session_id=state.session_id,
        reason=reason.value,
        skipped=skipped,
        next_player=new_state.current_turn_player_id,
    )
    return new_state, [skipped_event, *events]


def resume_turn(state: GameState, participant_id: str, now: float) -> tuple[GameState, list[GameEvent]]:
    """Give a paused round's turn to a guesser who has just become eligible."""
    if not state.is_paused or not state.is_eligible(participant_id):
        return state, []
    new_state = assign_turn(state, participant_id, now)
    logger.info("round resumed", session_id=state.session_id, participant_id=participant_id)
    return new_state, [turn_changed(new_state)]
