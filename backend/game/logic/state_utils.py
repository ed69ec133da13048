"""
Immutable state update utilities using Pydantic model_copy.

These helpers never mutate the input state - they always return new
state objects with the requested changes applied.
"""

from game.logic.exceptions import NotFoundError
from game.logic.scoring import ScoreDeltas
from game.logic.state import GameState


def update_player(
    state: GameState,
    participant_id: str,
    **updates: object,
) -> GameState:
    """
    Return new state with the participant's PlayerState updated.

    Raises:
        NotFoundError: If the participant is not part of the session

    """
    players = list(state.players)
    for i, player in enumerate(players):
        if player.participant_id == participant_id:
            players[i] = player.model_copy(update=updates)
            return state.model_copy(update={"players": tuple(players)})
    raise NotFoundError(f"participant {participant_id} is not in session {state.session_id}")


def apply_score_deltas(state: GameState, deltas: ScoreDeltas) -> GameState:
    """
    Return new state with every delta added to its participant's score.

    All deltas land in one snapshot, stamped with the state's sequence
    so tie-breaks can tell who reached a score first.
    """
    if not deltas:
        return state
    players = tuple(
        player.model_copy(
            update={
                "score": player.score + deltas[player.participant_id],
                "last_scored_at": state.sequence,
            },
        )
        if player.participant_id in deltas
        else player
        for player in state.players
    )
    return state.model_copy(update={"players": players})


def advance_sequence(state: GameState) -> GameState:
    """Return new state with the mutation counter bumped."""
    return state.model_copy(update={"sequence": state.sequence + 1})
