"""
Round lifecycle: word capture, letter guesses, hints, resolution and rollover.

Each transition takes a GameState and returns the new state together with
the domain events it produced. Validation happens before anything is
copied, so a rejected call leaves the caller's state untouched.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict

from game.logic.enums import SessionStatus
from game.logic.events import (
    GameEndedEvent,
    GameEvent,
    HintIssuedEvent,
    LetterResultEvent,
    PlayerStanding,
    RoundEndedEvent,
    ScoreUpdateEvent,
    WordMaskUpdateEvent,
    WordSelectionStartedEvent,
    WordSetEvent,
    player_scores,
)
from game.logic.exceptions import (
    InvalidLetterError,
    InvalidPhaseError,
    LetterAlreadyGuessedError,
    NoEligiblePlayersError,
    NoHintsRemainingError,
    NotFoundError,
    NotWordMasterError,
    NotYourTurnError,
)
from game.logic.scoring import ScoreDeltas, guess_deltas, hint_deltas
from game.logic.state import GameState, PlayerState, RoundSummary
from game.logic.state_utils import apply_score_deltas, update_player
from game.logic.turn import advance_turn, assign_turn, next_eligible_player
from game.logic.words import is_word_complete, letter_positions, mask_word, normalize_letter, word_length

logger = structlog.get_logger()


class GuessOutcome(BaseModel):
    """Result of a single letter guess, returned to the guesser."""

    model_config = ConfigDict(frozen=True)

    letter: str
    correct: bool
    revealed_positions: list[int]
    word_complete: bool
    incorrect_budget_exhausted: bool


def begin_round(
    state: GameState,
    word: str,
    category: str,
    now: float,
    *,
    auto_selected: bool = False,
) -> tuple[GameState, list[GameEvent]]:
    """
    Capture the secret word and hand the first turn to a guesser.

    The word is expected to be normalized and already checked by the caller.

    Raises:
        InvalidPhaseError: If the session is not waiting for a word
        NoEligiblePlayersError: If no guesser is connected

    """
    if state.status != SessionStatus.WORD_SELECTION:
        raise InvalidPhaseError(f"cannot set a word during {state.status.value}")
    first = next_eligible_player(state, state.word_master_id)
    if first is None:
        raise NoEligiblePlayersError("no connected guesser can take a turn")

    new_state = state.model_copy(
        update={
            "status": SessionStatus.IN_PROGRESS,
            "secret_word": word,
            "word_length": word_length(word),
            "category": category,
            "guessed_letters": (),
            "correct_letters": (),
            "incorrect_letters": (),
            "incorrect_count": 0,
            "hints": (),
            "hints_remaining": state.settings.max_hints,
            "round_winner_id": None,
        },
    )
    new_state = assign_turn(new_state, first, now)
    logger.info(
        "round started",
        session_id=state.session_id,
        round_index=state.round_index,
        word_master=state.word_master_id,
        first_player=first,
    )
    return new_state, [
        WordSetEvent(
            session_id=state.session_id,
            word_length=new_state.word_length,
            category=category,
            masked_word=mask_word(word, ()),
            current_turn_player_id=first,
            turn_deadline=new_state.turn_deadline,
            auto_selected=auto_selected,
        ),
    ]


def _check_guess(state: GameState, participant_id: str, letter: str) -> str:
    if not state.is_participant(participant_id):
        raise NotFoundError(f"participant {participant_id} is not in session {state.session_id}")
    if state.status != SessionStatus.IN_PROGRESS:
        raise InvalidPhaseError(f"cannot guess during {state.status.value}")
    if participant_id == state.word_master_id:
        raise NotYourTurnError("the word master cannot guess")
    if participant_id != state.current_turn_player_id:
        raise NotYourTurnError("it is not your turn")
    try:
        normalized = normalize_letter(letter)
    except ValueError as e:
        raise InvalidLetterError(str(e)) from e
    if normalized in state.guessed_letters:
        raise LetterAlreadyGuessedError(f"letter {normalized!r} was already guessed")
    return normalized


def guess_letter(
    state: GameState,
    participant_id: str,
    letter: str,
    now: float,
) -> tuple[GameState, GuessOutcome, list[GameEvent]]:
    """
    Apply one letter guess from the current-turn player.

    Word completion is checked before budget exhaustion; either one closes
    the round, otherwise the turn moves on.
    """
    letter = _check_guess(state, participant_id, letter)
    word = state.secret_word or ""
    positions = letter_positions(word, letter)
    correct = bool(positions)

    player = state.get_player(participant_id)
    if player is None:  # pragma: no cover - checked above
        raise NotFoundError(participant_id)
    new_state = state.model_copy(
        update={
            "guessed_letters": (*state.guessed_letters, letter),
            "correct_letters": (*state.correct_letters, letter) if correct else state.correct_letters,
            "incorrect_letters": state.incorrect_letters if correct else (*state.incorrect_letters, letter),
            "incorrect_count": state.incorrect_count + (0 if correct else 1),
        },
    )
    new_state = update_player(
        new_state,
        participant_id,
        correct_guess_count=player.correct_guess_count + (1 if correct else 0),
        wrong_guess_count=player.wrong_guess_count + (0 if correct else 1),
    )

    complete = is_word_complete(word, new_state.correct_letters)
    exhausted = not complete and new_state.incorrect_count >= new_state.max_incorrect
    deltas = guess_deltas(
        participant_id,
        state.word_master_id,
        correct=correct,
        word_complete=complete,
        budget_exhausted=exhausted,
    )
    new_state = apply_score_deltas(new_state, deltas)

    events: list[GameEvent] = [
        LetterResultEvent(
            session_id=state.session_id,
            letter=letter,
            correct=correct,
            positions=positions,
            guessed_by=participant_id,
        ),
        WordMaskUpdateEvent(
            session_id=state.session_id,
            masked_word=mask_word(word, new_state.correct_letters),
            incorrect_count=new_state.incorrect_count,
            max_incorrect=new_state.max_incorrect,
            guessed_letters=list(new_state.guessed_letters),
        ),
        score_update(new_state, deltas),
    ]

    if complete:
        new_state, round_events = close_round(new_state, solved=True, winner_id=participant_id)
    elif exhausted:
        new_state, round_events = close_round(new_state, solved=False, winner_id=state.word_master_id)
    else:
        new_state, round_events = advance_turn(new_state, now)
    events.extend(round_events)

    outcome = GuessOutcome(
        letter=letter,
        correct=correct,
        revealed_positions=positions,
        word_complete=complete,
        incorrect_budget_exhausted=exhausted,
    )
    return new_state, outcome, events


def send_hint(state: GameState, participant_id: str, text: str) -> tuple[GameState, list[GameEvent]]:
    """
    Publish a hint from the word-master at the cost of HINT_COST points.

    Raises:
        NotFoundError: If the caller is not a participant
        NotWordMasterError: If the caller is not the word-master
        InvalidPhaseError: If no round is in progress
        NoHintsRemainingError: If the hint budget is spent

    """
    if not state.is_participant(participant_id):
        raise NotFoundError(f"participant {participant_id} is not in session {state.session_id}")
    if participant_id != state.word_master_id:
        raise NotWordMasterError("only the word master can send hints")
    if state.status != SessionStatus.IN_PROGRESS:
        raise InvalidPhaseError(f"cannot send a hint during {state.status.value}")
    if state.hints_remaining <= 0:
        raise NoHintsRemainingError("no hints remaining this round")

    hint = " ".join(text.split())[: state.settings.max_hint_length]
    new_state = state.model_copy(
        update={
            "hints": (*state.hints, hint),
            "hints_remaining": state.hints_remaining - 1,
        },
    )
    deltas = hint_deltas(participant_id)
    new_state = apply_score_deltas(new_state, deltas)
    return new_state, [
        HintIssuedEvent(
            session_id=state.session_id,
            hint=hint,
            hints_remaining=new_state.hints_remaining,
            sent_by=participant_id,
        ),
        score_update(new_state, deltas),
    ]


def score_update(state: GameState, deltas: ScoreDeltas) -> ScoreUpdateEvent:
    return ScoreUpdateEvent(session_id=state.session_id, deltas=deltas, players=player_scores(state.players))


def close_round(
    state: GameState,
    *,
    solved: bool,
    winner_id: str | None,
) -> tuple[GameState, list[GameEvent]]:
    """Move to ROUND_END, append the round summary and reveal the word."""
    summary = RoundSummary(
        round=state.round_index,
        word=state.secret_word or "",
        word_master_id=state.word_master_id,
        winner_id=winner_id,
        solved=solved,
        incorrect_count=state.incorrect_count,
    )
    new_state = state.model_copy(
        update={
            "status": SessionStatus.ROUND_END,
            "round_winner_id": winner_id,
            "round_history": (*state.round_history, summary),
            "current_turn_player_id": None,
            "turn_number": state.turn_number + 1,
            "turn_deadline": None,
        },
    )
    logger.info(
        "round ended",
        session_id=state.session_id,
        round_index=state.round_index,
        solved=solved,
        winner=winner_id,
    )
    return new_state, [
        RoundEndedEvent(
            session_id=state.session_id,
            round_index=state.round_index,
            total_rounds=state.total_rounds,
            word=summary.word,
            solved=solved,
            round_winner_id=winner_id,
            word_master_id=state.word_master_id,
            players=player_scores(new_state.players),
        ),
    ]


def is_last_round(state: GameState) -> bool:
    return state.round_index >= state.total_rounds


def next_word_master(state: GameState) -> str:
    """The participant one position after the current word-master, wrapping."""
    order = state.turn_order
    return order[(order.index(state.word_master_id) + 1) % len(order)]


def advance_round(state: GameState) -> tuple[GameState, list[GameEvent]]:
    """
    Rotate the word-master and return to WORD_SELECTION for the next round.

    Raises:
        InvalidPhaseError: If the round has not ended or it was the last one

    """
    if state.status != SessionStatus.ROUND_END or is_last_round(state):
        raise InvalidPhaseError("no next round to start")

    word_master = next_word_master(state)
    new_state = state.model_copy(
        update={
            "status": SessionStatus.WORD_SELECTION,
            "round_index": state.round_index + 1,
            "word_master_id": word_master,
            "secret_word": None,
            "word_length": 0,
            "category": "all",
            "guessed_letters": (),
            "correct_letters": (),
            "incorrect_letters": (),
            "incorrect_count": 0,
            "hints": (),
            "hints_remaining": state.settings.max_hints,
            "round_winner_id": None,
        },
    )
    return new_state, [
        WordSelectionStartedEvent(
            session_id=state.session_id,
            round_index=new_state.round_index,
            total_rounds=new_state.total_rounds,
            word_master_id=word_master,
        ),
    ]


def rank_players(state: GameState) -> list[PlayerState]:
    """
    Order players best first.

    Higher score wins; ties go to whoever reached their score earliest,
    then to the earlier position in the turn order.
    """
    position = {pid: i for i, pid in enumerate(state.turn_order)}
    return sorted(
        state.players,
        key=lambda p: (-p.score, p.last_scored_at, position.get(p.participant_id, len(position))),
    )


def finalize_game(state: GameState) -> tuple[GameState, list[GameEvent]]:
    """
    Rank players, declare the winner and move to GAME_OVER.

    Raises:
        InvalidPhaseError: If the last round has not ended

    """
    if state.status != SessionStatus.ROUND_END:
        raise InvalidPhaseError(f"cannot finish the game during {state.status.value}")

    ranking = rank_players(state)
    winner = ranking[0].participant_id
    new_state = state.model_copy(
        update={
            "status": SessionStatus.GAME_OVER,
            "game_winner_id": winner,
            "secret_word": None,
        },
    )
    standings = [
        PlayerStanding(
            rank=i + 1,
            participant_id=p.participant_id,
            score=p.score,
            correct_guess_count=p.correct_guess_count,
            wrong_guess_count=p.wrong_guess_count,
        )
        for i, p in enumerate(ranking)
    ]
    logger.info("game over", session_id=state.session_id, winner=winner, rounds=len(state.round_history))
    return new_state, [
        GameEndedEvent(
            session_id=state.session_id,
            winner_id=winner,
            standings=standings,
            round_history=list(new_state.round_history),
        ),
    ]
