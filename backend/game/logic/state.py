"""
Immutable game session state.

GameState is a frozen snapshot. Transitions in game.py, round.py and
turn.py return a new snapshot; the session swaps its reference in one
assignment, so an observer can never see a half-applied event.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from game.logic.enums import ConnectionState, SessionStatus
from game.logic.settings import GameSettings


class PlayerState(BaseModel):
    """Per-participant standing within one session."""

    model_config = ConfigDict(frozen=True)

    participant_id: str
    score: int = 0
    connection: ConnectionState = ConnectionState.CONNECTED
    correct_guess_count: int = 0
    wrong_guess_count: int = 0
    last_scored_at: int = 0  # GameState.sequence of the last score change, for tie-breaks


class RoundSummary(BaseModel):
    """Immutable record of one completed round."""

    model_config = ConfigDict(frozen=True)

    round: int
    word: str
    word_master_id: str
    winner_id: str | None = None
    solved: bool
    incorrect_count: int = 0


class GameState(BaseModel):
    """Full state of one game bound to one room."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    room_id: str
    settings: GameSettings = Field(default_factory=GameSettings)

    status: SessionStatus = SessionStatus.WORD_SELECTION
    round_index: int = 1
    total_rounds: int
    turn_order: tuple[str, ...]
    word_master_id: str
    players: tuple[PlayerState, ...]

    # current round
    secret_word: str | None = None
    word_length: int = 0
    category: str = "all"
    guessed_letters: tuple[str, ...] = ()
    correct_letters: tuple[str, ...] = ()
    incorrect_letters: tuple[str, ...] = ()
    incorrect_count: int = 0
    max_incorrect: int
    hints: tuple[str, ...] = ()
    hints_remaining: int

    # turn tracking
    current_turn_player_id: str | None = None
    turn_number: int = 0  # bumped on every turn assignment; stale timer firings carry an old value
    turn_deadline: float | None = None  # epoch seconds

    # outcomes
    round_winner_id: str | None = None
    game_winner_id: str | None = None
    round_history: tuple[RoundSummary, ...] = ()
    abandoned: bool = False

    sequence: int = 0  # number of applied mutations

    def get_player(self, participant_id: str) -> PlayerState | None:
        for player in self.players:
            if player.participant_id == participant_id:
                return player
        return None

    def is_participant(self, participant_id: str) -> bool:
        return self.get_player(participant_id) is not None

    def is_eligible(self, participant_id: str) -> bool:
        """A participant may receive a turn: not the word-master and connected."""
        if participant_id == self.word_master_id:
            return False
        player = self.get_player(participant_id)
        return player is not None and player.connection == ConnectionState.CONNECTED

    @property
    def is_paused(self) -> bool:
        """Round is active but no guesser is available to take the turn."""
        return self.status == SessionStatus.IN_PROGRESS and self.current_turn_player_id is None

    @property
    def is_terminal(self) -> bool:
        """No further mutation is accepted."""
        return self.status == SessionStatus.GAME_OVER or self.abandoned

    @property
    def all_disconnected(self) -> bool:
        return all(p.connection == ConnectionState.DISCONNECTED for p in self.players)

    def check_invariants(self) -> None:
        """Raise AssertionError if any structural invariant is violated."""
        guessed = set(self.guessed_letters)
        correct = set(self.correct_letters)
        incorrect = set(self.incorrect_letters)
        if len(guessed) != len(self.guessed_letters):
            raise AssertionError(f"duplicate guessed letters: {self.guessed_letters}")
        if correct & incorrect:
            raise AssertionError(f"letters both correct and incorrect: {sorted(correct & incorrect)}")
        if guessed != correct | incorrect:
            raise AssertionError("guessed letters are not the union of correct and incorrect")
        if self.incorrect_count != len(self.incorrect_letters):
            raise AssertionError("incorrect_count does not match incorrect letters")
        if self.incorrect_count > self.max_incorrect:
            raise AssertionError(f"incorrect_count {self.incorrect_count} exceeds {self.max_incorrect}")
        if self.word_master_id not in self.turn_order:
            raise AssertionError(f"word master {self.word_master_id} not in turn order")
        current = self.current_turn_player_id
        if current is not None:
            if current == self.word_master_id or current not in self.turn_order:
                raise AssertionError(f"invalid current turn player {current}")
            player = self.get_player(current)
            if player is None or player.connection == ConnectionState.DISCONNECTED:
                raise AssertionError(f"current turn player {current} is disconnected")
        if self.hints_remaining < 0:
            raise AssertionError("hints_remaining is negative")
        completed = self.round_index - 1
        if self.status in (SessionStatus.ROUND_END, SessionStatus.GAME_OVER):
            completed = self.round_index
        if len(self.round_history) != completed:
            raise AssertionError(f"round_history has {len(self.round_history)} entries, expected {completed}")
        if self.status == SessionStatus.GAME_OVER and self.game_winner_id is None:
            raise AssertionError("game over without a winner")
