"""
Terminal game summary and the stats / archive collaborators it is handed to.

The engine only depends on the StatsRecorder and GameArchive interfaces.
The in-memory implementations keep all-time, weekly and monthly
leaderboards so the server can run without a database.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from game.logic.state import RoundSummary  # noqa: TC001

if TYPE_CHECKING:
    from game.logic.state import GameState

LeaderboardPeriod = Literal["all-time", "weekly", "monthly"]


class PlayerResult(BaseModel):
    """Per-participant stats delta for one finished game."""

    model_config = ConfigDict(frozen=True)

    participant_id: str
    score_delta: int
    games_played: int = 1
    won: bool
    words_guessed: int
    perfect_rounds: int = 0


class GameSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    room_id: str
    abandoned: bool
    winner_id: str | None
    total_rounds: int
    rounds_played: int
    players: list[PlayerResult]
    round_history: list[RoundSummary]
    finished_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


def build_game_summary(state: GameState) -> GameSummary:
    """
    Collect the hand-off data from a terminal state.

    A perfect round is credited to the solver of a round closed without a
    single incorrect letter.
    """
    perfect: dict[str, int] = {}
    for summary in state.round_history:
        if summary.solved and summary.incorrect_count == 0 and summary.winner_id is not None:
            perfect[summary.winner_id] = perfect.get(summary.winner_id, 0) + 1
    players = [
        PlayerResult(
            participant_id=p.participant_id,
            score_delta=p.score,
            won=p.participant_id == state.game_winner_id,
            words_guessed=p.correct_guess_count,
            perfect_rounds=perfect.get(p.participant_id, 0),
        )
        for p in state.players
    ]
    return GameSummary(
        session_id=state.session_id,
        room_id=state.room_id,
        abandoned=state.abandoned,
        winner_id=state.game_winner_id,
        total_rounds=state.total_rounds,
        rounds_played=len(state.round_history),
        players=players,
        round_history=list(state.round_history),
    )


class StatsRecorder(ABC):
    """Receives per-participant results when a game finishes."""

    @abstractmethod
    async def record_game(self, summary: GameSummary) -> None: ...


class GameArchive(ABC):
    """Receives the full round history of a finished game."""

    @abstractmethod
    async def archive_game(self, summary: GameSummary) -> None: ...


class LeaderboardEntry(BaseModel):
    participant_id: str
    all_time_score: int = 0
    weekly_score: int = 0
    monthly_score: int = 0
    games_played: int = 0
    games_won: int = 0
    words_guessed: int = 0
    perfect_rounds: int = 0
    week_start: datetime
    month_start: datetime
    last_played_at: datetime | None = None

    @property
    def win_rate(self) -> int:
        """Percentage of games won, rounded."""
        if self.games_played == 0:
            return 0
        return round(self.games_won / self.games_played * 100)

    def score_for(self, period: LeaderboardPeriod) -> int:
        if period == "weekly":
            return self.weekly_score
        if period == "monthly":
            return self.monthly_score
        return self.all_time_score


def start_of_week(now: datetime) -> datetime:
    """Midnight of the Monday starting now's week."""
    monday = now - timedelta(days=now.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class InMemoryStatsRecorder(StatsRecorder):
    """Process-local leaderboard with rolling weekly and monthly totals."""

    def __init__(self, clock: type[datetime] = datetime) -> None:
        self._clock = clock
        self._entries: dict[str, LeaderboardEntry] = {}

    def _now(self) -> datetime:
        return self._clock.now(UTC)

    def _entry(self, participant_id: str, now: datetime) -> LeaderboardEntry:
        entry = self._entries.get(participant_id)
        week, month = start_of_week(now), start_of_month(now)
        if entry is None:
            entry = LeaderboardEntry(participant_id=participant_id, week_start=week, month_start=month)
            self._entries[participant_id] = entry
        if entry.week_start < week:
            entry.weekly_score = 0
            entry.week_start = week
        if entry.month_start < month:
            entry.monthly_score = 0
            entry.month_start = month
        return entry

    async def record_game(self, summary: GameSummary) -> None:
        now = self._now()
        for result in summary.players:
            entry = self._entry(result.participant_id, now)
            entry.all_time_score += result.score_delta
            entry.weekly_score += result.score_delta
            entry.monthly_score += result.score_delta
            entry.games_played += result.games_played
            entry.games_won += 1 if result.won else 0
            entry.words_guessed += result.words_guessed
            entry.perfect_rounds += result.perfect_rounds
            entry.last_played_at = now

    def get_entry(self, participant_id: str) -> LeaderboardEntry | None:
        return self._entries.get(participant_id)

    def leaderboard(self, period: LeaderboardPeriod = "all-time", limit: int = 100) -> list[LeaderboardEntry]:
        """Entries ordered by the period's score, stale weekly/monthly totals excluded."""
        now = self._now()
        entries = list(self._entries.values())
        if period == "weekly":
            entries = [e for e in entries if e.week_start >= start_of_week(now)]
        elif period == "monthly":
            entries = [e for e in entries if e.month_start >= start_of_month(now)]
        entries.sort(key=lambda e: e.score_for(period), reverse=True)
        return entries[:limit]

    def rank_of(self, participant_id: str, period: LeaderboardPeriod = "all-time") -> int | None:
        entry = self._entries.get(participant_id)
        if entry is None:
            return None
        score = entry.score_for(period)
        return 1 + sum(1 for e in self.leaderboard(period, limit=len(self._entries)) if e.score_for(period) > score)


class InMemoryGameArchive(GameArchive):
    def __init__(self) -> None:
        self._games: dict[str, GameSummary] = {}

    async def archive_game(self, summary: GameSummary) -> None:
        self._games[summary.session_id] = summary

    def get(self, session_id: str) -> GameSummary | None:
        return self._games.get(session_id)

    def games_for(self, participant_id: str) -> list[GameSummary]:
        return [g for g in self._games.values() if any(p.participant_id == participant_id for p in g.players)]
