"""Round rollover, game finalization and the terminal hand-off."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from game.logic.enums import SessionStatus
from game.logic.round import advance_round, finalize_game, is_last_round
from game.session.results import GameSummary, build_game_summary
from game.session.timers import CountdownTimer

if TYPE_CHECKING:
    from game.logic.events import GameEvent
    from game.logic.state import GameState
    from game.session.results import GameArchive, StatsRecorder

logger = structlog.get_logger()

# (round_index) -> Awaitable[None]
SettleCallback = Callable[[int], Awaitable[None]]


class RoundLifecycleCoordinator:
    """
    Drive a session from ROUND_END to the next round or to GAME_OVER.

    Owns the settle timer. Like the turn scheduler it only arms timers;
    the expiry is routed back through the session's serialized entry
    point, which calls conclude_round() under the session lock.
    """

    def __init__(
        self,
        session_id: str,
        on_settled: SettleCallback,
        stats: StatsRecorder | None = None,
        archive: GameArchive | None = None,
    ) -> None:
        self._session_id = session_id
        self._on_settled = on_settled
        self._stats = stats
        self._archive = archive
        self._timer = CountdownTimer(f"settle:{session_id}")
        self.armed_round: int | None = None

    @property
    def active(self) -> bool:
        return self._timer.active

    def sync(self, state: GameState) -> None:
        """Arm the settle timer once per ended round; release it otherwise."""
        if state.status != SessionStatus.ROUND_END or state.is_terminal:
            self.cancel()
            return
        if self.armed_round == state.round_index:
            return
        self.armed_round = state.round_index
        self._timer.start(
            state.settings.settle_seconds,
            lambda n=state.round_index: self._on_settled(n),
        )

    def cancel(self) -> None:
        self.armed_round = None
        self._timer.cancel()

    def conclude_round(self, state: GameState) -> tuple[GameState, list[GameEvent]]:
        """Start the next round, or finish the game after the last one."""
        if is_last_round(state):
            return finalize_game(state)
        return advance_round(state)

    async def hand_off(self, state: GameState) -> GameSummary:
        """
        Forward the terminal summary to the stats and archive collaborators.

        Failures are logged and swallowed; the session is torn down either way.
        """
        summary = build_game_summary(state)
        if self._stats is not None and not summary.abandoned:
            try:
                await self._stats.record_game(summary)
            except Exception:
                logger.exception("failed to record game stats", session_id=self._session_id)
        if self._archive is not None:
            try:
                await self._archive.archive_game(summary)
            except Exception:
                logger.exception("failed to archive game", session_id=self._session_id)
        logger.info(
            "game handed off",
            session_id=self._session_id,
            winner=summary.winner_id,
            abandoned=summary.abandoned,
        )
        return summary
