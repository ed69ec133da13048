"""Turn countdown for one session."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from game.logic.enums import SessionStatus
from game.session.timers import CountdownTimer

if TYPE_CHECKING:
    from game.logic.state import GameState

logger = structlog.get_logger()

# (turn_number) -> Awaitable[None]
TurnExpiredCallback = Callable[[int], Awaitable[None]]
# (turn_number, seconds_left) -> Awaitable[None]
TurnTickCallback = Callable[[int, int], Awaitable[None]]


class TurnScheduler:
    """
    Own the single turn countdown of a session.

    The countdown is tagged with the turn_number it was armed for. The
    scheduler never reads or writes session state itself: the session
    calls sync() after each committed mutation and routes firings back
    through its own serialized entry point, where stale turn numbers are
    discarded.
    """

    def __init__(
        self,
        session_id: str,
        on_expired: TurnExpiredCallback,
        on_tick: TurnTickCallback | None = None,
    ) -> None:
        self._timer = CountdownTimer(f"turn:{session_id}")
        self._on_expired = on_expired
        self._on_tick = on_tick
        self.armed_turn: int | None = None

    @property
    def active(self) -> bool:
        return self._timer.active

    def arm(self, turn_number: int, seconds: float, tick_seconds: float = 0) -> None:
        """Start the countdown for turn_number, cancelling the previous one."""
        self.armed_turn = turn_number
        on_tick = None
        if self._on_tick is not None and tick_seconds > 0:
            on_tick = lambda left, n=turn_number: self._on_tick(n, left)  # noqa: E731
        self._timer.start(
            seconds,
            lambda n=turn_number: self._on_expired(n),
            on_tick=on_tick,
            tick_seconds=tick_seconds,
        )

    def cancel(self) -> None:
        self.armed_turn = None
        self._timer.cancel()

    def sync(self, state: GameState) -> None:
        """Arm or release the countdown so it matches the committed state."""
        if state.status != SessionStatus.IN_PROGRESS or state.current_turn_player_id is None:
            if self.armed_turn is not None:
                self.cancel()
            return
        if self.armed_turn == state.turn_number and self._timer.active:
            return
        settings = state.settings
        self.arm(state.turn_number, settings.turn_seconds, settings.tick_seconds)
        logger.debug(
            "turn timer armed",
            turn_number=state.turn_number,
            player=state.current_turn_player_id,
            seconds=settings.turn_seconds,
        )
