"""Grace-period timers for participants whose transport dropped."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from game.session.timers import CountdownTimer

logger = structlog.get_logger()

# (participant_id, generation) -> Awaitable[None]
GraceExpiredCallback = Callable[[str, int], Awaitable[None]]


class DisconnectionMonitor:
    """
    Track one grace timer per participant of a session.

    Each timer carries a generation number. A reconnect or a fresh
    disconnect bumps the generation, so a firing that lost the race
    against it is recognized as stale by is_current().
    """

    def __init__(self, session_id: str, on_expired: GraceExpiredCallback) -> None:
        self._session_id = session_id
        self._on_expired = on_expired
        self._timers: dict[str, CountdownTimer] = {}
        self._generations: dict[str, int] = {}

    def is_pending(self, participant_id: str) -> bool:
        timer = self._timers.get(participant_id)
        return timer is not None and timer.active

    @property
    def pending_count(self) -> int:
        return sum(1 for timer in self._timers.values() if timer.active)

    def start_grace(self, participant_id: str, seconds: float) -> int | None:
        """
        Arm the grace timer for participant_id and return its generation.

        Returns None without touching the running timer when one is
        already armed for this participant.
        """
        if self.is_pending(participant_id):
            return None
        generation = self._generations.get(participant_id, 0) + 1
        self._generations[participant_id] = generation
        timer = self._timers.setdefault(participant_id, CountdownTimer(f"grace:{self._session_id}:{participant_id}"))
        timer.start(seconds, lambda pid=participant_id, g=generation: self._on_expired(pid, g))
        logger.debug("grace timer armed", participant_id=participant_id, generation=generation, seconds=seconds)
        return generation

    def cancel_grace(self, participant_id: str) -> bool:
        """Cancel the participant's grace timer; True if one was running."""
        self._generations[participant_id] = self._generations.get(participant_id, 0) + 1
        timer = self._timers.get(participant_id)
        if timer is None or not timer.active:
            return False
        timer.cancel()
        return True

    def is_current(self, participant_id: str, generation: int) -> bool:
        return self._generations.get(participant_id) == generation

    def release(self, participant_id: str) -> None:
        """Forget the participant's timer once its expiry has been handled."""
        timer = self._timers.pop(participant_id, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
