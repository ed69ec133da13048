"""
Single-shot countdown backed by an asyncio task.

Starting a countdown always cancels the one already running, so at most
one task exists per CountdownTimer. An optional tick callback is awaited
every tick_seconds with the whole seconds left before expiry.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = structlog.get_logger()


class CountdownTimer:
    def __init__(self, name: str) -> None:
        self.name = name
        self._active_task: asyncio.Task[None] | None = None
        self._expires_at: float | None = None

    @property
    def active(self) -> bool:
        return self._active_task is not None and not self._active_task.done()

    @property
    def remaining(self) -> float:
        """Seconds left before expiry, 0 when idle."""
        if self._expires_at is None or not self.active:
            return 0.0
        return max(0.0, self._expires_at - time.monotonic())

    def start(
        self,
        seconds: float,
        on_expire: Callable[[], Awaitable[None]],
        *,
        on_tick: Callable[[int], Awaitable[None]] | None = None,
        tick_seconds: float = 0,
    ) -> None:
        """Start the countdown, replacing any countdown already running."""
        self.cancel()
        self._expires_at = time.monotonic() + seconds
        self._active_task = asyncio.create_task(
            self._run_timer(seconds, on_expire, on_tick, tick_seconds),
            name=f"timer:{self.name}",
        )

    def cancel(self) -> None:
        """
        Cancel the running countdown.

        A callback running inside the timer task may re-arm or release its
        own timer; in that case the reference is dropped but the task is
        left alone so the callback can finish.
        """
        task = self._active_task
        self._active_task = None
        self._expires_at = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run_timer(
        self,
        seconds: float,
        on_expire: Callable[[], Awaitable[None]],
        on_tick: Callable[[int], Awaitable[None]] | None,
        tick_seconds: float,
    ) -> None:
        try:
            remaining = seconds
            if on_tick is not None and tick_seconds > 0:
                while remaining > tick_seconds:
                    await asyncio.sleep(tick_seconds)
                    remaining -= tick_seconds
                    await on_tick(math.ceil(remaining))
            await asyncio.sleep(remaining)
            await on_expire()
        except asyncio.CancelledError:
            pass
        except (RuntimeError, OSError, ConnectionError, ValueError):  # fmt: skip
            logger.exception("timer callback failed", timer=self.name)
