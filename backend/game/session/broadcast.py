"""Broadcast collaborator interface for session notifications."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from game.logic.events import ServiceEvent


class EventSink(ABC):
    """
    Fan-out gateway for a session's outbound notifications.

    publish() is awaited while the session lock is held, so delivery
    order matches mutation order. Implementations must not call back
    into the session.
    """

    @abstractmethod
    async def publish(self, session_id: str, events: list[ServiceEvent]) -> None: ...


class NullEventSink(EventSink):
    """Drops every notification."""

    async def publish(self, session_id: str, events: list[ServiceEvent]) -> None:
        return None
