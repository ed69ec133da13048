"""Connection bookkeeping and notification fan-out for WebSocket clients."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from game.logic.events import BroadcastTarget, ParticipantTarget
from game.messaging.event_payload import service_event_payload
from game.session.broadcast import EventSink

if TYPE_CHECKING:
    from game.logic.events import ServiceEvent
    from game.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()


@dataclass(frozen=True)
class Binding:
    session_id: str
    participant_id: str


class ConnectionHub(EventSink):
    """
    Track which participant each connection speaks for.

    A participant may hold several connections (e.g. two browser tabs);
    notifications go to all of them. The engine is told about a
    disconnect only when the participant's last connection closes.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionProtocol] = {}
        self._bindings: dict[str, Binding] = {}  # connection_id -> Binding
        self._members: dict[str, dict[str, set[str]]] = {}  # session_id -> participant_id -> connection ids

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def binding_for(self, connection_id: str) -> Binding | None:
        return self._bindings.get(connection_id)

    def bind(self, connection: ConnectionProtocol, participant_id: str) -> Binding | None:
        """
        Attach the connection to a participant of its session.

        A connection speaks for one participant at a time. Returns the binding
        it was switched away from when that participant is left with no live
        connection, otherwise None.
        """
        previous = self._detach(connection.connection_id)
        binding = Binding(session_id=connection.session_id, participant_id=participant_id)
        self._connections[connection.connection_id] = connection
        self._bindings[connection.connection_id] = binding
        members = self._members.setdefault(binding.session_id, {})
        members.setdefault(participant_id, set()).add(connection.connection_id)
        if previous is None:
            return None
        released, last = previous
        return released if last and released != binding else None

    def unregister(self, connection: ConnectionProtocol) -> tuple[Binding, bool] | None:
        """
        Forget the connection.

        Returns its binding and whether it was the participant's last live
        connection, or None if it never joined.
        """
        self._connections.pop(connection.connection_id, None)
        return self._detach(connection.connection_id)

    def _detach(self, connection_id: str) -> tuple[Binding, bool] | None:
        binding = self._bindings.pop(connection_id, None)
        if binding is None:
            return None
        members = self._members.get(binding.session_id, {})
        conn_ids = members.get(binding.participant_id, set())
        conn_ids.discard(connection_id)
        last = not conn_ids
        if last:
            members.pop(binding.participant_id, None)
        if not members:
            self._members.pop(binding.session_id, None)
        return binding, last

    def connections_for(self, session_id: str, participant_id: str | None = None) -> list[ConnectionProtocol]:
        members = self._members.get(session_id, {})
        if participant_id is not None:
            conn_ids = list(members.get(participant_id, ()))
        else:
            conn_ids = [cid for ids in members.values() for cid in ids]
        return [self._connections[cid] for cid in conn_ids if cid in self._connections]

    async def send(self, connection: ConnectionProtocol, message: dict[str, Any]) -> None:
        with contextlib.suppress(RuntimeError, OSError):
            await connection.send_message(message)

    async def publish(self, session_id: str, events: list[ServiceEvent]) -> None:
        """Deliver events in order, skipping connections that went away mid-send."""
        for event in events:
            message = service_event_payload(event)
            if isinstance(event.target, BroadcastTarget):
                recipients = self.connections_for(session_id)
            elif isinstance(event.target, ParticipantTarget):
                recipients = self.connections_for(session_id, event.target.participant_id)
            else:
                logger.warning("unknown event target", target=type(event.target).__name__)
                continue
            for connection in recipients:
                await self.send(connection, message)
