"""Wire-format shaping for ServiceEvent payloads."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from game.logic.events import ServiceEvent


def service_event_payload(event: ServiceEvent) -> dict[str, Any]:
    """Return the wire-format dict for a ServiceEvent payload.

    Shape: {"type": <event type string>, **data_fields}. Enum values are
    serialized as their strings so the dict is MessagePack-ready.
    """
    return {
        "type": event.event.value,
        **event.data.model_dump(mode="json", exclude={"type"}),
    }
