import pytest
from pydantic import ValidationError

from game.logic.enums import ConnectionState
from game.logic.events import (
    BroadcastTarget,
    EventType,
    ParticipantTarget,
    PlayerDisconnectedEvent,
    ServiceEvent,
    TurnChangedEvent,
    broadcast,
    to_participant,
)
from game.messaging.event_payload import service_event_payload


class TestServiceEvent:
    def test_broadcast_target(self):
        event = broadcast(TurnChangedEvent(session_id="s", current_turn_player_id="a", turn_number=1))
        assert event.event == EventType.TURN_CHANGED
        assert isinstance(event.target, BroadcastTarget)

    def test_participant_target(self):
        event = to_participant("a", TurnChangedEvent(session_id="s", current_turn_player_id="a", turn_number=1))
        assert event.target == ParticipantTarget(participant_id="a")

    def test_event_type_must_match_data(self):
        with pytest.raises(ValidationError, match="does not match"):
            ServiceEvent(
                event=EventType.GAME_ENDED,
                data=TurnChangedEvent(session_id="s", current_turn_player_id="a", turn_number=1),
            )


class TestPayload:
    def test_payload_is_flat_and_json_ready(self):
        payload = service_event_payload(
            broadcast(
                PlayerDisconnectedEvent(
                    session_id="s",
                    participant_id="a",
                    connection=ConnectionState.PENDING_DISCONNECT,
                    grace_seconds=10,
                ),
            ),
        )
        assert payload == {
            "type": "player-disconnected",
            "session_id": "s",
            "participant_id": "a",
            "connection": "pending-disconnect",
            "grace_seconds": 10.0,
        }
        assert type(payload["connection"]) is str
