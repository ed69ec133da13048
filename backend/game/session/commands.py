"""
Inbound events consumed by a GameSession.

Every mutation of a session, whether it comes from a participant, the
transport or one of the session's own timers, is expressed as one of
these models and delivered through GameSession.handle().
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from game.logic.enums import TimerKind


class SessionCommand(BaseModel):
    model_config = ConfigDict(frozen=True)


class SubmitWord(SessionCommand):
    """Word-master supplies a word or asks for a random one."""

    caller_id: str
    word: str | None = None
    use_random: bool = False
    category: str = "all"

    @model_validator(mode="after")
    def _word_or_random(self) -> Self:
        if not self.use_random and not self.word:
            raise ValueError("either word or use_random is required")
        return self


class GuessLetter(SessionCommand):
    caller_id: str
    letter: str


class SendHint(SessionCommand):
    caller_id: str
    text: str = Field(min_length=1)


class PlayerDisconnected(SessionCommand):
    participant_id: str


class PlayerReconnected(SessionCommand):
    participant_id: str


class TimerFired(SessionCommand):
    """
    Internal self-event raised by a session timer.

    turn_number, generation and round_index identify what the timer was
    armed for; a firing whose tag no longer matches the state is stale.
    """

    kind: TimerKind
    turn_number: int | None = None
    participant_id: str | None = None
    generation: int | None = None
    round_index: int | None = None


class TurnTick(SessionCommand):
    """Per-second countdown notification for the armed turn."""

    turn_number: int
    seconds_left: int
