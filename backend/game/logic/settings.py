"""Centralized game settings - all configurable gameplay rules."""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

# defaults mirror the classic rule set
DEFAULT_TOTAL_ROUNDS = 5
DEFAULT_MAX_INCORRECT = 6
DEFAULT_MAX_HINTS = 3


class GameSettings(BaseModel):
    """
    Configuration for one game session.

    Fixed at game start; a running session never observes a settings change.
    """

    model_config = ConfigDict(frozen=True)

    # --- Game Structure ---
    total_rounds: int = Field(default=DEFAULT_TOTAL_ROUNDS, ge=1, le=20)
    min_players: int = Field(default=2, ge=2)
    max_players: int = Field(default=6, ge=2)

    # --- Round Rules ---
    max_incorrect_guesses: int = Field(default=DEFAULT_MAX_INCORRECT, ge=1, le=26)
    max_hints: int = Field(default=DEFAULT_MAX_HINTS, ge=0)
    max_hint_length: int = Field(default=100, ge=1)

    # --- Word Rules ---
    min_word_length: int = Field(default=3, ge=1)
    max_word_length: int = Field(default=20, ge=1)
    allow_spaces: bool = False

    # --- Timing (seconds) ---
    turn_seconds: float = Field(default=30, gt=0)
    grace_seconds: float = Field(default=10, gt=0)
    settle_seconds: float = Field(default=5, ge=0)
    tick_seconds: float = Field(default=1, ge=0)  # 0 disables turn-timer-tick notifications

    @model_validator(mode="after")
    def _validate_ranges(self) -> Self:
        if self.min_players > self.max_players:
            raise ValueError(f"min_players ({self.min_players}) exceeds max_players ({self.max_players})")
        if self.min_word_length > self.max_word_length:
            raise ValueError(
                f"min_word_length ({self.min_word_length}) exceeds max_word_length ({self.max_word_length})",
            )
        return self
