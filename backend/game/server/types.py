from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

_ID_PATTERN = r"^[a-zA-Z0-9_-]+$"


class RuleOverrides(BaseModel):
    """Per-game rule overrides; unset fields fall back to the server defaults."""

    model_config = ConfigDict(extra="forbid")

    total_rounds: int | None = Field(default=None, ge=1, le=20)
    max_incorrect_guesses: int | None = Field(default=None, ge=1, le=26)
    max_hints: int | None = Field(default=None, ge=0, le=10)
    turn_seconds: float | None = Field(default=None, gt=0, le=300)


class StartGameRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: str = Field(min_length=1, max_length=50, pattern=_ID_PATTERN)
    session_id: str | None = Field(default=None, min_length=1, max_length=50, pattern=_ID_PATTERN)
    participant_ids: list[str] = Field(min_length=1, max_length=20)
    rules: RuleOverrides | None = None

    @model_validator(mode="after")
    def _validate_participants(self) -> Self:
        for pid in self.participant_ids:
            if not pid or len(pid) > 100:
                raise ValueError("participant ids must be 1-100 characters")
        if len(set(self.participant_ids)) != len(self.participant_ids):
            raise ValueError("Duplicate participant id in list")
        return self
