"""Game server configuration via environment variables."""

from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from game.logic.settings import GameSettings
from game.words.http_source import DEFAULT_DICTIONARY_API_URL, DEFAULT_RANDOM_WORD_API_URL


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "GAME_"}

    max_sessions: int = Field(default=100, ge=1)
    # accepts a JSON array or a comma-separated list
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:5173"]

    # word sources; disable to run fully offline on the built-in lists
    use_word_apis: bool = True
    dictionary_api_url: str = DEFAULT_DICTIONARY_API_URL
    random_word_api_url: str = DEFAULT_RANDOM_WORD_API_URL
    word_api_timeout_seconds: float = Field(default=5.0, gt=0)

    # default rules for new games
    total_rounds: int = Field(default=5, ge=1, le=20)
    max_incorrect_guesses: int = Field(default=6, ge=1, le=26)
    max_hints: int = Field(default=3, ge=0)
    turn_seconds: float = Field(default=30, gt=0)
    grace_seconds: float = Field(default=10, gt=0)
    settle_seconds: float = Field(default=5, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, list):
            return v
        stripped = v.strip()
        if stripped.startswith("["):
            return GameServerSettings._parse_json_list(stripped)
        origins = [origin.strip() for origin in stripped.split(",") if origin.strip()]
        if not origins:
            raise ValueError("cors_origins must not be empty")
        return origins

    @staticmethod
    def _parse_json_list(value: str) -> list[str]:
        import json  # noqa: PLC0415

        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON array: {e}") from e
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise ValueError("JSON value must be an array of strings")
        return parsed

    def to_game_settings(self) -> GameSettings:
        """Default rules applied to games started without explicit settings."""
        return GameSettings(
            total_rounds=self.total_rounds,
            max_incorrect_guesses=self.max_incorrect_guesses,
            max_hints=self.max_hints,
            turn_seconds=self.turn_seconds,
            grace_seconds=self.grace_seconds,
            settle_seconds=self.settle_seconds,
        )
