import pytest
from pydantic import ValidationError

from game.logic.settings import GameSettings
from game.server.settings import GameServerSettings


class TestGameSettings:
    def test_defaults(self):
        settings = GameSettings()
        assert settings.total_rounds == 5
        assert settings.max_incorrect_guesses == 6
        assert settings.max_hints == 3
        assert settings.turn_seconds == 30
        assert settings.grace_seconds == 10

    def test_frozen(self):
        with pytest.raises(ValidationError):
            GameSettings().total_rounds = 3

    def test_player_range_is_checked(self):
        with pytest.raises(ValidationError, match="min_players"):
            GameSettings(min_players=5, max_players=3)

    def test_word_length_range_is_checked(self):
        with pytest.raises(ValidationError, match="min_word_length"):
            GameSettings(min_word_length=10, max_word_length=5)


class TestGameServerSettings:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GAME_TOTAL_ROUNDS", "3")
        monkeypatch.setenv("GAME_TURN_SECONDS", "45")
        monkeypatch.setenv("GAME_USE_WORD_APIS", "false")
        settings = GameServerSettings()
        assert not settings.use_word_apis
        game_settings = settings.to_game_settings()
        assert game_settings.total_rounds == 3
        assert game_settings.turn_seconds == 45

    def test_cors_origins_comma_separated(self, monkeypatch):
        monkeypatch.setenv("GAME_CORS_ORIGINS", "http://a.test, http://b.test")
        assert GameServerSettings().cors_origins == ["http://a.test", "http://b.test"]

    def test_cors_origins_json(self, monkeypatch):
        monkeypatch.setenv("GAME_CORS_ORIGINS", '["http://a.test"]')
        assert GameServerSettings().cors_origins == ["http://a.test"]

    def test_cors_origins_must_not_be_empty(self, monkeypatch):
        monkeypatch.setenv("GAME_CORS_ORIGINS", " , ")
        with pytest.raises(ValidationError, match="must not be empty"):
            GameServerSettings()

    def test_invalid_rounds(self, monkeypatch):
        monkeypatch.setenv("GAME_TOTAL_ROUNDS", "0")
        with pytest.raises(ValidationError):
            GameServerSettings()
