import json
import logging
from enum import Enum

import pytest
import structlog

from shared.logging import _serialize_enums, resolve_log_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Close and remove handlers added by setup_logging after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    root.setLevel(level)


class _Status(Enum):
    ACTIVE = "in-progress"


class TestSetupLogging:
    def test_configures_single_stdout_handler(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            resolve_log_level()

    def test_invalid_format(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()

    def test_json_output(self, monkeypatch, capsys):
        monkeypatch.setenv("LOG_FORMAT", "json")
        setup_logging(level=logging.INFO)

        structlog.get_logger("game").info("round started", session_id="s1", status=_Status.ACTIVE)
        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "round started"
        assert record["session_id"] == "s1"
        assert record["status"] == "in-progress"
        assert record["level"] == "info"

    def test_http_client_noise_is_quieted(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger("httpx").level == logging.WARNING


def test_enum_values_are_unwrapped():
    event = _serialize_enums(None, "info", {"status": _Status.ACTIVE, "n": 1})
    assert event == {"status": "in-progress", "n": 1}
