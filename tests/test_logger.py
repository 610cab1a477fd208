"""Tests for logger.py -- setup_logging() and JsonFormatter.

Strategy: Mock logging.basicConfig to verify setup_logging passes correct
args, since pytest's log capture plugin interferes with real basicConfig
calls.  File handlers created along the way are closed by each test.
"""

import json
import logging
import sys
from unittest.mock import patch

from word_assistant.logger import DEFAULT_LOG_FILE, JsonFormatter, setup_logging


def _handlers(mock_basic):
    return mock_basic.call_args[1]["handlers"]


def _close(handlers):
    for h in handlers:
        if isinstance(h, logging.FileHandler):
            h.close()


class TestSetupLogging:
    @patch("word_assistant.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        mock_basic.assert_called_once()
        [handler] = _handlers(mock_basic)
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr

    @patch("word_assistant.logger.logging.basicConfig")
    def test_mcp_mode_logs_to_file_only(self, mock_basic, tmp_path):
        log_file = tmp_path / "mcp.log"
        setup_logging(mode="mcp", log_file=str(log_file))

        handlers = _handlers(mock_basic)
        try:
            assert len(handlers) == 1
            assert isinstance(handlers[0], logging.FileHandler)
            assert handlers[0].baseFilename == str(log_file)
        finally:
            _close(handlers)

    @patch("word_assistant.logger.logging.basicConfig")
    def test_mcp_mode_uses_log_file_env(
        self, mock_basic, tmp_path, monkeypatch
    ):
        log_file = tmp_path / "from-env.log"
        monkeypatch.setenv("LOG_FILE", str(log_file))
        setup_logging(mode="mcp")

        handlers = _handlers(mock_basic)
        try:
            assert handlers[0].baseFilename == str(log_file)
        finally:
            _close(handlers)

    def test_default_log_file_name(self):
        assert DEFAULT_LOG_FILE == "/tmp/word-assistant-mcp.log"

    @patch("word_assistant.logger.logging.basicConfig")
    def test_cli_mode_with_log_file_adds_file_handler(
        self, mock_basic, tmp_path
    ):
        setup_logging(mode="cli", log_file=str(tmp_path / "cli.log"))

        handlers = _handlers(mock_basic)
        try:
            kinds = [type(h) for h in handlers]
            assert kinds == [logging.StreamHandler, logging.FileHandler]
        finally:
            _close(handlers)

    @patch("word_assistant.logger.logging.basicConfig")
    def test_debug_overrides_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("word_assistant.logger.logging.basicConfig")
    def test_env_log_level_honored(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("word_assistant.logger.logging.basicConfig")
    def test_default_levels(self, mock_basic, monkeypatch, tmp_path):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.INFO

        setup_logging(mode="mcp", log_file=str(tmp_path / "x.log"))
        assert mock_basic.call_args[1]["level"] == logging.WARNING
        _close(_handlers(mock_basic))

    @patch("word_assistant.logger.logging.basicConfig")
    def test_configured_level_below_env(self, mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli", level="error")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        setup_logging(mode="cli", level="error")
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("word_assistant.logger.logging.basicConfig")
    def test_json_format(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")
        [handler] = _handlers(mock_basic)
        assert isinstance(handler.formatter, JsonFormatter)

    @patch("word_assistant.logger.logging.basicConfig")
    def test_urllib3_silenced_unless_debug(self, _mock_basic):
        setup_logging(mode="cli")
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestJsonFormatter:
    def _record(self, **kwargs):
        fields = {
            "name": "word_assistant.sync.engine",
            "level": logging.INFO,
            "pathname": "engine.py",
            "lineno": 1,
            "msg": "Sync complete: sent %d",
            "args": (3,),
            "exc_info": None,
        }
        fields.update(kwargs)
        return logging.LogRecord(**fields)

    def test_basic_output(self):
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        data = json.loads(formatter.format(self._record()))

        assert set(data) == {"ts", "level", "logger", "msg"}
        assert data["level"] == "INFO"
        assert data["logger"] == "word_assistant.sync.engine"
        assert data["msg"] == "Sync complete: sent 3"

    def test_includes_exception(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("bad cursor")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(
            formatter.format(
                self._record(level=logging.ERROR, exc_info=exc_info)
            )
        )
        assert "ValueError: bad cursor" in data["exc"]
