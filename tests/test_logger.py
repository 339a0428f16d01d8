"""Tests for logger.py: setup_logging() and JsonFormatter.

Covers:
- stderr handler (stdout stays free for command output)
- Optional log file handler
- Debug level override
- LOG_LEVEL environment variable and config-file level
- JSON formatter output
- Third-party logger silencing

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from testcase_sync.logger import JsonFormatter, setup_logging

# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_logs_to_stderr(self, mock_basic):
        """A StreamHandler(stderr) is always passed to basicConfig."""
        setup_logging()

        mock_basic.assert_called_once()
        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_log_file_adds_file_handler(self, mock_basic, tmp_path):
        """log_file adds a FileHandler next to the stderr handler."""
        setup_logging(log_file=str(tmp_path / "sync.log"))

        handlers = mock_basic.call_args[1]["handlers"]
        file_handlers = [
            h for h in handlers if isinstance(h, logging.FileHandler)
        ]
        assert len(handlers) == 2
        assert len(file_handlers) == 1
        for h in file_handlers:
            h.close()

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_default_level_is_warning(self, mock_basic):
        setup_logging()

        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_config_level_used_when_env_unset(self, mock_basic):
        setup_logging(level="info")

        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_env_log_level_beats_config_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(level="INFO")

        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        """debug=True overrides LOG_LEVEL env var."""
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(debug=True)

        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_unknown_level_falls_back_to_warning(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "CHATTY")
        setup_logging()

        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_json_format_uses_json_formatter(self, mock_basic):
        """debug_format='json' sets JsonFormatter on handlers."""
        setup_logging(debug_format="json")

        handlers = mock_basic.call_args[1]["handlers"]
        assert all(isinstance(h.formatter, JsonFormatter) for h in handlers)

    @patch("testcase_sync.logger.logging.basicConfig")
    def test_charset_normalizer_silenced(self, _mock_basic):
        """Non-DEBUG mode silences charset_normalizer detection chatter."""
        setup_logging()

        assert logging.getLogger("charset_normalizer").level == logging.WARNING


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_output(self):
        """Formatted output is valid JSON with required keys."""
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        record = logging.LogRecord(
            name="testcase_sync.notation.codec",
            level=logging.INFO,
            pathname="codec.py",
            lineno=1,
            msg="Parsed %d steps",
            args=(2,),
            exc_info=None,
        )

        data = json.loads(formatter.format(record))

        assert "ts" in data
        assert data["level"] == "INFO"
        assert data["logger"] == "testcase_sync.notation.codec"
        assert data["msg"] == "Parsed 2 steps"
        assert "exc" not in data

    def test_includes_exception(self):
        """Exception info is included in 'exc' key."""
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")

        try:
            raise ValueError("bad priority")
        except ValueError:
            exc_info = sys.exc_info()

        record = logging.LogRecord(
            name="test",
            level=logging.ERROR,
            pathname="test.py",
            lineno=1,
            msg="Command failed",
            args=(),
            exc_info=exc_info,
        )

        data = json.loads(formatter.format(record))

        assert "ValueError: bad priority" in data["exc"]
