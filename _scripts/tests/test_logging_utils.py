"""
Tests for structured logging helpers.

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

import json
import logging

from provider_engine.logging_utils import StructuredFormatter, Timer


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("provider_engine.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_json_output(self):
        """JSON mode emits one parseable object with extras."""
        line = StructuredFormatter(json_output=True).format(_record("Registered", provider="CbzProvider"))
        data = json.loads(line)
        assert data["message"] == "Registered"
        assert data["level"] == "INFO"
        assert data["provider"] == "CbzProvider"
        assert data["timestamp"].endswith("Z")

    def test_text_output(self):
        """Text mode appends extras in parentheses."""
        line = StructuredFormatter().format(_record("Batch done", count=3))
        assert "[INFO    ]" in line
        assert line.endswith("Batch done (count=3)")


class TestTimer:
    """Tests for Timer."""

    def test_logs_duration(self, caplog):
        """Completion should be logged with a duration."""
        logger = logging.getLogger("provider_engine.test")
        with caplog.at_level(logging.DEBUG, logger="provider_engine.test"):
            with Timer(logger, "probe") as timer:
                pass
        assert timer.duration_ms is not None
        assert "Operation completed: probe" in caplog.text
        assert hasattr(caplog.records[-1], "duration_ms")

    def test_logs_failure(self, caplog):
        """Failures are logged at ERROR and not suppressed."""
        logger = logging.getLogger("provider_engine.test")
        with caplog.at_level(logging.DEBUG, logger="provider_engine.test"):
            try:
                with Timer(logger, "probe"):
                    raise ValueError("boom")
            except ValueError:
                pass
            else:
                raise AssertionError("exception was suppressed")
        assert caplog.records[-1].levelno == logging.ERROR
