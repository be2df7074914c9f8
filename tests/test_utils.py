"""
Tests for the debouncer and the error handling helpers.
"""

import logging
import sqlite3

import pytest
from PyQt5.QtTest import QTest

from simple_timeline.utils.debouncer import Debouncer
from simple_timeline.utils.error_handler import (ConfigurationError, ErrorHandler, ErrorSeverity,
                                                 create_store_error_with_guidance)

pytestmark = pytest.mark.usefixtures("qapp")


class TestDebouncer:

    def test_fires_once_after_quiet_period(self):
        calls = []
        debouncer = Debouncer(30, lambda: calls.append(1))
        debouncer.trigger()
        debouncer.trigger()
        QTest.qWait(100)
        assert calls == [1]

    def test_cancel(self):
        calls = []
        debouncer = Debouncer(30, lambda: calls.append(1))
        debouncer.trigger()
        debouncer.cancel()
        debouncer.cancel()
        QTest.qWait(80)
        assert calls == []

    def test_flush_only_runs_pending(self):
        calls = []
        debouncer = Debouncer(1000, lambda: calls.append(1))
        debouncer.flush()
        assert calls == []

        debouncer.trigger()
        assert debouncer.is_pending
        debouncer.flush()
        assert calls == [1]
        assert not debouncer.is_pending


class TestErrorHandler:

    def test_timeline_errors_keep_their_severity(self):
        handler = ErrorHandler()
        emitted = []
        handler.error_occurred.connect(lambda severity, message, details: emitted.append((severity, message)))

        severity = handler.handle_error(ConfigurationError("Bad range"), "loading timeline")
        assert severity == ErrorSeverity.ERROR
        assert emitted == [(ErrorSeverity.ERROR, "Bad range")]

    def test_unexpected_errors(self):
        handler = ErrorHandler()
        handler.handle_error(ValueError("boom"), "rendering")
        recent = handler.get_recent_errors()
        assert recent[-1]['message'] == "An unexpected error occurred while rendering"
        assert "ValueError: boom" in recent[-1]['details']

    def test_logs_at_severity_level_with_context(self, caplog):
        handler = ErrorHandler()
        with caplog.at_level(logging.INFO, logger="simple_timeline.utils.error_handler"):
            handler.handle_error(ConfigurationError("Odd range", severity=ErrorSeverity.WARNING), "loading timeline")
            handler.handle_error(ValueError("boom"), "rendering")

        warning, error = caplog.records
        assert warning.levelno == logging.WARNING
        assert "while loading timeline" in warning.getMessage()
        assert warning.exc_info is None
        assert error.levelno == logging.ERROR
        assert error.exc_info[0] is ValueError

        recent = handler.get_recent_errors()
        assert [entry["context"] for entry in recent] == ["loading timeline", "rendering"]
        assert "Traceback" not in recent[-1]["details"]

    def test_history_is_bounded(self):
        handler = ErrorHandler(max_stored_errors=3)
        for index in range(5):
            handler.handle_error(ValueError(str(index)))
        assert handler.get_error_count() == 5
        assert len(handler.get_recent_errors()) == 3

        handler.clear_error_history()
        assert handler.get_error_count() == 0


class TestStoreErrorGuidance:

    def test_locked_database(self):
        error = create_store_error_with_guidance("saving event", "t.db",
                                                 sqlite3.OperationalError("database is locked"))
        assert error.message == "Timeline database is locked while saving event"
        assert error.recovery_suggestions

    def test_duplicate_record(self):
        error = create_store_error_with_guidance(
            "adding event", "t.db", sqlite3.IntegrityError("UNIQUE constraint failed: events.id"))
        assert error.message == "Duplicate record while adding event"
        assert error.db_path == "t.db"
