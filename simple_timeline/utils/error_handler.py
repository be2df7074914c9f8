"""
Error Handler Utility
=====================

This module provides centralized error handling utilities for the timeline engine,
including typed errors for configuration and storage problems, logging, and an
error history that the surrounding application can inspect.

The layout and viewport math never raise for degenerate input (empty event sets,
zero-sized viewports, inverted events); those conditions degrade silently. Only
configuration and record-store failures surface as exceptions.
"""

import logging
from datetime import datetime
from typing import Optional

from PyQt5.QtCore import QObject, pyqtSignal

# Configure logger
logger = logging.getLogger(__name__)


class ErrorSeverity:
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class TimelineError(Exception):
    """Base exception for timeline-related errors."""

    def __init__(self, message: str, details: Optional[str] = None,
                 severity: str = ErrorSeverity.ERROR):
        """
        Initialize timeline error.

        Args:
            message: User-friendly error message
            details: Technical details for logging
            severity: Error severity level
        """
        super().__init__(message)
        self.message = message
        self.details = details or message
        self.severity = severity


class ConfigurationError(TimelineError):
    """Exception for invalid timeline ranges or settings."""
    pass


class StoreError(TimelineError):
    """Exception for record-store (database) errors."""

    def __init__(self, message: str, db_path: Optional[str] = None,
                 original_error: Optional[Exception] = None,
                 recovery_suggestions: Optional[list] = None):
        """
        Initialize store error.

        Args:
            message: User-friendly error message
            db_path: Database the store was working on
            original_error: The sqlite3 exception, if any
            recovery_suggestions: Things the user can try, in order
        """
        self.db_path = db_path
        self.original_error = original_error
        self.recovery_suggestions = list(recovery_suggestions or [])

        lines = [message]
        if db_path:
            lines.append(f"Store: {db_path}")
        if original_error is not None:
            lines.append(f"Cause: {type(original_error).__name__}: {original_error}")
        lines.extend(f"  - {suggestion}" for suggestion in self.recovery_suggestions)

        super().__init__(message, "\n".join(lines), ErrorSeverity.ERROR)


class ErrorHandler(QObject):
    """
    Centralized error handler for the timeline engine.

    Logs errors at a level matching their severity, keeps a short history of
    recent errors and re-publishes them through a signal so that the
    application shell can decide how to present them.

    Signals:
        error_occurred: Emitted when an error is handled (severity, message, details)
    """

    error_occurred = pyqtSignal(str, str, str)  # severity, message, details

    def __init__(self, parent=None, max_stored_errors: int = 10):
        """
        Initialize error handler.

        Args:
            parent: Parent QObject
            max_stored_errors: Number of recent errors kept in history
        """
        super().__init__(parent)
        self._error_count = 0
        self._last_errors = []
        self._max_stored_errors = max_stored_errors

    def handle_error(self, error: Exception, context: str = "") -> str:
        """
        Handle an error with logging and notification.

        Args:
            error: The exception that occurred
            context: Context description (e.g., "saving event")

        Returns:
            str: The severity the error was handled with
        """
        self._error_count += 1

        if isinstance(error, TimelineError):
            message = error.message
            details = error.details
            severity = error.severity
            exc_info = None
        else:
            message = f"An unexpected error occurred while {context}" if context else "An unexpected error occurred"
            details = f"{type(error).__name__}: {error}"
            severity = ErrorSeverity.ERROR
            # Traceback goes to the log only, never into the emitted details
            exc_info = (type(error), error, error.__traceback__)

        level = LOG_LEVELS.get(severity, logging.INFO)
        where = f" while {context}" if context else ""
        logger.log(level, f"[{severity}]{where}: {details}", exc_info=exc_info)

        self._store_error(severity, message, details, context)
        self.error_occurred.emit(severity, message, details)
        return severity

    def _store_error(self, severity: str, message: str, details: str, context: str = ""):
        """Append an error to the bounded history."""
        self._last_errors.append({
            'timestamp': datetime.now(),
            'severity': severity,
            'context': context,
            'message': message,
            'details': details,
        })
        if len(self._last_errors) > self._max_stored_errors:
            self._last_errors.pop(0)

    def get_error_count(self) -> int:
        """Get total number of errors handled."""
        return self._error_count

    def get_recent_errors(self) -> list:
        """Get list of recent errors, oldest first."""
        return self._last_errors.copy()

    def clear_error_history(self):
        """Clear error history."""
        self._last_errors.clear()
        self._error_count = 0


def create_store_error_with_guidance(operation: str, db_path: str,
                                     original_error: Exception) -> StoreError:
    """
    Create a store error with specific guidance based on the sqlite error text.

    Args:
        operation: Description of the operation that failed
        db_path: Path to the database
        original_error: The original exception

    Returns:
        StoreError: Configured store error with recovery suggestions
    """
    error_str = str(original_error).lower()

    if "unable to open database" in error_str:
        message = f"Cannot open timeline database while {operation}"
        recovery_suggestions = [
            f"Check that the directory for {db_path} exists",
            f"Check file permissions for: {db_path}",
        ]
    elif "locked" in error_str:
        message = f"Timeline database is locked while {operation}"
        recovery_suggestions = [
            "Close any other application using this database",
            "Wait a moment and try again",
        ]
    elif "malformed" in error_str:
        message = f"Timeline database is corrupted while {operation}"
        recovery_suggestions = [
            "Restore the database from a backup if available",
        ]
    elif "unique constraint" in error_str:
        message = f"Duplicate record while {operation}"
        recovery_suggestions = [
            "Records must use a new identifier when added",
        ]
    else:
        message = f"Database error while {operation}"
        recovery_suggestions = [
            f"Check the database file: {db_path}",
            "Check the error log for more details",
        ]

    return StoreError(
        message=message,
        db_path=db_path,
        original_error=original_error,
        recovery_suggestions=recovery_suggestions
    )
