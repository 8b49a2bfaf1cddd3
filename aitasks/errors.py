"""
Error types and error logging utilities for ai-tasks.

Parse failures are never raised across the folder-scan boundary; they are
carried on the record as a ParseErrorKind plus a human-readable reason.
The CLI logs full stack traces for debugging while showing clean messages
to users.
"""

import os
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


class ParseErrorKind(str, Enum):
    """Why a task file could not be turned into a valid record."""
    OVERSIZED = "oversized_file"
    MALFORMED_DELIMITERS = "malformed_delimiters"
    INVALID_JSON = "invalid_json"
    MISSING_FIELD = "missing_required_field"
    UNREADABLE = "unreadable"


class RepairError(Exception):
    """Raised by a JSON repairer when nothing usable can be recovered."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting AI_TASKS_FOLDER."""
    folder = os.environ.get("AI_TASKS_FOLDER")
    if folder:
        return Path(folder).expanduser() / "ai-tasks-errors.log"
    return Path.home() / ".ai-tasks" / "ai-tasks-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write(f" {type(exc).__name__}: {exc}\n")
            f.write(traceback.format_exc())
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
