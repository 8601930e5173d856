"""
Error types for todos, plus error logging for the CLI.

Store operations raise these internally and hand them back in a
TodoResult at the store boundary. The CLI logs full stack traces for
unexpected errors while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class TodoError(Exception):
    """Base class for all todo failures."""


class NotFoundError(TodoError):
    """Requested id has no backing file."""

    def __init__(self, id: str):
        super().__init__(f"Todo {id} not found")
        self.id = id


class ValidationError(TodoError, ValueError):
    """Required input missing or malformed; raised before any I/O."""


class LockError(TodoError):
    """Lock could not be acquired."""

    def __init__(self, message: str, id: str = ""):
        super().__init__(message)
        self.id = id


class LockConflictError(LockError):
    """Marker exists and is fresh."""

    def __init__(self, id: str, session: Optional[str] = None):
        owner = f" (session {session})" if session else ""
        super().__init__(f"Todo {id} is locked{owner}. Try again later.", id)
        self.session = session


class StaleLockError(LockError):
    """Marker is stale but there is no way to ask a human about stealing it."""

    def __init__(self, id: str):
        super().__init__(
            f"Todo {id} lock is stale; rerun in interactive mode to steal it.", id
        )


class LockDeclinedError(LockError):
    """The human declined to steal a stale marker."""

    def __init__(self, id: str):
        super().__init__(f"Todo {id} remains locked.", id)


class IdGenerationError(TodoError):
    """No free id could be generated."""


class TodoIOError(TodoError):
    """Unexpected filesystem failure while mutating a todo."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


def _error_log_path(todos_dir: Optional[Path] = None) -> Path:
    """Resolve error log path: explicit dir, then TODOS_DIR, then ~/.todos."""
    todos_dir = todos_dir or os.environ.get("TODOS_DIR")
    if todos_dir:
        return Path(todos_dir) / "todos-errors.log"
    return Path.home() / ".todos" / "todos-errors.log"


def log_exception(
    exc: Exception,
    context: str = "",
    todos_dir: Optional[Path] = None,
) -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)
        todos_dir: Todos directory to log into (default: TODOS_DIR or ~/.todos)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(todos_dir)
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; don't crash over it
    return log_path
