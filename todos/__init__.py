"""
File-backed todos with advisory locking and fuzzy search.

Usage:
    from todos import TodoStore

    store = TodoStore(todos_dir_for())
    result = store.create("Fix login", tags=["auth"])
    store.append(result.todo.id, "done via PR #42")
"""

from .config import TodosConfig, todos_dir_for
from .errors import (
    IdGenerationError,
    LockConflictError,
    LockDeclinedError,
    LockError,
    NotFoundError,
    StaleLockError,
    TodoError,
    TodoIOError,
    ValidationError,
)
from .lock import NonInteractiveHost, TodoLock, acquire_lock
from .search import FuzzyMatch, filter_todos, fuzzy_match, sort_default
from .store import TodoResult, TodoStore
from .types import TodoPatch, TodoRecord, TodoSummary, is_closed

__all__ = [
    "FuzzyMatch",
    "IdGenerationError",
    "LockConflictError",
    "LockDeclinedError",
    "LockError",
    "NonInteractiveHost",
    "NotFoundError",
    "StaleLockError",
    "TodoError",
    "TodoIOError",
    "TodoLock",
    "TodoPatch",
    "TodoRecord",
    "TodoResult",
    "TodoStore",
    "TodoSummary",
    "TodosConfig",
    "ValidationError",
    "acquire_lock",
    "filter_todos",
    "fuzzy_match",
    "is_closed",
    "sort_default",
    "todos_dir_for",
]
