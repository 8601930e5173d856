"""
Protocol definitions for the collaborators todos depends on.

Defines interface contracts for:
- TodoHost: the surrounding application (session id, yes/no prompt)
- FuzzyMatcher: the text matching primitive used by search
- TodoStoreProtocol: the public store API (CLI, MCP server)
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from .search import FuzzyMatch
from .types import TodoPatch, TodoRecord, TodoSummary


@runtime_checkable
class TodoHost(Protocol):
    """
    Capabilities supplied by whatever is driving the store.

    Implemented by:
    - NonInteractiveHost (MCP server, scripts, tests)
    - TerminalHost (CLI attached to a TTY)
    """

    @property
    def has_ui(self) -> bool:
        """True when a human can answer confirm()."""
        ...

    def confirm(self, title: str, message: str) -> bool: ...

    def session_id(self) -> Optional[str]: ...


class FuzzyMatcher(Protocol):
    """Match a needle against a haystack; lower score is a tighter match."""

    def __call__(self, needle: str, haystack: str) -> FuzzyMatch: ...


@runtime_checkable
class TodoStoreProtocol(Protocol):
    """The operations front ends call on a todo store."""

    def list(self) -> list[TodoSummary]: ...

    def get(self, id: str) -> Optional[TodoRecord]: ...

    def create(
        self,
        title: str,
        tags: Optional[list[str]] = None,
        status: Optional[str] = None,
        body: Optional[str] = None,
    ): ...

    def update(self, id: str, patch: TodoPatch): ...

    def append(self, id: str, text: str): ...

    def update_status(self, id: str, status: str): ...
