"""
Shared pytest fixtures for todos tests.

Provides temporary todos directories and a scripted host so lock-stealing
prompts can be answered without a terminal.
"""

from typing import Optional

import pytest

from todos.store import TodoStore
from todos.types import TodoSummary


class ScriptedHost:
    """
    Host whose confirm() gives a fixed answer.

    Records every prompt so tests can check whether a human was asked.
    """

    def __init__(self, reply: bool = True, has_ui: bool = True,
                 session: Optional[str] = "session-test"):
        self.reply = reply
        self.has_ui = has_ui
        self._session = session
        self.prompts: list[tuple[str, str]] = []

    def confirm(self, title: str, message: str) -> bool:
        self.prompts.append((title, message))
        return self.reply

    def session_id(self) -> Optional[str]:
        return self._session


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of the tests."""
    monkeypatch.delenv("TODOS_DIR", raising=False)
    monkeypatch.delenv("TODOS_SESSION", raising=False)
    monkeypatch.delenv("TODOS_VERBOSE", raising=False)


@pytest.fixture
def todos_dir(tmp_path):
    """A todos directory path that does not exist yet."""
    return tmp_path / ".todos"


@pytest.fixture
def store(todos_dir):
    """A non-interactive store over an empty directory."""
    return TodoStore(todos_dir)


@pytest.fixture
def make_summary():
    """Factory for TodoSummary values."""
    def _make(id, title="", tags=None, status="open", created_at=""):
        return TodoSummary(
            id=id, title=title, tags=list(tags or []),
            status=status, created_at=created_at,
        )
    return _make


@pytest.fixture
def write_todo(todos_dir):
    """Write raw file content as <todos_dir>/<id>.md."""
    def _write(id: str, content: str):
        todos_dir.mkdir(parents=True, exist_ok=True)
        path = todos_dir / f"{id}.md"
        path.write_text(content, encoding="utf-8")
        return path
    return _write
