"""
Directory-backed todo store.

Each todo is ``<root>/<id>.md``. Files are the source of truth: nothing is
cached between calls, every operation re-reads from disk.

Mutations (create, update, append, update_status) run read-modify-write
under a TodoLock for the id and never raise TodoError across this
boundary; they return a TodoResult carrying either the todo or the error.
Reads (list, get) take no lock.
"""

from __future__ import annotations

import logging
import os
import secrets
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .codec import parse_summary, parse_todo, serialize_todo
from .config import TodosConfig, read_config, save_config
from .errors import (
    IdGenerationError,
    NotFoundError,
    TodoError,
    TodoIOError,
    ValidationError,
)
from .lock import TodoLock
from .protocol import FuzzyMatcher, TodoHost
from .search import filter_todos, fuzzy_match, sort_default
from .types import (
    DEFAULT_STATUS,
    TODO_EXTENSION,
    TodoPatch,
    TodoRecord,
    TodoSummary,
    utc_now,
    validate_id,
)

logger = logging.getLogger(__name__)

ID_ATTEMPTS = 10


@dataclass
class TodoResult:
    """Outcome of a mutating store operation: a todo or an error."""
    todo: Optional[TodoRecord] = None
    error: Optional[TodoError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> TodoRecord:
        """Return the todo or raise the error."""
        if self.error is not None:
            raise self.error
        assert self.todo is not None
        return self.todo


def generate_id() -> str:
    """Random 8-character hex id."""
    return secrets.token_hex(4)


class TodoStore:
    """
    CRUD over a directory of todo files.

    Args:
        root: The todos directory (need not exist yet)
        host: Session id and stale-lock confirmation; non-interactive if None
        config: Directory config; read from ``root`` if None
        matcher: Fuzzy matcher used by search()
    """

    def __init__(
        self,
        root: Path,
        host: Optional[TodoHost] = None,
        config: Optional[TodosConfig] = None,
        *,
        matcher: FuzzyMatcher = fuzzy_match,
        id_factory: Callable[[], str] = generate_id,
    ):
        self.root = Path(root)
        self.host = host
        self.config = config if config is not None else read_config(self.root)
        self._matcher = matcher
        self._id_factory = id_factory

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def todo_path(self, id: str) -> Path:
        return self.root / f"{id}{TODO_EXTENSION}"

    def lock(self, id: str) -> TodoLock:
        """A TodoLock for ``id`` using this store's host and TTL."""
        return TodoLock(self.root, id, self.host, ttl_seconds=self.config.lock_ttl_seconds)

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def list(self) -> list[TodoSummary]:
        """
        Summaries of every readable todo, in default order.

        A missing directory is an empty store. Files that can't be read are
        skipped.
        """
        try:
            entries = list(self.root.iterdir())
        except OSError:
            return []

        todos = []
        for entry in entries:
            name = entry.name
            if not name.endswith(TODO_EXTENSION) or name.startswith("."):
                continue
            id = name[:-len(TODO_EXTENSION)]
            try:
                content = entry.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping unreadable todo %s: %s", name, e)
                continue
            todos.append(parse_summary(content, id))

        return sort_default(todos)

    def get(self, id: str) -> Optional[TodoRecord]:
        """
        Read one todo, or None if it doesn't exist.

        Raises:
            ValidationError: id missing or not a valid filename stem
            TodoIOError: the file is not valid UTF-8
        """
        self._check_id(id)
        return self._read(id)

    def search(self, query: str) -> list[TodoSummary]:
        """Listing filtered and ranked by ``query`` (blank: default order)."""
        return filter_todos(self.list(), query, self._matcher)

    def complete(self, prefix: str) -> list[TodoSummary]:
        """Candidates for completing a todo argument from what's typed so far."""
        todos = self.list()
        if not todos:
            return []
        return filter_todos(todos, prefix, self._matcher)

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create(
        self,
        title: str,
        tags: Optional[list[str]] = None,
        status: Optional[str] = None,
        body: Optional[str] = None,
    ) -> TodoResult:
        """Create a todo with a fresh id and created_at = now."""
        def op() -> TodoRecord:
            if not title:
                raise ValidationError("title required")
            self._ensure_root()
            id = self._generate_id()
            todo = TodoRecord(
                id=id,
                title=title,
                tags=list(tags or []),
                status=status if status is not None else DEFAULT_STATUS,
                created_at=utc_now(),
                body=body or "",
            )
            with self.lock(id):
                stored = self._write(todo)
            logger.info("Created todo %s: %s", id, title)
            return stored

        return self._guard("create", op)

    def update(self, id: str, patch: TodoPatch) -> TodoResult:
        """
        Apply the fields set in ``patch`` to an existing todo.

        Fields left as None are unchanged. An empty created_at is backfilled.
        """
        def op() -> TodoRecord:
            self._check_id(id)
            self._require(id)
            with self.lock(id):
                todo = self._read(id)
                if todo is None:
                    raise NotFoundError(id)
                if patch.title is not None:
                    todo.title = patch.title
                if patch.status is not None:
                    todo.status = patch.status
                if patch.tags is not None:
                    todo.tags = list(patch.tags)
                if patch.body is not None:
                    todo.body = patch.body
                if not todo.created_at:
                    todo.created_at = utc_now()
                stored = self._write(todo)
            logger.info("Updated todo %s", id)
            return stored

        return self._guard("update", op)

    def append(self, id: str, text: str) -> TodoResult:
        """
        Append text to the body, separated by a blank line.

        The appended text is trimmed and the body ends with a newline.
        """
        def op() -> TodoRecord:
            self._check_id(id)
            if not text:
                raise ValidationError("body required")
            self._require(id)
            with self.lock(id):
                todo = self._read(id)
                if todo is None:
                    raise NotFoundError(id)
                spacer = "\n\n" if todo.body.strip() else ""
                todo.body = f"{todo.body.rstrip()}{spacer}{text.strip()}\n"
                stored = self._write(todo)
            logger.info("Appended to todo %s", id)
            return stored

        return self._guard("append", op)

    def update_status(self, id: str, status: str) -> TodoResult:
        """Change only the status of a todo."""
        if status is None:
            return TodoResult(error=ValidationError("status required"))
        return self.update(id, TodoPatch(status=status))

    def close(self, id: str) -> TodoResult:
        return self.update_status(id, "closed")

    def reopen(self, id: str) -> TodoResult:
        return self.update_status(id, DEFAULT_STATUS)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _guard(self, action: str, op: Callable[[], TodoRecord]) -> TodoResult:
        """Run a mutation, turning failures into a TodoResult."""
        try:
            return TodoResult(todo=op())
        except TodoError as e:
            logger.debug("%s failed: %s", action, e)
            return TodoResult(error=e)
        except OSError as e:
            logger.exception("%s failed with I/O error", action)
            return TodoResult(error=TodoIOError(f"{action} failed: {e.strerror or e}", e))

    @staticmethod
    def _check_id(id: str) -> None:
        if not id:
            raise ValidationError("id required")
        try:
            validate_id(id)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def _require(self, id: str) -> None:
        if not self.todo_path(id).exists():
            raise NotFoundError(id)

    def _ensure_root(self) -> None:
        if self.root.is_dir():
            return
        self.root.mkdir(parents=True, exist_ok=True)
        self.config.path = self.root
        save_config(self.config)
        logger.info("Created todos directory %s", self.root)

    def _generate_id(self) -> str:
        for _ in range(ID_ATTEMPTS):
            id = self._id_factory()
            if not self.todo_path(id).exists():
                return id
        raise IdGenerationError("Failed to generate unique todo id")

    def _read(self, id: str) -> Optional[TodoRecord]:
        try:
            content = self.todo_path(id).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise TodoIOError(f"Todo {id} is unreadable: {e}", e) from e
        return parse_todo(content, id)

    def _write(self, todo: TodoRecord) -> TodoRecord:
        """
        Write a todo via temp file + rename so readers never see half a file.

        Returns the todo as it now reads back from disk.
        """
        content = serialize_todo(todo)
        path = self.todo_path(todo.id)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{todo.id}.", suffix=".tmp", dir=self.root)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                os.fchmod(f.fileno(), 0o644)
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return parse_todo(content, todo.id)
