"""
Advisory per-todo locks using sidecar marker files.

A lock is a ``<id>.lock`` file created with O_EXCL next to ``<id>.md``.
Whoever creates it owns the todo until it deletes the file. Nothing
stops a process that ignores the protocol from writing the todo
directly; cooperating callers are serialized, that's all.

A marker older than the TTL is stale (its owner probably died). Stale
markers are only removed after a human says so; without a way to ask,
acquisition fails and tells the caller to rerun interactively.

Locks are not reentrant: acquiring a lock the same process already holds
is an ordinary conflict.
"""

import json
import logging
import os
import time
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Optional

from .config import DEFAULT_LOCK_TTL_SECONDS
from .errors import (
    LockConflictError,
    LockDeclinedError,
    LockError,
    StaleLockError,
    TodoIOError,
)
from .protocol import TodoHost
from .types import LOCK_EXTENSION, LockInfo, format_timestamp

logger = logging.getLogger(__name__)

# One try, plus one more after stealing a stale marker
MAX_ATTEMPTS = 2


class NonInteractiveHost:
    """Host with no human attached: stale locks are never stolen."""

    has_ui = False

    def __init__(self, session: Optional[str] = None):
        self._session = session

    def confirm(self, title: str, message: str) -> bool:
        return False

    def session_id(self) -> Optional[str]:
        return self._session


def lock_path(todos_dir: Path, id: str) -> Path:
    return Path(todos_dir) / f"{id}{LOCK_EXTENSION}"


def read_lock_info(path: Path) -> Optional[LockInfo]:
    """Read a marker's payload. None if missing or unparseable."""
    try:
        return LockInfo.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError, TypeError, AttributeError):
        return None


class TodoLock:
    """
    Exclusive, advisory lock on one todo id.

    Usage:
        with TodoLock(todos_dir, id, host):
            ...read, modify, write...

    The marker is removed on every exit path. ``release()`` is idempotent
    and never raises.
    """

    def __init__(
        self,
        todos_dir: Path,
        id: str,
        host: Optional[TodoHost] = None,
        *,
        ttl_seconds: float = DEFAULT_LOCK_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.id = id
        self.path = lock_path(todos_dir, id)
        self._host = host if host is not None else NonInteractiveHost()
        self._ttl = ttl_seconds
        self._clock = clock
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> "TodoLock":
        """
        Take the lock or raise.

        Raises:
            LockConflictError: marker exists and is fresh
            StaleLockError: marker is stale and the host has no UI
            LockDeclinedError: the human refused to steal a stale marker
            TodoIOError: creating the marker failed for any other reason
            LockError: both attempts lost a race
        """
        now = self._clock()
        session = self._host.session_id()

        for attempt in range(MAX_ATTEMPTS):
            try:
                fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
            except FileExistsError:
                pass
            except OSError as e:
                raise TodoIOError(f"Failed to acquire lock: {e.strerror or e}", e) from e
            else:
                self._write_marker(fd, LockInfo(
                    id=self.id,
                    pid=os.getpid(),
                    session=session,
                    created_at=format_timestamp(now),
                ))
                self._held = True
                logger.debug("Acquired lock %s (attempt %d)", self.path.name, attempt + 1)
                return self

            try:
                age = now - self.path.stat().st_mtime
            except FileNotFoundError:
                # Owner released between our create and stat
                continue
            except OSError as e:
                raise TodoIOError(f"Failed to inspect lock: {e.strerror or e}", e) from e

            if age <= self._ttl:
                info = read_lock_info(self.path)
                logger.debug("Todo %s locked (age %.0fs)", self.id, age)
                raise LockConflictError(self.id, info.session if info else None)

            if not self._host.has_ui:
                raise StaleLockError(self.id)

            if not self._host.confirm(
                "Todo locked",
                f"Todo {self.id} appears locked. Steal the lock?",
            ):
                raise LockDeclinedError(self.id)

            logger.warning("Stealing stale lock on todo %s (age %.0fs)", self.id, age)
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise TodoIOError(f"Failed to remove stale lock: {e.strerror or e}", e) from e

        raise LockError(f"Failed to acquire lock for todo {self.id}.", self.id)

    def _write_marker(self, fd: int, info: LockInfo) -> None:
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(asdict(info), f, indent=2)
        except OSError as e:
            self.path.unlink(missing_ok=True)
            raise TodoIOError(f"Failed to write lock: {e.strerror or e}", e) from e

    def release(self) -> None:
        """Remove the marker if we hold it. Failures are logged, not raised."""
        if not self._held:
            return
        self._held = False
        try:
            self.path.unlink()
            logger.debug("Released lock %s", self.path.name)
        except OSError as e:
            logger.debug("Could not remove lock %s: %s", self.path, e)

    def __enter__(self) -> "TodoLock":
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def acquire_lock(
    todos_dir: Path,
    id: str,
    host: Optional[TodoHost] = None,
    **kwargs,
) -> Callable[[], None]:
    """Acquire a lock and return its release function."""
    lock = TodoLock(todos_dir, id, host, **kwargs)
    lock.acquire()
    return lock.release
