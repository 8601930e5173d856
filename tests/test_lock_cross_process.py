"""
Cross-process tests for todo locks.

Uses multiprocessing (not threading) to simulate separate tool sessions
editing the same todo directory.
"""

import multiprocessing
import time
from pathlib import Path

import pytest

from todos.errors import LockConflictError
from todos.store import TodoStore
from todos.types import TodoPatch


# Worker functions must be top-level for multiprocessing spawn compatibility


def _worker_hold_lock(todos_dir: str, todo_id: str, ready, release):
    """Hold the lock for todo_id until told to let go."""
    from todos.lock import TodoLock
    with TodoLock(Path(todos_dir), todo_id):
        ready.set()
        release.wait(30)


def _worker_append_with_retry(todos_dir: str, todo_id: str, text: str):
    """Append text, retrying while another process holds the lock."""
    from todos.errors import LockError
    from todos.store import TodoStore
    store = TodoStore(Path(todos_dir))
    deadline = time.monotonic() + 60
    while time.monotonic() < deadline:
        result = store.append(todo_id, text)
        if result.ok:
            return
        if not isinstance(result.error, LockError):
            raise result.error
        time.sleep(0.005)
    raise RuntimeError(f"never acquired lock for {todo_id}")


@pytest.mark.slow
class TestCrossProcess:

    def test_second_writer_conflicts_until_release(self, todos_dir):
        store = TodoStore(todos_dir)
        todo = store.create("Shared").unwrap()

        ctx = multiprocessing.get_context("spawn")
        ready = ctx.Event()
        release = ctx.Event()
        holder = ctx.Process(
            target=_worker_hold_lock,
            args=(str(todos_dir), todo.id, ready, release),
        )
        holder.start()
        try:
            assert ready.wait(30), "holder never acquired the lock"
            result = store.update(todo.id, TodoPatch(title="mine"))
            assert isinstance(result.error, LockConflictError)
        finally:
            release.set()
            holder.join(30)

        assert holder.exitcode == 0
        assert store.update(todo.id, TodoPatch(title="mine")).ok
        assert store.get(todo.id).title == "mine"

    def test_concurrent_appends_all_land(self, todos_dir):
        store = TodoStore(todos_dir)
        todo = store.create("Counter").unwrap()
        num_workers = 6

        ctx = multiprocessing.get_context("spawn")
        workers = [
            ctx.Process(
                target=_worker_append_with_retry,
                args=(str(todos_dir), todo.id, f"line from worker {i}"),
            )
            for i in range(num_workers)
        ]
        for w in workers:
            w.start()
        for w in workers:
            w.join(90)

        assert all(w.exitcode == 0 for w in workers)
        body = store.get(todo.id).body
        for i in range(num_workers):
            assert f"line from worker {i}" in body
        assert body.count("\n\n") == num_workers - 1
        assert not list(todos_dir.glob("*.lock"))
