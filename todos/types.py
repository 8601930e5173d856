"""
Data types for file-backed todos.
"""

import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional


DEFAULT_STATUS = "open"

# Statuses that put a todo in the closed partition (compared lowercased)
CLOSED_STATUSES = frozenset({"closed", "done"})

TODO_EXTENSION = ".md"
LOCK_EXTENSION = ".lock"


def format_timestamp(ts: float) -> str:
    """Format an epoch timestamp as UTC YYYY-MM-DDTHH:MM:SS.mmmZ.

    Millisecond precision with a Z suffix, so stored values sort
    lexicographically in creation order.
    """
    dt = datetime.fromtimestamp(ts, timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now() -> str:
    """Current UTC timestamp in canonical format."""
    return format_timestamp(datetime.now(timezone.utc).timestamp())


def is_closed(status: str) -> bool:
    """Check if a status string means the todo is closed."""
    return (status or "").lower() in CLOSED_STATUSES


# Ids are filename stems: no separators, control chars, or leading dot
_ID_BLOCKED_RE = re.compile(r'[\x00-\x1f\x7f/\\]')
MAX_ID_LENGTH = 255


def validate_id(id: str) -> None:
    """Validate a todo id is usable as a filename stem."""
    if not id or len(id) > MAX_ID_LENGTH:
        raise ValueError(f"ID must be 1-{MAX_ID_LENGTH} characters")
    if id.startswith("."):
        raise ValueError(f"ID must not start with '.': {id!r}")
    if _ID_BLOCKED_RE.search(id):
        raise ValueError(f"ID contains invalid characters: {id!r}")


@dataclass
class TodoSummary:
    """
    Front matter of a todo, without the body.

    Used for listing and search so the body never has to be held.
    """
    id: str
    title: str = ""
    tags: list[str] = field(default_factory=list)
    status: str = DEFAULT_STATUS
    created_at: str = ""

    @property
    def closed(self) -> bool:
        return is_closed(self.status)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TodoRecord(TodoSummary):
    """A complete todo: front matter plus free-text body."""
    body: str = ""

    def summary(self) -> TodoSummary:
        """Project to a TodoSummary (drops the body)."""
        return TodoSummary(
            id=self.id,
            title=self.title,
            tags=list(self.tags),
            status=self.status,
            created_at=self.created_at,
        )


@dataclass
class TodoPatch:
    """
    Fields to change on update.

    None means "leave unchanged"; an empty string or empty list is a real
    value and overwrites.
    """
    title: Optional[str] = None
    status: Optional[str] = None
    tags: Optional[list[str]] = None
    body: Optional[str] = None

    def is_empty(self) -> bool:
        return all(v is None for v in (self.title, self.status, self.tags, self.body))


@dataclass
class LockInfo:
    """Payload written into a lock marker file."""
    id: str
    pid: int
    session: Optional[str]
    created_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "LockInfo":
        return cls(
            id=str(data.get("id", "")),
            pid=int(data.get("pid", 0)),
            session=data.get("session"),
            created_at=str(data.get("created_at", "")),
        )
