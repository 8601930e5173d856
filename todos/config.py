"""
Configuration management for todo directories.

The configuration is stored as a TOML file in the todos directory.
It is optional: a directory without one uses the defaults.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomli_w

from .types import utc_now


CONFIG_FILENAME = "todos.toml"
CONFIG_VERSION = 1

# Directory (relative to the working directory) holding todo files
TODOS_DIR_NAME = ".todos"

DEFAULT_LOCK_TTL_SECONDS = 30 * 60


@dataclass
class TodosConfig:
    """Complete configuration for one todos directory."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=utc_now)
    lock_ttl_seconds: float = DEFAULT_LOCK_TTL_SECONDS

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def todos_dir_for(cwd: Optional[Path] = None) -> Path:
    """
    Resolve the todos directory.

    Priority:
    1. TODOS_DIR environment variable
    2. <cwd>/.todos
    """
    env_dir = os.environ.get("TODOS_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()
    base = cwd if cwd is not None else Path.cwd()
    return (Path(base) / TODOS_DIR_NAME).resolve()


def session_from_env() -> Optional[str]:
    """Session identifier supplied by the environment, if any."""
    return os.environ.get("TODOS_SESSION") or None


def load_config(todos_dir: Path) -> TodosConfig:
    """
    Load configuration from a todos directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = todos_dir / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    version = data.get("store", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    ttl = data.get("lock", {}).get("ttl_seconds", DEFAULT_LOCK_TTL_SECONDS)
    if not isinstance(ttl, (int, float)) or isinstance(ttl, bool) or ttl < 0:
        raise ValueError(f"Invalid lock.ttl_seconds: {ttl!r}")

    return TodosConfig(
        path=todos_dir,
        version=version,
        created=data.get("store", {}).get("created", ""),
        lock_ttl_seconds=ttl,
    )


def save_config(config: TodosConfig) -> None:
    """Save configuration to the todos directory."""
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "lock": {
            "ttl_seconds": config.lock_ttl_seconds,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def read_config(todos_dir: Path) -> TodosConfig:
    """Load config if present, otherwise defaults. Never writes."""
    if (todos_dir / CONFIG_FILENAME).exists():
        return load_config(todos_dir)
    return TodosConfig(path=todos_dir)


def load_or_create_config(todos_dir: Path) -> TodosConfig:
    """
    Load existing config or create a new one with defaults.

    Used when the todos directory is first created.
    """
    if (todos_dir / CONFIG_FILENAME).exists():
        return load_config(todos_dir)
    config = TodosConfig(path=todos_dir)
    save_config(config)
    return config
