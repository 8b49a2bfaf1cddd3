"""
Configuration management for ai-tasks.

The configuration is stored as a TOML file, by default in
~/.config/ai-tasks/config.toml (AI_TASKS_CONFIG overrides the location).
It names the watched tasks folder and a few small knobs.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w


CONFIG_FILENAME = "config.toml"
CONFIG_VERSION = 1

DEFAULT_TASKS_FOLDER = "~/.ai-tasks"
DEFAULT_DEBOUNCE_MS = 300
DEFAULT_SUPPRESS_MS = 1000


def get_config_path() -> Path:
    """Config file location, respecting AI_TASKS_CONFIG."""
    override = os.environ.get("AI_TASKS_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "ai-tasks" / CONFIG_FILENAME


def resolve_folder(folder: str | Path) -> Path:
    """Expand a leading ~ in the configured folder."""
    return Path(str(folder)).expanduser()


@dataclass
class TaskConfig:
    """Complete ai-tasks configuration."""
    tasks_folder: Path = field(default_factory=lambda: resolve_folder(DEFAULT_TASKS_FOLDER))
    auto_check_tasks: bool = False
    # Done tasks kept per project; 0 disables retention
    max_done_tasks: int = 0
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    suppress_ms: int = DEFAULT_SUPPRESS_MS
    version: int = CONFIG_VERSION
    config_path: Optional[Path] = None

    def __post_init__(self):
        self.tasks_folder = resolve_folder(self.tasks_folder)
        if self.max_done_tasks < 0:
            raise ValueError(f"max_done_tasks must be >= 0, got {self.max_done_tasks}")
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {self.debounce_ms}")

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000

    @property
    def suppress_seconds(self) -> float:
        """Self-write suppression window; never shorter than the debounce interval."""
        return max(self.suppress_ms, self.debounce_ms) / 1000


def _coerce(data: dict[str, Any], key: str, kind: type, default):
    value = data.get(key, default)
    # bool is an int subclass; don't accept true/false for numeric knobs
    if kind is int and isinstance(value, bool):
        raise ValueError(f"Config key {key!r} must be an integer")
    if not isinstance(value, kind):
        raise ValueError(f"Config key {key!r} must be {kind.__name__}, got {type(value).__name__}")
    return value


def load_config(config_path: Optional[Path] = None) -> TaskConfig:
    """
    Load configuration from a TOML file.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = config_path or get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    version = data.get("config", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    tasks = data.get("tasks", {})
    return TaskConfig(
        tasks_folder=_coerce(tasks, "folder", str, DEFAULT_TASKS_FOLDER),
        auto_check_tasks=_coerce(tasks, "auto_check", bool, False),
        max_done_tasks=_coerce(tasks, "max_done_tasks", int, 0),
        debounce_ms=_coerce(tasks, "debounce_ms", int, DEFAULT_DEBOUNCE_MS),
        suppress_ms=_coerce(tasks, "suppress_ms", int, DEFAULT_SUPPRESS_MS),
        version=version,
        config_path=config_path,
    )


def save_config(config: TaskConfig) -> None:
    """
    Save configuration to its TOML file.

    Creates the parent directory if it doesn't exist.
    """
    config_path = config.config_path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "config": {"version": config.version},
        "tasks": {
            "folder": str(config.tasks_folder),
            "auto_check": config.auto_check_tasks,
            "max_done_tasks": config.max_done_tasks,
            "debounce_ms": config.debounce_ms,
            "suppress_ms": config.suppress_ms,
        },
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
    config.config_path = config_path


def load_or_create_config(config_path: Optional[Path] = None) -> TaskConfig:
    """
    Load existing config or create a new one with defaults.

    AI_TASKS_FOLDER overrides the configured folder without touching the
    file. This is the main entry point for config management.
    """
    config_path = config_path or get_config_path()
    if config_path.exists():
        config = load_config(config_path)
    else:
        config = TaskConfig(config_path=config_path)
        save_config(config)

    folder_override = os.environ.get("AI_TASKS_FOLDER")
    if folder_override:
        config.tasks_folder = resolve_folder(folder_override)
    return config
