"""
ai-tasks: Markdown task files with a JSON header, kept in sync with an
in-memory store under concurrent edits by humans and AI agents.

Quick start:
    from aitasks import TaskSync, load_or_create_config

    sync = TaskSync(load_or_create_config())
    sync.subscribe(print)
    sync.start()
"""

__version__ = "0.3.0"

from .codec import parse_bytes, parse_task_file, save_task_file, serialize
from .config import TaskConfig, load_or_create_config
from .errors import ParseErrorKind, RepairError
from .reconcile import reconcile
from .retention import trim_done_tasks
from .store import TaskStore
from .sync import TaskSync
from .types import ProjectData, ProjectFile, Task

__all__ = [
    "ParseErrorKind",
    "ProjectData",
    "ProjectFile",
    "RepairError",
    "Task",
    "TaskConfig",
    "TaskStore",
    "TaskSync",
    "load_or_create_config",
    "parse_bytes",
    "parse_task_file",
    "reconcile",
    "save_task_file",
    "serialize",
    "trim_done_tasks",
]
