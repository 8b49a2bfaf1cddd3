"""
Data types for task files.

A task file holds one project: a JSON header (project name, optional
workspace path, task list) and a free-text Markdown context body.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .errors import ParseErrorKind


STATUSES = ("todo", "doing", "done")
PRIORITIES = ("high", "medium", "low")
TASK_TYPES = ("bug", "feature", "task")
DEFAULT_PRIORITY = "medium"

# Task ids and file names starting with this are system/template entries
SYSTEM_ID_PREFIX = "_"

TASK_FILE_SUFFIX = ".md"
MAX_FILE_SIZE = 1024 * 1024  # 1 MB

# Wire keys for the task fields we model, in canonical output order
_TASK_KEYS = (
    ("id", "id"),
    ("title", "title"),
    ("status", "status"),
    ("priority", "priority"),
    ("type", "type"),
    ("description", "description"),
    ("created_at", "createdAt"),
    ("updated_at", "updatedAt"),
    ("grep_keywords", "grepKeywords"),
    ("related_documents", "relatedDocuments"),
)
_TASK_WIRE_KEYS = frozenset(wire for _, wire in _TASK_KEYS)
_PROJECT_WIRE_KEYS = frozenset({"projectName", "projectPath", "tasks"})


def utc_now() -> str:
    """Current UTC timestamp: YYYY-MM-DDTHH:MM:SS.mmmZ.

    Same shape the companion CLI prints for `timestamp`, so values written
    by agents and by the engine sort together.
    """
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_utc_timestamp(ts: str) -> datetime:
    """Parse a stored timestamp string to a timezone-aware UTC datetime.

    Accepts the canonical format as well as values without milliseconds,
    with '+00:00' offsets, or without any zone (assumed UTC).
    """
    ts = ts.replace("Z", "+00:00")
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_path(path) -> str:
    """Identity key for a file path.

    Separator-normalized and case-folded, since the underlying filesystem
    may not be case-sensitive.
    """
    return os.path.normpath(str(path)).replace("\\", "/").lower()


@dataclass
class Task:
    """
    A single unit of work inside a project.

    Optional fields are None when absent from the file and are left out
    again on serialization. Keys we don't model are kept in `extra`.
    """
    id: str
    title: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    grep_keywords: Optional[list[str]] = None
    related_documents: Optional[list[str]] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_system(self) -> bool:
        return self.id.startswith(SYSTEM_ID_PREFIX)

    @property
    def effective_priority(self) -> str:
        return self.priority or DEFAULT_PRIORITY

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Task":
        values = {attr: raw.get(wire) for attr, wire in _TASK_KEYS}
        extra = {k: v for k, v in raw.items() if k not in _TASK_WIRE_KEYS}
        return cls(**values, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for attr, wire in _TASK_KEYS:
            value = getattr(self, attr)
            if value is not None:
                out[wire] = value
        out.update(self.extra)
        return out


@dataclass
class ProjectData:
    """The JSON header of a task file."""
    project_name: str
    tasks: list[Task] = field(default_factory=list)
    project_path: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ProjectData":
        return cls(
            project_name=raw["projectName"],
            tasks=[Task.from_dict(t) for t in raw["tasks"]],
            project_path=raw.get("projectPath"),
            extra={k: v for k, v in raw.items() if k not in _PROJECT_WIRE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"projectName": self.project_name}
        if self.project_path is not None:
            out["projectPath"] = self.project_path
        out.update(self.extra)
        out["tasks"] = [t.to_dict() for t in self.tasks]
        return out

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


@dataclass
class ProjectFile:
    """
    One task file as held by the store.

    Either valid (data and context populated, parse_error None) or an
    error record (placeholder data with no tasks, empty context, and a
    reason). Both keep file_path so the UI can link to the file.
    """
    file_path: Path
    data: ProjectData
    context: str = ""
    parse_error: Optional[str] = None
    error_kind: Optional[ParseErrorKind] = None
    repaired: bool = False  # header only parsed after JSON repair

    @property
    def file_name(self) -> str:
        return self.file_path.name

    @property
    def is_valid(self) -> bool:
        return self.parse_error is None

    def to_dict(self, include_context: bool = True) -> dict[str, Any]:
        """Outbound shape consumed by the UI."""
        out: dict[str, Any] = {
            "filePath": str(self.file_path),
            "fileName": self.file_name,
            "data": self.data.to_dict(),
            "context": self.context if include_context else "",
        }
        if self.parse_error is not None:
            out["parseError"] = self.parse_error
        return out


def visible_tasks(project: ProjectFile) -> list[Task]:
    """Tasks that are not system/template rows."""
    return [t for t in project.data.tasks if not t.is_system]


def get_active_task(project: ProjectFile) -> Optional[Task]:
    for task in visible_tasks(project):
        if task.status == "doing":
            return task
    return None


def get_task_stats(project: ProjectFile) -> tuple[int, int]:
    """(done, total) over visible tasks."""
    tasks = visible_tasks(project)
    done = sum(1 for t in tasks if t.status == "done")
    return done, len(tasks)
