"""
Task-level operations on a task file.

Each operation re-reads the file, mutates it, saves it, and returns the
new record. They return None instead of raising when the file doesn't
parse, the task id is gone or is a system row, or there is nothing to do;
callers check the result before notifying anyone.

`loader` replaces the plain re-read; the sync engine passes one that
reconciles the file against its baseline before the mutation applies.
"""

import logging
import re
from pathlib import Path
from typing import Any, Callable, Optional

from .codec import parse_task_file, save_task_file
from .types import PRIORITIES, STATUSES, TASK_TYPES, ProjectFile, Task, utc_now

logger = logging.getLogger(__name__)

_SEQUENTIAL_ID = re.compile(r"^t(\d+)$")

ARCHIVE_HEADING = "## Archived Tasks"

Loader = Callable[[Path], ProjectFile]


def _load(file_path: Path, loader: Optional[Loader] = None) -> Optional[ProjectFile]:
    project = (loader or parse_task_file)(Path(file_path))
    if not project.is_valid:
        logger.debug("Skipping mutation of %s: %s", project.file_name, project.parse_error)
        return None
    return project


def _mutable_task(project: ProjectFile, task_id: str) -> Optional[Task]:
    task = project.data.find_task(task_id)
    if task is None:
        logger.debug("Task %s not found in %s", task_id, project.file_name)
        return None
    if task.is_system:
        logger.debug("Task %s in %s is a system row", task_id, project.file_name)
        return None
    return task


def next_task_id(project: ProjectFile) -> str:
    highest = 0
    for task in project.data.tasks:
        match = _SEQUENTIAL_ID.match(task.id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"t{highest + 1}"


def add_task(file_path: Path, title: str, now: Optional[str] = None,
             loader: Optional[Loader] = None) -> Optional[ProjectFile]:
    title = (title or "").strip()
    if not title:
        return None
    project = _load(file_path, loader)
    if project is None:
        return None
    now = now or utc_now()
    task = Task(id=next_task_id(project), title=title, status="todo",
                created_at=now, updated_at=now)
    project.data.tasks.append(task)
    save_task_file(project)
    logger.info("Added task %s to %s", task.id, project.file_name)
    return project


def _set_field(
    file_path: Path, task_id: str, attr: str, value: Optional[str],
    allowed: tuple[str, ...], now: Optional[str], nullable: bool,
    loader: Optional[Loader],
) -> Optional[ProjectFile]:
    if value is None and not nullable:
        raise ValueError(f"{attr} is required")
    if value is not None and value not in allowed:
        raise ValueError(f"Invalid {attr} {value!r}; expected one of {', '.join(allowed)}")
    project = _load(file_path, loader)
    if project is None:
        return None
    task = _mutable_task(project, task_id)
    if task is None:
        return None
    if getattr(task, attr) == value:
        return None
    setattr(task, attr, value)
    task.updated_at = now or utc_now()
    save_task_file(project)
    logger.info("Set %s=%s on task %s in %s", attr, value, task_id, project.file_name)
    return project


def set_status(file_path: Path, task_id: str, status: str,
               now: Optional[str] = None, loader: Optional[Loader] = None) -> Optional[ProjectFile]:
    return _set_field(file_path, task_id, "status", status, STATUSES, now, nullable=False, loader=loader)


def set_priority(file_path: Path, task_id: str, priority: Optional[str],
                 now: Optional[str] = None, loader: Optional[Loader] = None) -> Optional[ProjectFile]:
    return _set_field(file_path, task_id, "priority", priority, PRIORITIES, now, nullable=True, loader=loader)


def set_type(file_path: Path, task_id: str, task_type: Optional[str],
             now: Optional[str] = None, loader: Optional[Loader] = None) -> Optional[ProjectFile]:
    return _set_field(file_path, task_id, "type", task_type, TASK_TYPES, now, nullable=True, loader=loader)


def delete_task(file_path: Path, task_id: str, loader: Optional[Loader] = None) -> Optional[ProjectFile]:
    project = _load(file_path, loader)
    if project is None:
        return None
    task = _mutable_task(project, task_id)
    if task is None:
        return None
    project.data.tasks = [t for t in project.data.tasks if t is not task]
    save_task_file(project)
    logger.info("Deleted task %s from %s", task_id, project.file_name)
    return project


def clear_done(file_path: Path, loader: Optional[Loader] = None) -> Optional[ProjectFile]:
    project = _load(file_path, loader)
    if project is None:
        return None
    kept = [t for t in project.data.tasks if t.is_system or t.status != "done"]
    removed = len(project.data.tasks) - len(kept)
    if removed == 0:
        logger.debug("No done tasks to clear in %s", project.file_name)
        return None
    project.data.tasks = kept
    save_task_file(project)
    logger.info("Cleared %d done task(s) from %s", removed, project.file_name)
    return project


def archive_done_tasks(project: ProjectFile) -> int:
    """
    Move done tasks out of the header into a Markdown checklist, in place.

    Lines go under an existing "## Archived Tasks" heading when the context
    has one, otherwise a new section is appended. Returns the number of
    tasks archived; the caller saves.
    """
    done = [t for t in project.data.tasks if not t.is_system and t.status == "done"]
    if not done:
        return 0
    done_ids = {id(t) for t in done}
    project.data.tasks = [t for t in project.data.tasks if id(t) not in done_ids]

    lines = "\n".join(f"- [x] {t.title or t.id} ({t.updated_at or 'unknown'})" for t in done)
    context = project.context
    if ARCHIVE_HEADING in context:
        context = context.replace(ARCHIVE_HEADING, f"{ARCHIVE_HEADING}\n{lines}", 1)
    elif context.strip():
        context = f"{context.rstrip()}\n\n{ARCHIVE_HEADING}\n{lines}"
    else:
        context = f"{ARCHIVE_HEADING}\n{lines}"
    project.context = context
    return len(done)


def summarize(project: ProjectFile) -> dict[str, Any]:
    """Header data with done tasks filtered out."""
    data = project.data.to_dict()
    data["tasks"] = [t for t in data["tasks"] if t.get("status") != "done"]
    return data
