"""
Reconciliation of a freshly parsed record against its cached version.

Automated writers fabricate or omit timestamps, so the engine owns
createdAt/updatedAt: it infers which tasks actually changed by diffing
against the previous version of the same file and stamps them itself.
"""

import logging
from typing import Optional

from .types import ProjectFile, Task, utc_now

logger = logging.getLogger(__name__)

# A change to any of these counts as an update to the task
TRACKED_FIELDS = ("status", "title", "priority", "type")


def _tracked_value(task: Task, name: str):
    # An absent priority already means the default
    if name == "priority":
        return task.effective_priority
    return getattr(task, name)


def changed_fields(fresh: Task, cached: Task) -> list[str]:
    return [f for f in TRACKED_FIELDS if _tracked_value(fresh, f) != _tracked_value(cached, f)]


def reconcile(
    fresh: ProjectFile,
    cached: Optional[ProjectFile],
    now: Optional[str] = None,
) -> tuple[ProjectFile, bool]:
    """
    Stamp timestamps on `fresh` (in place) based on what changed since `cached`.

    - Task id not in cached: createdAt and updatedAt set to now.
    - Tracked field differs: updatedAt set to now.
    - createdAt is carried forward from the cached task whenever it has one.

    Error records are returned untouched. An absent or error cached record
    makes every task new.

    Returns:
        (fresh, mutated) where mutated means the record must be rewritten.
    """
    if not fresh.is_valid:
        return fresh, False

    now = now or utc_now()
    previous: dict[str, Task] = {}
    if cached is not None and cached.is_valid:
        for task in cached.data.tasks:
            previous.setdefault(task.id, task)

    mutated = False
    for task in fresh.data.tasks:
        if task.is_system:
            continue
        old = previous.get(task.id)
        if old is None:
            task.created_at = now
            task.updated_at = now
            mutated = True
            logger.info("New task %s in %s", task.id, fresh.file_name)
            continue

        if old.created_at is not None and task.created_at != old.created_at:
            task.created_at = old.created_at
            mutated = True

        diff = changed_fields(task, old)
        if diff:
            task.updated_at = now
            mutated = True
            logger.info("Task %s in %s changed: %s", task.id, fresh.file_name, ", ".join(diff))
        elif task.updated_at is None:
            task.updated_at = old.updated_at or task.created_at or now
            mutated = True

        if task.created_at is None:
            task.created_at = task.updated_at
            mutated = True

    return fresh, mutated
