"""Retention: cap the number of done tasks kept in a project."""

import logging
from datetime import datetime, timezone
from typing import Optional

from .types import ProjectFile, Task, parse_utc_timestamp

logger = logging.getLogger(__name__)

# Missing or unparseable timestamps sort as oldest
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _instant(ts: Optional[str]) -> datetime:
    if not ts:
        return _EPOCH
    try:
        return parse_utc_timestamp(ts)
    except (ValueError, TypeError, AttributeError, OverflowError):
        return _EPOCH


def _age_key(indexed: tuple[int, Task]) -> tuple[datetime, datetime, int]:
    index, task = indexed
    return (_instant(task.updated_at or task.created_at), _instant(task.created_at), index)


def trim_done_tasks(project: ProjectFile, cap: int) -> list[Task]:
    """
    Remove the oldest done tasks beyond `cap`, in place.

    cap <= 0 disables retention. Only visible done tasks are eligible;
    oldest is by updatedAt, then createdAt, then position in the file.
    Timestamps are compared as instants, so "...:01Z" and "...:01.000Z"
    are the same moment.

    Returns:
        The removed tasks (empty when nothing was trimmed).
    """
    if cap <= 0 or not project.is_valid:
        return []

    done = [
        (index, task) for index, task in enumerate(project.data.tasks)
        if not task.is_system and task.status == "done"
    ]
    excess = len(done) - cap
    if excess <= 0:
        return []

    evict = sorted(done, key=_age_key)[:excess]
    evict_ids = {id(task) for _, task in evict}
    project.data.tasks = [t for t in project.data.tasks if id(t) not in evict_ids]

    removed = [task for _, task in evict]
    logger.info(
        "Trimmed %d done task(s) from %s (cap %d): %s",
        len(removed), project.file_name, cap, ", ".join(t.id for t in removed),
    )
    return removed
