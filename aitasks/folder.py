"""
Tasks folder bootstrap: creation, example seeding, the auto-check flag,
and scaffolding a task file for a workspace.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from .codec import parse_task_file, save_task_file
from .store import list_task_files
from .types import ProjectData, ProjectFile, Task, normalize_path, utc_now

logger = logging.getLogger(__name__)

EXAMPLE_FILE_NAME = "example-project.md"
AUTO_CHECK_FLAG = ".auto-check"

EXAMPLE_CONTEXT = """## Getting Started

Delete this file once you're ready, or edit it to track a real project.
Task files are simple Markdown with JSON frontmatter. Any AI assistant that can read and write files can manage your tasks automatically."""

NEW_PROJECT_CONTEXT = """## Context

Notes for whoever picks up these tasks: architecture, conventions, open questions."""


def seed_example_file(folder: Path) -> Path:
    now = utc_now()
    project = ProjectFile(
        file_path=Path(folder) / EXAMPLE_FILE_NAME,
        data=ProjectData(
            project_name="Example Project",
            tasks=[
                Task(id="t1",
                     title="This is an example task, right-click to change status or priority",
                     status="doing", priority="medium", created_at=now, updated_at=now),
                Task(id="t2",
                     title="Add your own tasks with the + button, or let your AI assistant manage them",
                     status="todo", priority="low", created_at=now, updated_at=now),
            ],
        ),
        context=EXAMPLE_CONTEXT,
    )
    save_task_file(project)
    return project.file_path


def ensure_tasks_folder(folder: Path) -> bool:
    """Create the folder (seeded with an example) if missing. Returns True if created."""
    folder = Path(folder)
    if folder.exists():
        return False
    folder.mkdir(parents=True, exist_ok=True)
    seed_example_file(folder)
    logger.info("Created tasks folder %s", folder)
    return True


def sync_auto_check_flag(folder: Path, enabled: bool) -> None:
    """Keep the presence flag read by the external auto-check feature in step with config."""
    flag = Path(folder) / AUTO_CHECK_FLAG
    if enabled and not flag.exists():
        flag.parent.mkdir(parents=True, exist_ok=True)
        flag.write_text("", encoding="utf-8")
        logger.debug("Created %s", flag)
    elif not enabled and flag.exists():
        flag.unlink()
        logger.debug("Removed %s", flag)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "project"


def scaffold_project(
    folder: Path, workspace_path: Path, name: Optional[str] = None
) -> ProjectFile:
    """
    Create a task file for a workspace, or return the one that exists.

    An existing valid file whose projectPath is the workspace wins over
    creating a new one.
    """
    folder = Path(folder)
    workspace_key = normalize_path(workspace_path)
    for path in list_task_files(folder):
        existing = parse_task_file(path)
        if (existing.is_valid and existing.data.project_path
                and normalize_path(existing.data.project_path) == workspace_key):
            return existing

    name = name or Path(workspace_path).name or "Project"
    slug = slugify(name)
    target = folder / f"{slug}.md"
    counter = 2
    while target.exists():
        target = folder / f"{slug}-{counter}.md"
        counter += 1

    folder.mkdir(parents=True, exist_ok=True)
    project = ProjectFile(
        file_path=target,
        data=ProjectData(project_name=name, project_path=str(workspace_path), tasks=[]),
        context=NEW_PROJECT_CONTEXT,
    )
    save_task_file(project)
    logger.info("Scaffolded %s for %s", target.name, workspace_path)
    return project
