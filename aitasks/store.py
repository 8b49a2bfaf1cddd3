"""
In-memory cache of task files.

The store is the single source of truth handed to the UI: it is rebuilt
wholesale on a full reload and patched incrementally on file events.
Records are keyed by normalized file path.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from .codec import parse_task_file
from .repair import JsonRepairer
from .types import SYSTEM_ID_PREFIX, TASK_FILE_SUFFIX, ProjectFile, normalize_path

logger = logging.getLogger(__name__)


def is_task_file_name(name: str) -> bool:
    """Eligible task file: .md, not a system (_) or hidden (.) file."""
    return (
        name.endswith(TASK_FILE_SUFFIX)
        and not name.startswith(SYSTEM_ID_PREFIX)
        and not name.startswith(".")
    )


def list_task_files(folder: Path) -> list[Path]:
    """Task files directly inside `folder`, sorted by name.

    A missing folder yields an empty list.
    """
    folder = Path(folder)
    if not folder.is_dir():
        return []
    return [
        entry for entry in sorted(folder.iterdir())
        if entry.is_file() and is_task_file_name(entry.name)
    ]


class TaskStore:
    """
    Process-wide mapping from file path to parsed project.

    One instance per host session; tests create as many as they like.
    """

    def __init__(self, repairer: Optional[JsonRepairer] = None):
        self._projects: list[ProjectFile] = []
        self._repairer = repairer

    def __len__(self) -> int:
        return len(self._projects)

    @property
    def projects(self) -> list[ProjectFile]:
        return list(self._projects)

    def load_all(self, folder: Path) -> list[ProjectFile]:
        """Parse every task file in `folder` and replace the cache.

        Each file is parsed independently; a broken file becomes an error
        record and never stops the scan.
        """
        projects = []
        for path in list_task_files(folder):
            project = parse_task_file(path, self._repairer)
            if not project.is_valid:
                logger.warning("Cannot parse %s: %s", path.name, project.parse_error)
            projects.append(project)
        self._projects = projects
        logger.debug("Loaded %d task file(s) from %s", len(projects), folder)
        return self.projects

    def _index(self, path) -> int:
        key = normalize_path(path)
        for i, project in enumerate(self._projects):
            if normalize_path(project.file_path) == key:
                return i
        return -1

    def get(self, path) -> Optional[ProjectFile]:
        idx = self._index(path)
        return self._projects[idx] if idx >= 0 else None

    def upsert(self, project: ProjectFile) -> None:
        """Replace the record with the same path identity, or append."""
        idx = self._index(project.file_path)
        if idx >= 0:
            self._projects[idx] = project
        else:
            self._projects.append(project)

    def remove(self, path) -> Optional[ProjectFile]:
        idx = self._index(path)
        if idx < 0:
            return None
        return self._projects.pop(idx)

    def find(self, predicate: Callable[[ProjectFile], bool]) -> Optional[ProjectFile]:
        for project in self._projects:
            if predicate(project):
                return project
        return None

    def find_for_workspace(self, workspace_path) -> Optional[ProjectFile]:
        """Valid project whose projectPath is the given workspace."""
        key = normalize_path(workspace_path)
        return self.find(
            lambda p: p.is_valid
            and bool(p.data.project_path)
            and normalize_path(p.data.project_path) == key
        )

    def snapshot(self) -> list[dict[str, Any]]:
        """Read-only view for the UI. Context is never displayed, so it's dropped."""
        return [p.to_dict(include_context=False) for p in self._projects]
