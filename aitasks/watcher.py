"""
Watchdog adapter: turns filesystem events in the tasks folder into
TaskSync.on_file_event calls.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .debounce import EventKind
from .store import is_task_file_name

if TYPE_CHECKING:
    from .sync import TaskSync

logger = logging.getLogger(__name__)


class TaskFileHandler(FileSystemEventHandler):
    """
    Forwards create/modify/delete/move events for task files.

    We use the specific handlers rather than on_any_event so plain reads
    (which can raise access events on some platforms) are ignored. A move
    is a delete of the source plus a create of the destination; editors
    that save via rename show up that way.
    """

    def __init__(self, sync: "TaskSync"):
        super().__init__()
        self._sync = sync

    def _forward(self, path, kind: EventKind) -> None:
        path = str(path)
        if not is_task_file_name(Path(path).name):
            return
        logger.debug("File %s: %s", kind.value, path)
        self._sync.on_file_event(path, kind)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path, EventKind.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path, EventKind.CHANGED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path, EventKind.DELETED)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._forward(event.src_path, EventKind.DELETED)
        self._forward(event.dest_path, EventKind.CREATED)


def watch_folder(folder: Path, sync: "TaskSync") -> Observer:
    """Start a watchdog observer on `folder` (non-recursive) and return it."""
    observer = Observer()
    observer.schedule(TaskFileHandler(sync), str(folder), recursive=False)
    observer.daemon = True
    observer.start()
    return observer
