"""Tests for the watchdog event adapter."""

from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from aitasks.debounce import EventKind
from aitasks.watcher import TaskFileHandler


class RecordingSync:
    def __init__(self):
        self.events = []

    def on_file_event(self, path, kind):
        self.events.append((path, kind))


class TestTaskFileHandler:
    def test_maps_event_kinds(self):
        sync = RecordingSync()
        handler = TaskFileHandler(sync)

        handler.dispatch(FileCreatedEvent("/f/a.md"))
        handler.dispatch(FileModifiedEvent("/f/a.md"))
        handler.dispatch(FileDeletedEvent("/f/a.md"))

        assert sync.events == [
            ("/f/a.md", EventKind.CREATED),
            ("/f/a.md", EventKind.CHANGED),
            ("/f/a.md", EventKind.DELETED),
        ]

    def test_move_is_delete_plus_create(self):
        sync = RecordingSync()
        TaskFileHandler(sync).dispatch(FileMovedEvent("/f/a.md.tmp", "/f/a.md"))
        # the temp name isn't a task file, so only the create survives
        assert sync.events == [("/f/a.md", EventKind.CREATED)]

    def test_rename_between_task_files(self):
        sync = RecordingSync()
        TaskFileHandler(sync).dispatch(FileMovedEvent("/f/old.md", "/f/new.md"))
        assert sync.events == [
            ("/f/old.md", EventKind.DELETED),
            ("/f/new.md", EventKind.CREATED),
        ]

    def test_ignores_directories_and_other_files(self):
        sync = RecordingSync()
        handler = TaskFileHandler(sync)
        handler.dispatch(DirModifiedEvent("/f"))
        handler.dispatch(FileModifiedEvent("/f/ai-tasks-ops.log"))
        handler.dispatch(FileModifiedEvent("/f/_template.md"))
        assert sync.events == []
