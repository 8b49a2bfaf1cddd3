"""
Sync engine: keeps a TaskStore in step with the tasks folder.

Control flow for a file event:

    watcher -> on_file_event -> Debouncer -> process_event
        -> parse (+ repair) -> reconcile -> trim -> self-write? -> store -> listeners

Writes made here (timestamp stamping, repaired headers, retention trims,
UI operations) open a WriteSuppressor window for the path first, so the
watcher notification they cause doesn't trigger another pass.

Python threads are preemptive (watchdog observer, debounce timer, UI
caller), so passes are serialized with a re-entrant lock.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional

from . import operations
from .codec import parse_task_file, save_task_file
from .config import TaskConfig
from .debounce import Debouncer, EventKind, WriteSuppressor
from .errors import ParseErrorKind
from .folder import ensure_tasks_folder, sync_auto_check_flag
from .reconcile import reconcile
from .repair import JsonRepairer
from .retention import trim_done_tasks
from .store import TaskStore, is_task_file_name
from .types import ProjectFile, Task, get_active_task, normalize_path, utc_now

logger = logging.getLogger(__name__)

Listener = Callable[[list[dict[str, Any]]], None]

DEFAULT_STATUS_LABEL = "AI Tasks"
STATUS_LABEL_MAX = 40


class TaskSync:
    """
    One host session over a tasks folder.

    Owns the store, the debouncer and the write suppressor. Construct one
    per session; `start()` loads the folder and starts watching it,
    `stop()` tears the watcher down.
    """

    def __init__(
        self,
        config: TaskConfig,
        store: Optional[TaskStore] = None,
        *,
        now: Callable[[], str] = utc_now,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
        repairer: Optional[JsonRepairer] = None,
    ):
        self.config = config
        self.store = store if store is not None else TaskStore(repairer)
        self._now = now
        self._repairer = repairer
        self._timer_factory = timer_factory
        self._clock = clock
        self.debouncer = Debouncer(self.process_event, config.debounce_seconds, timer_factory)
        self.suppressor = WriteSuppressor(config.suppress_seconds, clock)
        # Last valid version of each file, the reconciliation baseline
        self._baselines: dict[str, ProjectFile] = {}
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()
        self._observer = None

    @property
    def folder(self) -> Path:
        return self.config.tasks_folder

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.store.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # -------------------------------------------------------------------------
    # Loading and reconciliation
    # -------------------------------------------------------------------------

    def _write(self, project: ProjectFile) -> None:
        """Persist a record we changed, hiding the resulting file event."""
        self.suppressor.mark(project.file_path)
        save_task_file(project)
        logger.info("Rewrote %s", project.file_name)

    def full_reload(self) -> list[ProjectFile]:
        """
        Rebuild the store from the folder.

        Establishes the reconciliation baseline without stamping: repaired
        headers are rewritten and retention applied, nothing else.
        """
        with self._lock:
            projects = self.store.load_all(self.folder)
            self._baselines.clear()
            for project in projects:
                if not project.is_valid:
                    continue
                removed = trim_done_tasks(project, self.config.max_done_tasks)
                if project.repaired or removed:
                    self._write(project)
                self._baselines[normalize_path(project.file_path)] = project
        self._notify()
        return projects

    def _drop(self, path) -> None:
        with self._lock:
            removed = self.store.remove(path)
            self._baselines.pop(normalize_path(path), None)
        if removed is not None:
            logger.info("Removed %s from cache", Path(path).name)
        self._notify()

    def reload_path(self, path) -> Optional[ProjectFile]:
        """Re-parse one file and reconcile it against its baseline.

        A file that vanished is treated as deleted and returns None.
        """
        path = Path(path)
        key = normalize_path(path)
        with self._lock:
            if not path.exists():
                self._drop(path)
                return None

            fresh = parse_task_file(path, self._repairer)
            if fresh.is_valid:
                fresh, mutated = reconcile(fresh, self._baselines.get(key), self._now())
                removed = trim_done_tasks(fresh, self.config.max_done_tasks)
                if fresh.repaired or mutated or removed:
                    self._write(fresh)
                self._baselines[key] = fresh
            elif fresh.error_kind is ParseErrorKind.UNREADABLE and not path.exists():
                self._drop(path)
                return None
            else:
                logger.warning("Cannot parse %s: %s", path.name, fresh.parse_error)

            self.store.upsert(fresh)
        self._notify()
        return fresh

    # -------------------------------------------------------------------------
    # File events
    # -------------------------------------------------------------------------

    def on_file_event(self, path, kind: EventKind) -> None:
        """Entry point for raw watcher notifications."""
        if not is_task_file_name(Path(path).name):
            return
        if kind is not EventKind.DELETED and self.suppressor.is_suppressed(path):
            logger.debug("Ignoring %s event for own write to %s", kind.value, Path(path).name)
            return
        self.debouncer.submit(str(path), kind)

    def process_event(self, path: str, kind: EventKind) -> None:
        """Debounced handler: one pass for the last event of a burst."""
        if kind is EventKind.DELETED:
            self._drop(path)
        else:
            self.reload_path(path)

    # -------------------------------------------------------------------------
    # Task operations (UI intents)
    # -------------------------------------------------------------------------

    def _mutate(
        self, file_path, op: Callable[..., Optional[ProjectFile]], *args, stamped: bool = True,
    ) -> Optional[ProjectFile]:
        """Run an operation on a reconciled copy of the file.

        External edits whose debounced event hasn't fired yet are stamped
        here with the same `now` the operation uses, so they aren't folded
        into the baseline unstamped.
        """
        path = Path(file_path)
        key = normalize_path(path)
        now = self._now()

        def load(p: Path) -> ProjectFile:
            fresh = parse_task_file(p, self._repairer)
            if fresh.is_valid:
                fresh, _ = reconcile(fresh, self._baselines.get(key), now)
            return fresh

        with self._lock:
            self.suppressor.mark(path)
            if stamped:
                result = op(path, *args, now, loader=load)
            else:
                result = op(path, *args, loader=load)
            if result is None:
                return None
            if trim_done_tasks(result, self.config.max_done_tasks):
                self._write(result)
            self.store.upsert(result)
            self._baselines[key] = result
        self._notify()
        return result

    def add_task(self, file_path, title: str) -> Optional[ProjectFile]:
        return self._mutate(file_path, operations.add_task, title)

    def set_status(self, file_path, task_id: str, status: str) -> Optional[ProjectFile]:
        return self._mutate(file_path, operations.set_status, task_id, status)

    def set_priority(self, file_path, task_id: str, priority: Optional[str]) -> Optional[ProjectFile]:
        return self._mutate(file_path, operations.set_priority, task_id, priority)

    def set_type(self, file_path, task_id: str, task_type: Optional[str]) -> Optional[ProjectFile]:
        return self._mutate(file_path, operations.set_type, task_id, task_type)

    def delete_task(self, file_path, task_id: str) -> Optional[ProjectFile]:
        return self._mutate(file_path, operations.delete_task, task_id, stamped=False)

    def clear_done(self, file_path) -> Optional[ProjectFile]:
        return self._mutate(file_path, operations.clear_done, stamped=False)

    # -------------------------------------------------------------------------
    # Workspace queries
    # -------------------------------------------------------------------------

    def active_task(self, workspace_path) -> Optional[tuple[ProjectFile, Task]]:
        """The task marked doing in the workspace's project, if any."""
        project = self.store.find_for_workspace(workspace_path)
        if project is None:
            return None
        task = get_active_task(project)
        if task is None:
            return None
        return project, task

    def status_label(self, workspace_path=None) -> str:
        """Short status-bar text: the active task title, or a default."""
        if workspace_path is None:
            return DEFAULT_STATUS_LABEL
        active = self.active_task(workspace_path)
        if active is None:
            return DEFAULT_STATUS_LABEL
        title = active[1].title or active[1].id
        if len(title) > STATUS_LABEL_MAX:
            title = title[:STATUS_LABEL_MAX - 3] + "..."
        return title

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, watch: bool = True) -> None:
        ensure_tasks_folder(self.folder)
        sync_auto_check_flag(self.folder, self.config.auto_check_tasks)
        self.full_reload()
        if watch:
            from .watcher import watch_folder
            self._observer = watch_folder(self.folder, self)
            logger.info("Watching %s", self.folder)

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        self.debouncer.cancel()

    def reconfigure(self, config: TaskConfig) -> None:
        """Apply new settings; rewires the watcher when the folder moved."""
        watching = self._observer is not None
        folder_changed = normalize_path(config.tasks_folder) != normalize_path(self.folder)
        if folder_changed:
            self.stop()
        self.debouncer.cancel()
        self.config = config
        self.debouncer = Debouncer(self.process_event, config.debounce_seconds, self._timer_factory)
        self.suppressor = WriteSuppressor(config.suppress_seconds, self._clock)
        if folder_changed:
            self.start(watch=watching)
        else:
            sync_auto_check_flag(self.folder, config.auto_check_tasks)

    def __enter__(self) -> "TaskSync":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
