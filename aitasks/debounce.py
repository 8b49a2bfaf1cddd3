"""
Coalescing of raw file-change notifications.

The watcher delivers change/create/delete events with no ordering or
debounce guarantee. Debouncer collapses a burst into one delayed pass;
WriteSuppressor hides the events caused by our own writes.
"""

import functools
import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

from .types import normalize_path

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3
DEFAULT_SUPPRESS_SECONDS = 1.0


class EventKind(str, Enum):
    CHANGED = "changed"
    CREATED = "created"
    DELETED = "deleted"


class Debouncer:
    """
    Single-slot delayed dispatcher.

    Every submit() cancels the pending timer and starts a new one, so the
    callback runs once, `interval` seconds after the last event of a burst,
    with the path and kind of that last event. Unrelated files submitted
    close together funnel through the same slot; the last one wins.
    """

    def __init__(
        self,
        callback: Callable[[str, EventKind], None],
        interval: float = DEFAULT_DEBOUNCE_SECONDS,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self._callback = callback
        self._interval = interval
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[tuple[str, EventKind]] = None
        # Bumped on every submit/cancel; a timer only fires its own generation
        self._generation = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def pending(self) -> Optional[tuple[str, EventKind]]:
        return self._pending

    def submit(self, path: str, kind: EventKind) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (str(path), kind)
            self._generation += 1
            timer = self._timer_factory(
                self._interval, functools.partial(self._fire, self._generation))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A superseded timer may already be waiting on the lock
            if generation != self._generation:
                return
            pending = self._pending
            self._pending = None
            self._timer = None
        if pending is not None:
            self._callback(*pending)

    def flush(self) -> bool:
        """Run the pending call now. Returns False if nothing was pending."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            has_pending = self._pending is not None
            generation = self._generation
        if has_pending:
            self._fire(generation)
        return has_pending

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
            self._generation += 1


class WriteSuppressor:
    """
    Time-boxed per-path flag set around the engine's own writes.

    A write that takes longer than the window can still be seen by the
    watcher and reconciled once more; that pass finds nothing to change.
    """

    def __init__(
        self,
        window: float = DEFAULT_SUPPRESS_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._window = window
        self._clock = clock
        self._until: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def window(self) -> float:
        return self._window

    def mark(self, path) -> None:
        with self._lock:
            self._until[normalize_path(path)] = self._clock() + self._window

    def is_suppressed(self, path) -> bool:
        key = normalize_path(path)
        with self._lock:
            until = self._until.get(key)
            if until is None:
                return False
            if self._clock() >= until:
                del self._until[key]
                return False
            return True
