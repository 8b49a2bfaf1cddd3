"""
Shared pytest fixtures for ai-tasks tests.

Provides a temporary tasks folder, a file writer, and deterministic
stand-ins for the debounce timer and the clocks.
"""

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from aitasks.config import TaskConfig
from aitasks.sync import TaskSync


FIXED_NOW = "2025-06-01T12:00:00.000Z"


class FakeTimer:
    """
    threading.Timer stand-in that never fires by itself.

    Tests fire it explicitly, which makes the debounce order observable
    without sleeping.
    """

    created: list["FakeTimer"] = []

    def __init__(self, interval: float, function: Callable[[], None]):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function()


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class SequenceNow:
    """utc_now stand-in that hands out increasing timestamps."""

    def __init__(self):
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        return f"2025-06-01T12:00:{self.calls:02d}.000Z"


def make_task(id: str, status: str = "todo", *, title: str | None = None,
              created: str = "2024-01-01T00:00:00Z",
              updated: str | None = None, **extra: Any) -> dict[str, Any]:
    task = {
        "id": id,
        "title": title if title is not None else f"Task {id}",
        "status": status,
        "createdAt": created,
        "updatedAt": updated if updated is not None else created,
    }
    task.update(extra)
    return task


def render_file(header: dict[str, Any], context: str = "## Notes") -> str:
    return f"---\n{json.dumps(header, indent=2)}\n---\n\n{context}\n"


@pytest.fixture(autouse=True)
def _reset_fake_timers():
    FakeTimer.created = []
    yield
    FakeTimer.created = []


@pytest.fixture
def tasks_folder(tmp_path) -> Path:
    folder = tmp_path / "ai-tasks"
    folder.mkdir()
    return folder


@pytest.fixture
def write_file(tasks_folder) -> Callable[..., Path]:
    """Write a task file into the folder from a header dict or raw text."""

    def _write(name: str, header: dict[str, Any] | str, context: str = "## Notes") -> Path:
        path = tasks_folder / name
        text = header if isinstance(header, str) else render_file(header, context)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tasks_folder) -> TaskConfig:
    return TaskConfig(tasks_folder=tasks_folder)


@pytest.fixture
def sync(config, fake_clock) -> TaskSync:
    """TaskSync with fake timers, a hand-driven clock and a sequential now()."""
    return TaskSync(config, now=SequenceNow(), timer_factory=FakeTimer, clock=fake_clock)


@pytest.fixture
def timer_cls() -> type[FakeTimer]:
    """The FakeTimer class; its `created` list records every timer started."""
    return FakeTimer
