"""
Message contract with the UI that renders the task table.

Inbound messages are user intents, validated here and dispatched to the
sync engine. Outbound, the UI gets a full snapshot of the store (context
omitted) every time the store changes.
"""

import logging
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .sync import TaskSync

logger = logging.getLogger(__name__)

Status = Literal["todo", "doing", "done"]
Priority = Literal["high", "medium", "low"]
TaskType = Literal["bug", "feature", "task"]


class _Intent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class OpenFile(_Intent):
    type: Literal["openFile"]
    file_path: str = Field(alias="filePath")


class OpenSettings(_Intent):
    type: Literal["openSettings"]


class AddTask(_Intent):
    type: Literal["addTask"]
    file_path: str = Field(alias="filePath")
    title: str = Field(min_length=1)


class SetStatus(_Intent):
    type: Literal["setStatus"]
    file_path: str = Field(alias="filePath")
    task_id: str = Field(alias="taskId")
    status: Status


class SetPriority(_Intent):
    type: Literal["setPriority"]
    file_path: str = Field(alias="filePath")
    task_id: str = Field(alias="taskId")
    priority: Optional[Priority] = None


class SetType(_Intent):
    type: Literal["setType"]
    file_path: str = Field(alias="filePath")
    task_id: str = Field(alias="taskId")
    task_type: Optional[TaskType] = Field(default=None, alias="taskType")


class DeleteTask(_Intent):
    type: Literal["deleteTask"]
    file_path: str = Field(alias="filePath")
    task_id: str = Field(alias="taskId")
    # Status as the UI saw it; only used to decide whether to warn
    status: Optional[str] = None


class ClearDone(_Intent):
    type: Literal["clearDone"]
    file_path: str = Field(alias="filePath")


Intent = Annotated[
    Union[OpenFile, OpenSettings, AddTask, SetStatus, SetPriority, SetType, DeleteTask, ClearDone],
    Field(discriminator="type"),
]
_intent_adapter = TypeAdapter(Intent)


def parse_intent(raw: dict[str, Any]):
    """Validate a raw UI message. Raises pydantic.ValidationError."""
    return _intent_adapter.validate_python(raw)


def update_message(snapshot: list[dict[str, Any]]) -> dict[str, Any]:
    return {"type": "update", "projects": snapshot}


class MessageHandler:
    """
    Bridges one UI surface to a TaskSync session.

    Args:
        sync: The session whose store the UI renders
        post: Sends an outbound message to the UI
        open_file: Opens a task file in an editor (host collaborator)
        open_settings: Opens the settings page (host collaborator)
        confirm: Asked before deleting a task that isn't done; returns
            True to go ahead. Without it, deletes proceed.
    """

    def __init__(
        self,
        sync: TaskSync,
        post: Callable[[dict[str, Any]], None],
        *,
        open_file: Optional[Callable[[str], None]] = None,
        open_settings: Optional[Callable[[], None]] = None,
        confirm: Optional[Callable[[DeleteTask], bool]] = None,
    ):
        self._sync = sync
        self._post = post
        self._open_file = open_file
        self._open_settings = open_settings
        self._confirm = confirm
        self._unsubscribe = sync.subscribe(self._on_update)

    def _on_update(self, snapshot: list[dict[str, Any]]) -> None:
        self._post(update_message(snapshot))

    def refresh(self) -> None:
        """Push the current store contents without waiting for a change."""
        self._on_update(self._sync.store.snapshot())

    def dispose(self) -> None:
        self._unsubscribe()

    def handle(self, raw: dict[str, Any]) -> bool:
        """
        Dispatch one inbound message.

        Returns True when a task file changed. Invalid messages are logged
        and ignored; a UI sending garbage must not take the host down.
        """
        try:
            intent = parse_intent(raw)
        except ValidationError as e:
            logger.warning("Ignoring invalid UI message %r: %s", raw.get("type"), e)
            return False

        sync = self._sync
        if isinstance(intent, OpenFile):
            if self._open_file is not None:
                self._open_file(intent.file_path)
            return False
        if isinstance(intent, OpenSettings):
            if self._open_settings is not None:
                self._open_settings()
            return False
        if isinstance(intent, AddTask):
            result = sync.add_task(intent.file_path, intent.title)
        elif isinstance(intent, SetStatus):
            result = sync.set_status(intent.file_path, intent.task_id, intent.status)
        elif isinstance(intent, SetPriority):
            result = sync.set_priority(intent.file_path, intent.task_id, intent.priority)
        elif isinstance(intent, SetType):
            result = sync.set_type(intent.file_path, intent.task_id, intent.task_type)
        elif isinstance(intent, DeleteTask):
            if intent.status != "done" and self._confirm is not None and not self._confirm(intent):
                return False
            result = sync.delete_task(intent.file_path, intent.task_id)
        else:
            result = sync.clear_done(intent.file_path)
        return result is not None
