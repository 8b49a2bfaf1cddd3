"""
Task file codec: bytes on disk <-> ProjectFile.

On-disk layout, one project per file:

    ---
    { "projectName": ..., "projectPath": ..., "tasks": [...] }
    ---

    <free-form Markdown context>

Parsing never raises. Every failure becomes an error record carrying a
ParseErrorKind and a reason string, so a single bad file degrades to one
error row instead of breaking a folder scan.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from .errors import ParseErrorKind, RepairError
from .repair import JsonRepairer, default_repairer
from .types import MAX_FILE_SIZE, ProjectData, ProjectFile

logger = logging.getLogger(__name__)

# Header JSON between the --- markers, everything after is Markdown
FRONTMATTER_PATTERN = re.compile(
    r"\A---\s*\r?\n(.*?)\r?\n---\s*\r?\n?(.*)\Z", re.DOTALL
)

JSON_INDENT = 2


def error_entry(file_path: Path, kind: ParseErrorKind, reason: str) -> ProjectFile:
    """Placeholder record for a file that couldn't be parsed."""
    file_path = Path(file_path)
    return ProjectFile(
        file_path=file_path,
        data=ProjectData(project_name=file_path.name, tasks=[]),
        context="",
        parse_error=reason,
        error_kind=kind,
    )


def _too_large(file_path: Path, size: int) -> ProjectFile:
    return error_entry(
        file_path, ParseErrorKind.OVERSIZED,
        f"File too large ({size / 1024:.0f} KB, limit is 1 MB)",
    )


def _load_header(
    json_str: str, repairer: JsonRepairer
) -> tuple[Optional[Any], bool, Optional[str]]:
    """Decode the header, falling back to repair once.

    Returns (value, repaired, error_message).
    """
    try:
        return json.loads(json_str), False, None
    except json.JSONDecodeError as strict_err:
        try:
            repaired_text = repairer.repair(json_str)
            value = json.loads(repaired_text)
        except (RepairError, json.JSONDecodeError) as repair_err:
            return None, False, f"{strict_err} (repair failed: {repair_err})"
        return value, True, None


_STRING_TASK_KEYS = ("title", "status", "priority", "type", "description",
                     "createdAt", "updatedAt")
_STRING_LIST_TASK_KEYS = ("grepKeywords", "relatedDocuments")


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _validate_task(index: int, task: Any) -> Optional[str]:
    if not isinstance(task, dict):
        return f"Task at index {index} is not an object"
    if not isinstance(task.get("id"), str) or not task["id"]:
        return f'Task at index {index} is missing a string "id"'
    # null counts as absent
    for key in _STRING_TASK_KEYS:
        if task.get(key) is not None and not isinstance(task[key], str):
            return f'Task at index {index} has a non-string "{key}"'
    for key in _STRING_LIST_TASK_KEYS:
        if task.get(key) is not None and not _is_string_list(task[key]):
            return f'Task at index {index} has a "{key}" that is not a list of strings'
    return None


def _validate(raw: Any) -> Optional[str]:
    """Return a reason string if the header lacks required structure
    or a modelled field has the wrong type."""
    if not isinstance(raw, dict):
        return 'Missing or invalid "projectName" in frontmatter'
    name = raw.get("projectName")
    if not isinstance(name, str) or not name:
        return 'Missing or invalid "projectName" in frontmatter'
    path = raw.get("projectPath")
    if path is not None and not isinstance(path, str):
        return 'Invalid "projectPath" in frontmatter'
    tasks = raw.get("tasks")
    if not isinstance(tasks, list):
        return 'Missing or invalid "tasks" array in frontmatter'
    for index, task in enumerate(tasks):
        reason = _validate_task(index, task)
        if reason is not None:
            return reason
    return None


def parse_text(
    content: str, file_path: Path, repairer: Optional[JsonRepairer] = None
) -> ProjectFile:
    """Parse decoded file content into a record."""
    file_path = Path(file_path)
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return error_entry(
            file_path, ParseErrorKind.MALFORMED_DELIMITERS,
            "Missing or malformed --- frontmatter delimiters",
        )

    json_str = match.group(1).strip()
    markdown_body = match.group(2).strip()

    raw, repaired, json_error = _load_header(json_str, repairer or default_repairer())
    if json_error is not None:
        return error_entry(
            file_path, ParseErrorKind.INVALID_JSON,
            f"Invalid JSON in frontmatter: {json_error}",
        )

    reason = _validate(raw)
    if reason is not None:
        return error_entry(file_path, ParseErrorKind.MISSING_FIELD, reason)

    if repaired:
        logger.info("Repaired malformed JSON header in %s", file_path.name)
    return ProjectFile(
        file_path=file_path,
        data=ProjectData.from_dict(raw),
        context=markdown_body,
        repaired=repaired,
    )


def parse_bytes(
    raw: bytes, file_path: Path, repairer: Optional[JsonRepairer] = None
) -> ProjectFile:
    """Parse one file's bytes. Never raises."""
    file_path = Path(file_path)
    if len(raw) > MAX_FILE_SIZE:
        return _too_large(file_path, len(raw))
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        return error_entry(file_path, ParseErrorKind.UNREADABLE, f"Cannot read file: {e}")
    return parse_text(content, file_path, repairer)


def parse_task_file(file_path: Path, repairer: Optional[JsonRepairer] = None) -> ProjectFile:
    """Read and parse a task file from disk. Never raises.

    The size is checked before reading so oversized files are never
    loaded into memory.
    """
    file_path = Path(file_path)
    try:
        size = file_path.stat().st_size
        if size > MAX_FILE_SIZE:
            return _too_large(file_path, size)
        raw = file_path.read_bytes()
    except OSError as e:
        return error_entry(file_path, ParseErrorKind.UNREADABLE, f"Cannot read file: {e}")
    return parse_bytes(raw, file_path, repairer)


def serialize(project: ProjectFile) -> str:
    """Render a valid record in the exact on-disk layout."""
    if not project.is_valid:
        raise ValueError(f"Refusing to serialize error record for {project.file_name}")
    header = json.dumps(project.data.to_dict(), indent=JSON_INDENT, ensure_ascii=False)
    return f"---\n{header}\n---\n\n{project.context}\n"


def save_task_file(project: ProjectFile) -> None:
    """Write the record back to its file (UTF-8, LF line endings)."""
    project.file_path.write_bytes(serialize(project).encode("utf-8"))
    project.repaired = False
