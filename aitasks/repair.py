"""
Best-effort repair of broken JSON headers.

Hand edits and agent edits routinely leave trailing commas, missing
separators or unbalanced brackets behind. The codec falls back to a
repairer only when strict parsing fails, and re-parses the repaired text
strictly once.
"""

import logging
from typing import Protocol, runtime_checkable

from json_repair import repair_json

from .errors import RepairError

logger = logging.getLogger(__name__)


@runtime_checkable
class JsonRepairer(Protocol):
    """Turns broken JSON text into parseable JSON text, or raises RepairError."""

    def repair(self, text: str) -> str: ...


class LibraryRepairer:
    """JsonRepairer backed by the json-repair package."""

    def repair(self, text: str) -> str:
        try:
            repaired = repair_json(text)
        except Exception as e:
            raise RepairError(f"{type(e).__name__}: {e}") from e
        if not isinstance(repaired, str):
            raise RepairError("repair produced no JSON text")
        stripped = repaired.strip()
        # json-repair answers hopeless input with an empty document
        if stripped in ("", '""', "null"):
            raise RepairError("no JSON value could be recovered")
        if not stripped.startswith("{"):
            raise RepairError("recovered JSON is not an object")
        logger.debug("Repaired JSON header (%d -> %d chars)", len(text), len(repaired))
        return repaired


_default_repairer = LibraryRepairer()


def default_repairer() -> JsonRepairer:
    return _default_repairer
