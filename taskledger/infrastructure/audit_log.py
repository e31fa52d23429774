"""Append-only audit log in ``todo-log.json``."""

import logging
import secrets
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from taskledger.domain.shared.result import Err, Ok, Result
from taskledger.domain.task import format_timestamp
from taskledger.infrastructure.storage.json_storage import JsonStorage

logger = logging.getLogger(__name__)


def new_log_id() -> str:
    return f"log_{secrets.token_hex(6)}"


class AuditEntry(BaseModel):
    """One line of history: who did what to which task."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_log_id)
    timestamp: str = Field(default_factory=format_timestamp)
    session_id: str | None = Field(default=None, alias="sessionId")
    action: str
    actor: str
    task_id: str | None = Field(default=None, alias="taskId")
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    details: dict[str, Any] | None = None


def _empty_log() -> dict[str, Any]:
    return {
        "_meta": {"totalEntries": 0, "firstEntry": None, "lastEntry": None, "entriesPruned": 0},
        "entries": [],
    }


class AuditLog:
    """File-backed audit log.

    Each append rewrites the whole file atomically. Callers hold the store
    lock while appending, so appends never interleave.
    """

    def __init__(
        self,
        log_file: Path,
        actor: str = "claude",
        storage: JsonStorage | None = None,
    ) -> None:
        self.log_file = log_file
        self.actor = actor
        self._storage = storage or JsonStorage()

    def read(self) -> Result[dict[str, Any], str]:
        if not self.log_file.exists():
            return Ok(_empty_log())
        return self._storage.load_json(self.log_file)

    def append_entry(
        self,
        action: str,
        *,
        task_id: str | None = None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
        actor: str | None = None,
        session_id: str | None = None,
    ) -> Result[str, str]:
        """Append one entry.

        Returns:
            Ok(entry id), or Err(str) if the log could not be read or written.
        """
        loaded = self.read()
        if isinstance(loaded, Err):
            return loaded
        log = loaded.value

        entries = log.get("entries")
        if not isinstance(entries, list):
            return Err(f"Malformed audit log {self.log_file}: 'entries' is not a list")

        entry = AuditEntry(
            session_id=session_id,
            action=action,
            actor=actor or self.actor,
            task_id=task_id,
            before=before,
            after=after,
            details=details,
        )
        entries.append(entry.model_dump(by_alias=True, mode="json"))

        meta = log.setdefault("_meta", {})
        meta["totalEntries"] = len(entries)
        meta["lastEntry"] = entry.timestamp
        if not meta.get("firstEntry"):
            meta["firstEntry"] = entry.timestamp

        result = self._storage.save_json(self.log_file, log)
        if isinstance(result, Err):
            return result

        logger.debug("Audit %s %s (%s)", action, task_id or "-", entry.id)
        return Ok(entry.id)
