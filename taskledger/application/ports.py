"""Handles the application layer needs from the outside world.

The services take these as constructor arguments; the infrastructure
package provides the file-backed implementations and tests provide fakes.
"""

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel

from taskledger.domain.shared import OperationError, Result
from taskledger.domain.task import ChecksumStatus, TaskStore


class LockUnavailable(Exception):
    """The exclusive store lock could not be acquired in time."""


class StoreLock(Protocol):
    def hold(self) -> AbstractContextManager[None]:
        """Hold the exclusive lock for the duration of a ``with`` block.

        Raises:
            LockUnavailable: if the lock is not acquired before the timeout.
        """
        ...


class BackupHandle(BaseModel):
    """Where a safety backup was written and what it protects."""

    source: Path
    backup_file: Path
    backup_dir: Path
    created_at: str


class SafetyBackups(Protocol):
    def snapshot(self, path: Path, operation: str) -> Result[BackupHandle, str]: ...

    def restore(self, handle: BackupHandle) -> Result[None, str]: ...


class AuditLogPort(Protocol):
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
    ) -> Result[str, str]: ...


class TaskStoreRepository(Protocol):
    todo_file: Path

    def checksum_status(self) -> Result[ChecksumStatus, OperationError]: ...

    def load(self, verify_checksum: bool = True) -> Result[TaskStore, OperationError]: ...

    def save(self, store: TaskStore) -> Result[TaskStore, OperationError]: ...
