"""Archive application service.

Moves done tasks past the retention rules of the ``archive`` config
section, and cancelled tasks older than ``cancellation.daysUntilArchive``,
out of ``todo.json`` and into ``todo-archive.json``. Uses the same commit
discipline as deletion: lock, re-check the checksum, back up both files,
write, verify, roll back on failure.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskledger.application.ports import (
    AuditLogPort,
    BackupHandle,
    LockUnavailable,
    SafetyBackups,
    StoreLock,
    TaskStoreRepository,
)
from taskledger.domain.archive import (
    DEFAULT_SESSION_ID,
    ArchiveMode,
    ArchivePolicy,
    ArchiveStore,
    append_to_archive,
    build_archive_entry,
    remove_tasks,
    select_cancelled,
    select_completed,
)
from taskledger.domain.shared import Err, ErrorCode, Ok, OperationError, Result, RollbackError
from taskledger.domain.task import (
    TaskStatus,
    TaskStore,
    TaskSummary,
    check_invariants,
    compute_checksum,
    format_timestamp,
)

logger = logging.getLogger(__name__)

AUDIT_ACTION_ARCHIVED = "task_archived"


class ArchiveRepositoryPort(Protocol):
    archive_file: Path

    def exists(self) -> bool: ...

    def discard(self) -> None: ...

    def load(self) -> Result[ArchiveStore, OperationError]: ...

    def save(self, archive: ArchiveStore) -> Result[None, OperationError]: ...


class ArchiveOutcome(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    dry_run: bool = False
    mode: ArchiveMode = ArchiveMode.RETENTION
    archived: list[TaskSummary] = Field(default_factory=list)
    days_until_archive: int
    preserve_recent_count: int
    cancelled_days_until_archive: int
    archived_at: str | None = None

    @property
    def count(self) -> int:
        return len(self.archived)

    @property
    def completed_ids(self) -> list[str]:
        return [task.id for task in self.archived if task.status == TaskStatus.DONE]

    @property
    def cancelled_ids(self) -> list[str]:
        return [task.id for task in self.archived if task.status == TaskStatus.CANCELLED]


class ArchiveService:
    def __init__(
        self,
        repository: TaskStoreRepository,
        archive_repository: ArchiveRepositoryPort,
        policy: ArchivePolicy,
        cancelled_days_until_archive: int,
        lock: StoreLock,
        backups: SafetyBackups,
        audit_log: AuditLogPort | None = None,
        clock: Callable[[], datetime] | None = None,
        actor: str = "claude",
    ) -> None:
        self._repository = repository
        self._archive_repository = archive_repository
        self._policy = policy
        self._cancelled_days = cancelled_days_until_archive
        self._lock = lock
        self._backups = backups
        self._audit_log = audit_log
        self._clock = clock or (lambda: datetime.now(UTC))
        self._actor = actor

    def archive(
        self,
        dry_run: bool = False,
        mode: ArchiveMode = ArchiveMode.RETENTION,
        max_completed: int | None = None,
    ) -> Result[ArchiveOutcome, OperationError]:
        """Archive done and cancelled tasks that are due.

        Args:
            dry_run: Report what would be archived, change nothing.
            mode: RETENTION, FORCE (ignore age, keep the preserve count)
                or ALL (ignore both).
            max_completed: Overrides ``maxCompletedTasks`` for this run.

        Returns:
            Ok(ArchiveOutcome) listing the archived (or, for a dry run, the
            archivable) tasks, or Err(OperationError).

        Raises:
            RollbackError: if a failed commit could not be undone.
        """
        loaded = self._repository.load()
        if isinstance(loaded, Err):
            return loaded
        store = loaded.value

        policy = self._policy
        if max_completed is not None:
            policy = policy.model_copy(update={"max_completed_tasks": max_completed})

        now = self._clock()
        due = {
            task.id
            for task in [
                *select_completed(store, now, policy, mode),
                *select_cancelled(store, now, self._cancelled_days, mode),
            ]
        }
        outcome = ArchiveOutcome(
            dry_run=dry_run,
            mode=mode,
            archived=[TaskSummary.of(task) for task in store.tasks if task.id in due],
            days_until_archive=policy.days_until_archive,
            preserve_recent_count=policy.preserve_recent_count,
            cancelled_days_until_archive=self._cancelled_days,
        )
        if not due:
            logger.info("Nothing to archive (mode %s)", mode.value)
            return Ok(outcome)
        if dry_run:
            return Ok(outcome)

        try:
            with self._lock.hold():
                return self._commit(store, now, outcome)
        except LockUnavailable as e:
            return Err(OperationError(code=ErrorCode.LOCK_FAILED, message=str(e)))

    def _commit(
        self,
        snapshot: TaskStore,
        now: datetime,
        outcome: ArchiveOutcome,
    ) -> Result[ArchiveOutcome, OperationError]:
        reloaded = self._repository.load()
        if isinstance(reloaded, Err):
            return reloaded
        current = reloaded.value
        if current.meta.checksum != snapshot.meta.checksum or compute_checksum(
            current.tasks_payload()
        ) != compute_checksum(snapshot.tasks_payload()):
            return Err(
                OperationError(
                    code=ErrorCode.CONCURRENT_MODIFICATION,
                    message="The store changed between selection and commit; retry",
                )
            )

        archive_loaded = self._archive_repository.load()
        if isinstance(archive_loaded, Err):
            return archive_loaded
        archive = archive_loaded.value

        store_backup = self._backups.snapshot(self._repository.todo_file, operation="archive")
        if isinstance(store_backup, Err):
            return Err(OperationError(code=ErrorCode.BACKUP_FAILED, message=store_backup.error))
        handles = [store_backup.value]

        archive_existed = self._archive_repository.exists()
        if archive_existed:
            archive_backup = self._backups.snapshot(
                self._archive_repository.archive_file, operation="archive"
            )
            if isinstance(archive_backup, Err):
                return Err(
                    OperationError(code=ErrorCode.BACKUP_FAILED, message=archive_backup.error)
                )
            handles.append(archive_backup.value)

        archived_at = format_timestamp(now)
        session_id = current.meta.active_session or DEFAULT_SESSION_ID
        ids = [summary.id for summary in outcome.archived]
        selected = set(ids)
        entries = [
            build_archive_entry(task, archived_at, session_id, self._actor)
            for task in current.tasks
            if task.id in selected
        ]

        saved_archive = self._archive_repository.save(
            append_to_archive(archive, entries, archived_at)
        )
        if isinstance(saved_archive, Err):
            return self._roll_back(handles, saved_archive.error, archive_existed)

        remaining, _events = remove_tasks(current, ids)
        saved = self._repository.save(remaining)
        if isinstance(saved, Err):
            return self._roll_back(handles, saved.error, archive_existed)

        check = self._repository.load()
        if isinstance(check, Err):
            return self._roll_back(
                handles,
                OperationError(code=ErrorCode.VALIDATION_FAILED, message=check.error.message),
                archive_existed,
            )
        violations = check_invariants(check.value)
        if violations:
            return self._roll_back(
                handles,
                OperationError(
                    code=ErrorCode.VALIDATION_FAILED,
                    message="; ".join(v.message for v in violations),
                ),
                archive_existed,
            )

        logger.info("Archived %d task(s): %s", len(ids), ", ".join(ids))
        if self._audit_log is not None:
            logged = self._audit_log.append_entry(
                AUDIT_ACTION_ARCHIVED,
                actor="system",
                details={
                    "count": len(ids),
                    "taskIds": ids,
                    "completed": outcome.completed_ids,
                    "cancelled": outcome.cancelled_ids,
                },
                session_id=session_id,
            )
            if isinstance(logged, Err):
                logger.warning("Could not write audit log entry: %s", logged.error)

        return Ok(outcome.model_copy(update={"archived_at": archived_at}))

    def _roll_back(
        self,
        handles: list[BackupHandle],
        error: OperationError,
        archive_existed: bool,
    ) -> Err[OperationError]:
        for handle in handles:
            restored = self._backups.restore(handle)
            if isinstance(restored, Err):
                logger.error("Rollback failed: %s", restored.error)
                raise RollbackError(f"{error}; restoring {handle.source} failed: {restored.error}")
        if not archive_existed:
            self._archive_repository.discard()
        logger.warning("Archive rolled back: %s", error)
        return Err(error)
