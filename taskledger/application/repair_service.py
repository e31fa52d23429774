"""Repair application service.

Applies the automatic fixes behind ``validate --fix`` and restamps the
checksum of a store that was edited by hand. Writes go through the same
lock, safety backup and atomic save as every other mutation.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskledger.application.ports import (
    AuditLogPort,
    LockUnavailable,
    SafetyBackups,
    StoreLock,
    TaskStoreRepository,
)
from taskledger.domain.shared import Err, ErrorCode, Ok, OperationError, Result, RollbackError
from taskledger.domain.task import repair_store

logger = logging.getLogger(__name__)

AUDIT_ACTION_VALIDATION = "validation_run"


class RepairOutcome(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    fixes: list[str] = Field(default_factory=list)
    checksum: str | None = None

    @property
    def repaired(self) -> bool:
        return bool(self.fixes)


class RepairService:
    def __init__(
        self,
        repository: TaskStoreRepository,
        lock: StoreLock,
        backups: SafetyBackups,
        audit_log: AuditLogPort | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._lock = lock
        self._backups = backups
        self._audit_log = audit_log
        self._clock = clock or (lambda: datetime.now(UTC))

    def repair(self) -> Result[RepairOutcome, OperationError]:
        """Fix what can be fixed without a human decision.

        Returns:
            Ok(RepairOutcome) naming each fix (empty when the store needed
            none), or Err(OperationError).

        Raises:
            RollbackError: if a failed write could not be undone.
        """
        try:
            with self._lock.hold():
                return self._repair()
        except LockUnavailable as e:
            return Err(OperationError(code=ErrorCode.LOCK_FAILED, message=str(e)))

    def _repair(self) -> Result[RepairOutcome, OperationError]:
        status = self._repository.checksum_status()
        if isinstance(status, Err):
            return status
        loaded = self._repository.load(verify_checksum=False)
        if isinstance(loaded, Err):
            return loaded

        repaired, fixes = repair_store(loaded.value, self._clock())
        if not status.value.matches:
            fixes.append(
                f"Restamped checksum (was {status.value.stored}, tasks hash to "
                f"{status.value.computed})"
            )
        if not fixes:
            return Ok(RepairOutcome(checksum=status.value.stored))

        backup = self._backups.snapshot(self._repository.todo_file, operation="repair")
        if isinstance(backup, Err):
            return Err(OperationError(code=ErrorCode.BACKUP_FAILED, message=backup.error))

        saved = self._repository.save(repaired)
        if isinstance(saved, Err):
            restored = self._backups.restore(backup.value)
            if isinstance(restored, Err):
                logger.error("Rollback failed: %s", restored.error)
                raise RollbackError(f"{saved.error}; restore failed: {restored.error}")
            return saved

        for fix in fixes:
            logger.info("Fixed: %s", fix)
        if self._audit_log is not None:
            logged = self._audit_log.append_entry(
                AUDIT_ACTION_VALIDATION,
                actor="system",
                details={"fixes": fixes, "checksum": saved.value.meta.checksum},
                session_id=saved.value.meta.active_session,
            )
            if isinstance(logged, Err):
                logger.warning("Could not write audit log entry: %s", logged.error)

        return Ok(RepairOutcome(fixes=fixes, checksum=saved.value.meta.checksum))
