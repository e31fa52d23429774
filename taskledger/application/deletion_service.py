"""Deletion application service - the commit executor.

Runs one deletion through its states:

    validating -> previewing                    (dry run, nothing written)
    validating -> committing -> committed
                             -> rolled_back     (write or self-check failed)
    validating -> rejected | no_change

Preflight, planning and preview are pure domain calls. Everything that
touches disk happens inside ``_commit`` while the store lock is held.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

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
from taskledger.domain.deletion import (
    CancellationPolicy,
    ChildStrategy,
    DeleteRequest,
    ImpactPreview,
    ImpactWarning,
    MutationPlan,
    apply_plan,
    plan_deletion,
    preflight_delete,
    preview_deletion,
)
from taskledger.domain.shared import (
    Err,
    ErrorCode,
    Ok,
    OperationError,
    Result,
    RollbackError,
)
from taskledger.domain.task import (
    DomainEvent,
    FocusCleared,
    TaskStore,
    check_invariants,
    compute_checksum,
)

logger = logging.getLogger(__name__)

AUDIT_ACTION_CANCELLED = "task_cancelled"


class OperationState(str, Enum):
    VALIDATING = "validating"
    PREVIEWING = "previewing"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    REJECTED = "rejected"
    NO_CHANGE = "no_change"


class DeletionOutcome(BaseModel):
    """What a deletion did (or, for a dry run, would do)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    status: Literal["committed", "dry_run", "no_change"]
    task_id: str
    strategy: ChildStrategy | None = None
    reason: str | None = None
    affected_tasks: list[str] = Field(default_factory=list)
    dependents_affected: list[str] = Field(default_factory=list)
    orphaned_children: list[str] = Field(default_factory=list)
    focus_cleared: bool = False
    warnings: list[ImpactWarning] = Field(default_factory=list)
    preview: ImpactPreview | None = None
    backup_path: str | None = None

    @property
    def dry_run(self) -> bool:
        return self.status == "dry_run"


class DeletionService:
    """Cancel tasks in a file-backed store.

    Example:
        service = DeletionService(repository, policy, lock, backups, audit_log)
        result = service.delete_task("T010", ChildStrategy.CASCADE, "Scope cut from v2")
        if isinstance(result, Ok):
            print(result.value.affected_tasks)
    """

    def __init__(
        self,
        repository: TaskStoreRepository,
        policy: CancellationPolicy,
        lock: StoreLock,
        backups: SafetyBackups,
        audit_log: AuditLogPort | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._policy = policy
        self._lock = lock
        self._backups = backups
        self._audit_log = audit_log
        self._clock = clock or (lambda: datetime.now(UTC))
        self.state = OperationState.VALIDATING

    def _transition(self, state: OperationState) -> None:
        logger.debug("deletion: %s -> %s", self.state.value, state.value)
        self.state = state

    def _reject(self, error: OperationError) -> Err[OperationError]:
        self._transition(OperationState.REJECTED)
        logger.info("Deletion rejected: %s", error)
        return Err(error)

    def delete_task(
        self,
        task_id: str,
        strategy: ChildStrategy | None = None,
        reason: str | None = None,
        *,
        dry_run: bool = False,
        force: bool = False,
    ) -> Result[DeletionOutcome, OperationError]:
        """Cancel a task, handling its children with ``strategy``.

        Args:
            task_id: Task to cancel (e.g. "T010")
            strategy: block, cascade or orphan; the configured default if None
            reason: Cancellation reason, recorded on every affected task
            dry_run: Preview only; nothing on disk changes
            force: Confirm a cascade larger than the configured threshold

        Returns:
            Ok(DeletionOutcome) with status committed, dry_run or no_change,
            or Err(OperationError).

        Raises:
            RollbackError: if a failed commit could not be undone.
        """
        self.state = OperationState.VALIDATING
        request = DeleteRequest(
            task_id=task_id, strategy=strategy, reason=reason, dry_run=dry_run, force=force
        )

        loaded = self._repository.load()
        if isinstance(loaded, Err):
            return self._reject(loaded.error)
        store = loaded.value

        verdict = preflight_delete(store, request, self._policy)
        if verdict.no_change:
            self._transition(OperationState.NO_CHANGE)
            logger.info("Task %s is already cancelled; nothing to do", task_id)
            return Ok(DeletionOutcome(status="no_change", task_id=task_id, reason=verdict.reason))
        if not verdict.can_proceed:
            first = verdict.validation_errors[0]
            return self._reject(
                OperationError(
                    code=verdict.error_code or ErrorCode.INVALID_INPUT,
                    field=first.field,
                    message=first.message,
                )
            )

        planned = plan_deletion(
            store, task_id, verdict.strategy, verdict.reason, now=self._clock()
        )
        if isinstance(planned, Err):
            return self._reject(planned.error)
        plan = planned.value
        preview = preview_deletion(store, plan)

        if dry_run:
            self._transition(OperationState.PREVIEWING)
            return Ok(self._outcome("dry_run", plan, preview))

        self._transition(OperationState.COMMITTING)
        try:
            with self._lock.hold():
                return self._commit(store, plan, preview)
        except LockUnavailable as e:
            return self._reject(OperationError(code=ErrorCode.LOCK_FAILED, message=str(e)))

    def _commit(
        self,
        snapshot: TaskStore,
        plan: MutationPlan,
        preview: ImpactPreview,
    ) -> Result[DeletionOutcome, OperationError]:
        reloaded = self._repository.load()
        if isinstance(reloaded, Err):
            return self._reject(reloaded.error)
        current = reloaded.value

        if current.meta.checksum != snapshot.meta.checksum or compute_checksum(
            current.tasks_payload()
        ) != compute_checksum(snapshot.tasks_payload()):
            return self._reject(
                OperationError(
                    code=ErrorCode.CONCURRENT_MODIFICATION,
                    message="The store changed between validation and commit; retry",
                )
            )

        backup = self._backups.snapshot(self._repository.todo_file, operation="delete")
        if isinstance(backup, Err):
            return self._reject(OperationError(code=ErrorCode.BACKUP_FAILED, message=backup.error))
        handle = backup.value

        mutated, events = apply_plan(current, plan)

        saved = self._repository.save(mutated)
        if isinstance(saved, Err):
            return self._roll_back(
                handle, OperationError(code=ErrorCode.WRITE_FAILED, message=saved.error.message)
            )

        check = self._repository.load()
        if isinstance(check, Err):
            return self._roll_back(
                handle,
                OperationError(code=ErrorCode.VALIDATION_FAILED, message=check.error.message),
            )
        violations = check_invariants(check.value)
        if violations:
            return self._roll_back(
                handle,
                OperationError(
                    code=ErrorCode.VALIDATION_FAILED,
                    message="; ".join(v.message for v in violations),
                ),
            )

        self._transition(OperationState.COMMITTED)
        outcome = self._outcome("committed", plan, preview, events, handle)
        logger.info(
            "Cancelled %s (%s): %d task(s) affected",
            plan.primary_id,
            plan.strategy.value,
            len(outcome.affected_tasks),
        )
        self._record(current, plan, outcome)
        return Ok(outcome)

    def _roll_back(self, handle: BackupHandle, error: OperationError) -> Err[OperationError]:
        restored = self._backups.restore(handle)
        if isinstance(restored, Err):
            logger.error("Rollback failed, store left in unknown state: %s", restored.error)
            raise RollbackError(
                f"{error}; restoring {handle.backup_file} also failed: {restored.error}"
            )
        self._transition(OperationState.ROLLED_BACK)
        logger.warning("Deletion rolled back: %s", error)
        return Err(error)

    def _outcome(
        self,
        status: Literal["committed", "dry_run"],
        plan: MutationPlan,
        preview: ImpactPreview,
        events: list[DomainEvent] | None = None,
        handle: BackupHandle | None = None,
    ) -> DeletionOutcome:
        if events is None:
            focus_cleared = preview.focus_affected
        else:
            focus_cleared = any(isinstance(event, FocusCleared) for event in events)
        return DeletionOutcome(
            status=status,
            task_id=plan.primary_id,
            strategy=plan.strategy,
            reason=plan.reason,
            affected_tasks=list(plan.affected_ids),
            dependents_affected=preview.dependents_affected,
            orphaned_children=list(plan.orphaned_ids),
            focus_cleared=focus_cleared,
            warnings=preview.warnings,
            preview=preview if status == "dry_run" else None,
            backup_path=str(handle.backup_dir) if handle else None,
        )

    def _record(self, before: TaskStore, plan: MutationPlan, outcome: DeletionOutcome) -> None:
        if self._audit_log is None:
            return

        primary = before.get(plan.primary_id)
        details: dict[str, Any] = {
            "strategy": plan.strategy.value,
            "reason": plan.reason,
            "affectedTasks": outcome.affected_tasks,
            "dependentsAffected": outcome.dependents_affected,
            "orphanedChildren": outcome.orphaned_children,
            "focusCleared": outcome.focus_cleared,
        }
        result = self._audit_log.append_entry(
            AUDIT_ACTION_CANCELLED,
            task_id=plan.primary_id,
            before={"status": primary.status.value} if primary else None,
            after={
                "status": "cancelled",
                "cancelledAt": plan.cancelled_at,
                "cancelReason": plan.reason,
            },
            details=details,
            session_id=before.meta.active_session,
        )
        if isinstance(result, Err):
            logger.warning("Could not write audit log entry: %s", result.error)
