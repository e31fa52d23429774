"""Preflight validation for task deletion.

An ordered, fail-fast chain of read-only checks. The first failing check
decides the verdict and later checks are never evaluated, so callers can
rely on the order:

1. id format
2. existence
3. status (done is rejected, cancelled is a no-op)
4. reason
5. child strategy
6. cascade size

Nothing here touches the filesystem.
"""

import re

from taskledger.domain.shared import ErrorCode
from taskledger.domain.task import (
    TASK_ID_PATTERN,
    TaskStatus,
    TaskStore,
    children,
    descendants,
)

from .models import (
    CancellationPolicy,
    ChildStrategy,
    DeleteRequest,
    FieldError,
    PreflightVerdict,
    TaskInfo,
)

REASON_MIN_LENGTH = 5
REASON_MAX_LENGTH = 300
DEFAULT_CANCEL_REASON = "Cancelled without a reason"

# Shell metacharacters and line breaks. The reason ends up in logs and
# archive entries that other tools read, so it is sanitized at the boundary.
_FORBIDDEN_REASON_CHARS = re.compile(r"[|;&$`\\<>(){}\[\]!\"'\r\n]")


def validate_task_id(task_id: str) -> str | None:
    """Return an error message if ``task_id`` is not of the form T001."""
    if not task_id:
        return "Task ID is required"
    if not TASK_ID_PATTERN.fullmatch(task_id):
        return f"Invalid task ID format: '{task_id}' (expected T followed by 3+ digits)"
    return None


def validate_reason(reason: str | None, required: bool) -> str | None:
    """Return an error message if the cancellation reason is unacceptable.

    An absent reason is only an error when ``required``. A reason that is
    given is always checked.
    """
    if reason is None or reason == "":
        if required:
            return "A cancellation reason is required (use --reason)"
        return None
    if len(reason) < REASON_MIN_LENGTH:
        return f"Reason must be at least {REASON_MIN_LENGTH} characters"
    if len(reason) > REASON_MAX_LENGTH:
        return f"Reason must be at most {REASON_MAX_LENGTH} characters"
    if "\r" in reason or "\n" in reason:
        return "Reason must be a single line"
    match = _FORBIDDEN_REASON_CHARS.search(reason)
    if match:
        return f"Reason contains a forbidden character: {match.group()!r}"
    return None


def _rejected(
    code: ErrorCode,
    field: str,
    message: str,
    task_info: TaskInfo | None = None,
    strategy: ChildStrategy | None = None,
) -> PreflightVerdict:
    return PreflightVerdict(
        success=False,
        can_proceed=False,
        strategy=strategy,
        task_info=task_info,
        validation_errors=[FieldError(field=field, message=message)],
        error_code=code,
    )


def preflight_delete(
    store: TaskStore,
    request: DeleteRequest,
    policy: CancellationPolicy,
) -> PreflightVerdict:
    """Run the preflight chain for a deletion request.

    Args:
        store: Snapshot of the task store
        request: Task id, strategy, reason and flags from the caller
        policy: Cancellation policy from configuration

    Returns:
        A verdict. ``can_proceed`` is True only when every check passed and
        the task is not already cancelled.
    """
    # 1. Syntax
    id_error = validate_task_id(request.task_id)
    if id_error:
        return _rejected(ErrorCode.INVALID_INPUT, "taskId", id_error)

    # 2. Existence
    task = store.get(request.task_id)
    if task is None:
        return _rejected(ErrorCode.NOT_FOUND, "taskId", f"Task not found: {request.task_id}")

    direct_children = children(store.tasks, task.id)
    info = TaskInfo(
        status=task.status,
        is_leaf=not direct_children,
        has_children=bool(direct_children),
        child_count=len(direct_children),
    )

    # 3. Status
    if task.status == TaskStatus.DONE:
        return _rejected(
            ErrorCode.TASK_COMPLETED,
            "status",
            f"Task {task.id} is already completed and cannot be cancelled",
            task_info=info,
        )
    if task.status == TaskStatus.CANCELLED:
        return PreflightVerdict(
            success=True,
            can_proceed=False,
            no_change=True,
            task_info=info,
            reason=task.cancel_reason,
        )

    # 4. Reason
    reason_error = validate_reason(request.reason, required=policy.require_reason)
    if reason_error:
        return _rejected(ErrorCode.INVALID_INPUT, "reason", reason_error, task_info=info)

    # 5. Strategy
    strategy = request.strategy or policy.default_child_strategy
    if strategy == ChildStrategy.CASCADE and info.has_children and not policy.allow_cascade:
        return _rejected(
            ErrorCode.CASCADE_DISABLED,
            "children",
            "Cascade deletion is disabled by configuration (cancellation.allowCascade)",
            task_info=info,
            strategy=strategy,
        )
    if strategy == ChildStrategy.BLOCK and info.has_children:
        return _rejected(
            ErrorCode.HAS_CHILDREN,
            "children",
            f"Task {task.id} has {info.child_count} child task(s); "
            "use --children cascade or --children orphan",
            task_info=info,
            strategy=strategy,
        )

    # 6. Cascade size
    if strategy == ChildStrategy.CASCADE:
        info = info.model_copy(
            update={"descendant_count": len(descendants(store.tasks, task.id))}
        )
        if info.descendant_count > policy.cascade_confirm_threshold and not request.force:
            return _rejected(
                ErrorCode.CASCADE_LIMIT_EXCEEDED,
                "children",
                f"Cascade would cancel {info.descendant_count} descendants "
                f"(threshold {policy.cascade_confirm_threshold}); use --force to confirm",
                task_info=info,
                strategy=strategy,
            )

    return PreflightVerdict(
        success=True,
        can_proceed=True,
        strategy=strategy,
        reason=request.reason or DEFAULT_CANCEL_REASON,
        task_info=info,
    )
