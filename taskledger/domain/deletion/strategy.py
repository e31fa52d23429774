"""Deletion strategy engine.

Turns a validated request into a ``MutationPlan`` and applies a plan to an
in-memory store. Each ``ChildStrategy`` member has exactly one handler:

- BLOCK:   cancel the task alone (preflight has already rejected parents)
- CASCADE: cancel the task and its whole subtree
- ORPHAN:  cancel the task, detach its direct children

All functions are pure - no I/O, no side effects.
"""

from collections.abc import Callable
from datetime import datetime

from taskledger.domain.shared import Err, ErrorCode, Ok, OperationError, Result
from taskledger.domain.task import (
    ChildOrphaned,
    DependencyPruned,
    DomainEvent,
    FocusCleared,
    Task,
    TaskCancelled,
    TaskStatus,
    TaskStore,
    children,
    descendants,
    format_timestamp,
)

from .models import ChildStrategy, MutationPlan

# (affected ids, orphaned ids)
_Selection = tuple[list[str], list[str]]


def _select_block(store: TaskStore, primary: Task) -> Result[_Selection, OperationError]:
    kids = children(store.tasks, primary.id)
    if kids:
        return Err(
            OperationError(
                code=ErrorCode.HAS_CHILDREN,
                field="children",
                message=f"Task {primary.id} has {len(kids)} child task(s)",
            )
        )
    return Ok(([primary.id], []))


def _select_cascade(store: TaskStore, primary: Task) -> Result[_Selection, OperationError]:
    subtree = descendants(store.tasks, primary.id)
    return Ok(([primary.id] + [task.id for task in subtree], []))


def _select_orphan(store: TaskStore, primary: Task) -> Result[_Selection, OperationError]:
    kids = children(store.tasks, primary.id)
    return Ok(([primary.id], [task.id for task in kids]))


_HANDLERS: dict[ChildStrategy, Callable[[TaskStore, Task], Result[_Selection, OperationError]]] = {
    ChildStrategy.BLOCK: _select_block,
    ChildStrategy.CASCADE: _select_cascade,
    ChildStrategy.ORPHAN: _select_orphan,
}

if set(_HANDLERS) != set(ChildStrategy):
    raise ImportError(f"Unhandled child strategies: {set(ChildStrategy) - set(_HANDLERS)}")


def plan_deletion(
    store: TaskStore,
    task_id: str,
    strategy: ChildStrategy,
    reason: str,
    now: datetime | None = None,
) -> Result[MutationPlan, OperationError]:
    """Compute the affected set and mutation plan for one deletion.

    Args:
        store: Snapshot of the task store
        task_id: The primary task to cancel
        strategy: How to treat the task's children
        reason: Cancellation reason recorded on every affected task
        now: Cancellation time (defaults to the current UTC time)

    Returns:
        Ok(MutationPlan), or Err if the task is missing or the strategy
        cannot be applied to it.
    """
    primary = store.get(task_id)
    if primary is None:
        return Err(
            OperationError(
                code=ErrorCode.NOT_FOUND, field="taskId", message=f"Task not found: {task_id}"
            )
        )

    selection = _HANDLERS[strategy](store, primary)
    if isinstance(selection, Err):
        return selection
    affected_ids, orphaned_ids = selection.value

    return Ok(
        MutationPlan(
            strategy=strategy,
            primary_id=primary.id,
            affected_ids=affected_ids,
            orphaned_ids=orphaned_ids,
            reason=reason,
            cancelled_at=format_timestamp(now),
        )
    )


def apply_plan(store: TaskStore, plan: MutationPlan) -> tuple[TaskStore, list[DomainEvent]]:
    """Apply a mutation plan to a store.

    Cancels every affected task, detaches orphaned children, prunes
    ``depends`` references into the affected set from every other task and
    clears the focus pointer when it points into the affected set.

    Under cascade, descendants that are already done or cancelled keep
    their status, timestamps and reason. They stay in the affected set, so
    ``depends`` references to them are still pruned and a focus pointer on
    them is still cleared; only their own record is left as it was.

    Returns:
        The new store (checksum not yet recomputed) and the events describing
        each change.
    """
    affected = plan.affected_set
    orphaned = set(plan.orphaned_ids)
    events: list[DomainEvent] = []
    new_tasks: list[Task] = []

    for task in store.tasks:
        update: dict = {}

        if task.id in affected:
            if not task.is_terminal:
                update.update(
                    status=TaskStatus.CANCELLED,
                    cancelled_at=plan.cancelled_at,
                    cancel_reason=plan.reason,
                )
                events.append(
                    TaskCancelled(
                        task_id=task.id,
                        previous_status=task.status.value,
                        reason=plan.reason,
                        cascaded_from=None if task.id == plan.primary_id else plan.primary_id,
                    )
                )
        else:
            removed = [dep for dep in task.depends if dep in affected]
            if removed:
                update["depends"] = [dep for dep in task.depends if dep not in affected]
                events.append(DependencyPruned(task_id=task.id, removed=removed))

        if task.id in orphaned:
            update["parent_id"] = None
            events.append(ChildOrphaned(task_id=task.id, former_parent_id=plan.primary_id))

        new_tasks.append(task.model_copy(update=update) if update else task)

    focus = store.focus
    if focus.current_task is not None and focus.current_task in affected:
        events.append(FocusCleared(task_id=focus.current_task))
        focus = focus.model_copy(update={"current_task": None})

    return store.model_copy(update={"tasks": new_tasks, "focus": focus}), events
