"""Impact preview for task deletion.

Read-only: computes what a mutation plan would discard and which warnings
the caller should see before confirming. Used for ``--dry-run`` and for
the warnings attached to a committed result.
"""

from taskledger.domain.task import TaskStatus, TaskStore, TaskSummary, dependents, index_by_id

from .models import ChildStrategy, ImpactPreview, ImpactWarning, MutationPlan, Severity

W_ACTIVE_CANCELLED = "W_ACTIVE_CANCELLED"
W_CASCADE_DELETE = "W_CASCADE_DELETE"
W_DEPENDENTS_AFFECTED = "W_DEPENDENTS_AFFECTED"
W_FOCUS_CLEARED = "W_FOCUS_CLEARED"


def generate_warnings(
    plan: MutationPlan,
    affected: list[TaskSummary],
    dependent_ids: list[str],
    focus_affected: bool,
) -> list[ImpactWarning]:
    """Build severity-tagged warnings for an affected set."""
    warnings: list[ImpactWarning] = []

    for task in affected:
        if task.status == TaskStatus.ACTIVE:
            warnings.append(
                ImpactWarning(
                    code=W_ACTIVE_CANCELLED,
                    severity=Severity.HIGH,
                    message=(
                        f"Active task {task.id} will be cancelled; "
                        "in-progress work is discarded"
                    ),
                    task_ids=[task.id],
                )
            )

    if plan.strategy == ChildStrategy.CASCADE and len(affected) > 1:
        warnings.append(
            ImpactWarning(
                code=W_CASCADE_DELETE,
                severity=Severity.MEDIUM,
                message=f"Cascade will cancel {len(affected)} tasks",
                task_ids=[task.id for task in affected],
            )
        )

    if dependent_ids:
        warnings.append(
            ImpactWarning(
                code=W_DEPENDENTS_AFFECTED,
                severity=Severity.MEDIUM,
                message=f"{len(dependent_ids)} task(s) will lose a dependency reference",
                task_ids=dependent_ids,
            )
        )

    if focus_affected:
        warnings.append(
            ImpactWarning(
                code=W_FOCUS_CLEARED,
                severity=Severity.LOW,
                message="The focused task is being cancelled; focus will be cleared",
            )
        )

    return warnings


def preview_deletion(store: TaskStore, plan: MutationPlan) -> ImpactPreview:
    """Summarize the impact of a plan without changing anything.

    Args:
        store: Snapshot the plan was computed against
        plan: The mutation plan to preview

    Returns:
        Counts of work lost by status, the dependents that lose a reference,
        the children that would be orphaned, and warnings.
    """
    by_id = index_by_id(store.tasks)
    affected = [TaskSummary.of(by_id[task_id]) for task_id in plan.affected_ids if task_id in by_id]
    dependent_ids = [task.id for task in dependents(store.tasks, plan.affected_ids)]
    focus_affected = store.focus.current_task in plan.affected_set

    def lost(status: TaskStatus) -> int:
        return sum(1 for task in affected if task.status == status)

    return ImpactPreview(
        strategy=plan.strategy,
        primary_id=plan.primary_id,
        affected_tasks=affected,
        total_count=len(affected),
        pending_lost=lost(TaskStatus.PENDING),
        active_lost=lost(TaskStatus.ACTIVE),
        blocked_lost=lost(TaskStatus.BLOCKED),
        dependents_affected=dependent_ids,
        orphaned_children=list(plan.orphaned_ids),
        focus_affected=focus_affected,
        warnings=generate_warnings(plan, affected, dependent_ids, focus_affected),
    )
