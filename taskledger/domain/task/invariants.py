"""Store invariant checks.

These are the consistency rules every committed store must satisfy. The
commit step runs them against the freshly written store and rolls back
when any of them fails.
"""

from collections import Counter
from typing import Literal

from pydantic import BaseModel

from .graph import count_by_status, find_dependency_cycle, find_parent_cycle
from .models import TaskStatus, TaskStore


class InvariantViolation(BaseModel):
    """One broken rule, with the task ids involved."""

    rule: str
    message: str
    task_ids: list[str] = []
    severity: Literal["error", "warning"] = "error"


def check_invariants(store: TaskStore) -> list[InvariantViolation]:
    """Check a store against the structural invariants.

    Checksum agreement is verified by the storage layer, which owns the
    serialized form; everything else is checked here.

    Returns:
        Every violation found (empty list when the store is consistent)
    """
    violations: list[InvariantViolation] = []
    tasks = store.tasks
    ids = {task.id for task in tasks}

    duplicates = sorted(task_id for task_id, n in Counter(t.id for t in tasks).items() if n > 1)
    if duplicates:
        violations.append(
            InvariantViolation(
                rule="unique_ids",
                message=f"Duplicate task ids: {', '.join(duplicates)}",
                task_ids=duplicates,
            )
        )

    if count_by_status(tasks)[TaskStatus.ACTIVE] > 1:
        active = [task.id for task in tasks if task.status == TaskStatus.ACTIVE]
        violations.append(
            InvariantViolation(
                rule="single_active",
                message=f"More than one active task: {', '.join(active)}",
                task_ids=active,
            )
        )

    dangling_parents = [
        task.id for task in tasks if task.parent_id is not None and task.parent_id not in ids
    ]
    if dangling_parents:
        violations.append(
            InvariantViolation(
                rule="parent_exists",
                message=f"Tasks reference a missing parent: {', '.join(dangling_parents)}",
                task_ids=dangling_parents,
            )
        )

    dangling_deps = [task.id for task in tasks if any(dep not in ids for dep in task.depends)]
    if dangling_deps:
        violations.append(
            InvariantViolation(
                rule="depends_exist",
                message=f"Tasks depend on missing tasks: {', '.join(dangling_deps)}",
                task_ids=dangling_deps,
            )
        )

    parent_cycle = find_parent_cycle(tasks)
    if parent_cycle:
        violations.append(
            InvariantViolation(
                rule="acyclic_tree",
                message=f"Parent cycle: {' -> '.join(parent_cycle)}",
                task_ids=parent_cycle,
            )
        )

    dependency_cycle = find_dependency_cycle(tasks)
    if dependency_cycle:
        violations.append(
            InvariantViolation(
                rule="acyclic_depends",
                message=f"Dependency cycle: {' -> '.join(dependency_cycle)}",
                task_ids=dependency_cycle,
            )
        )

    incomplete = [
        task.id
        for task in tasks
        if task.status == TaskStatus.CANCELLED
        and not (task.cancelled_at and task.cancel_reason)
    ]
    if incomplete:
        violations.append(
            InvariantViolation(
                rule="cancel_metadata",
                message=(
                    "Cancelled tasks missing cancelledAt/cancelReason: "
                    f"{', '.join(incomplete)}"
                ),
                task_ids=incomplete,
            )
        )

    return violations
