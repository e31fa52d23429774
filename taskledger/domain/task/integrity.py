"""Store health report and repair.

``check_invariants`` is the gate every commit passes. The checks here go
further: they look at bookkeeping the commit path never touches (stamps on
done tasks, the focus pointer, schema version, checksum agreement) and are
what ``validate`` reports. ``repair_store`` applies the fixes that can be
made without a human choosing between alternatives.
"""

from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel, computed_field

from .invariants import InvariantViolation, check_invariants
from .models import TaskStatus, TaskStore, format_timestamp

EXPECTED_MAJOR_VERSION = 2
DEFAULT_SCHEMA_VERSION = "2.0.0"


class ChecksumStatus(BaseModel):
    """Stored ``_meta.checksum`` against the checksum of the tasks on disk."""

    stored: str | None = None
    computed: str

    @computed_field
    @property
    def matches(self) -> bool:
        # An unstamped store has nothing to disagree with.
        return not self.stored or self.stored == self.computed


def _active_ids(store: TaskStore) -> list[str]:
    return [task.id for task in store.tasks if task.status == TaskStatus.ACTIVE]


def check_done_stamps(store: TaskStore) -> list[InvariantViolation]:
    missing = [
        task.id for task in store.tasks if task.status == TaskStatus.DONE and not task.completed_at
    ]
    if not missing:
        return []
    return [
        InvariantViolation(
            rule="done_completed_at",
            message=f"Done tasks missing completedAt: {', '.join(missing)}",
            task_ids=missing,
        )
    ]


def check_focus(store: TaskStore) -> list[InvariantViolation]:
    """The focus pointer must name the active task, if there is one."""
    focus = store.focus.current_task
    active = _active_ids(store)
    first_active = active[0] if active else None

    if focus is not None and focus != first_active:
        return [
            InvariantViolation(
                rule="focus_matches_active",
                message=f"focus.currentTask ({focus}) does not match active task ({first_active})",
                task_ids=[focus],
            )
        ]
    if focus is None and first_active is not None:
        return [
            InvariantViolation(
                rule="focus_matches_active",
                message=f"Active task ({first_active}) but focus.currentTask is null",
                task_ids=[first_active],
                severity="warning",
            )
        ]
    return []


def check_version(store: TaskStore) -> list[InvariantViolation]:
    version = store.meta.version
    if not version:
        return [
            InvariantViolation(
                rule="schema_version",
                message="No schema version found; run with --fix to add _meta.version",
                severity="warning",
            )
        ]
    major = version.split(".", 1)[0]
    if major != str(EXPECTED_MAJOR_VERSION):
        return [
            InvariantViolation(
                rule="schema_version",
                message=(
                    f"Incompatible schema version: {version} "
                    f"(expected major version {EXPECTED_MAJOR_VERSION})"
                ),
            )
        ]
    return []


def check_checksum(checksum: ChecksumStatus) -> list[InvariantViolation]:
    if checksum.matches:
        return []
    return [
        InvariantViolation(
            rule="checksum",
            message=(
                f"Checksum mismatch (stored {checksum.stored}, computed {checksum.computed}); "
                "run with --fix to restamp"
            ),
        )
    ]


def check_integrity(
    store: TaskStore, checksum: ChecksumStatus | None = None
) -> list[InvariantViolation]:
    """Structural invariants followed by the bookkeeping checks.

    Returns:
        Errors and warnings in one list; filter on ``severity``.
    """
    violations = check_invariants(store)
    violations += check_done_stamps(store)
    violations += check_focus(store)
    violations += check_version(store)
    if checksum is not None:
        violations += check_checksum(checksum)
    return violations


def repair_store(
    store: TaskStore,
    now: datetime,
) -> tuple[TaskStore, list[str]]:
    """Apply the automatic fixes.

    - Duplicate ids: keep the first occurrence
    - Done tasks without completedAt: stamp ``now``
    - More than one active task: keep the first, the rest go back to pending
    - Focus pointer: point it at the active task, or clear it
    - Missing schema version: set the default

    The checksum is not touched here; saving the store restamps it.

    Returns:
        (repaired store, human-readable description of each fix)
    """
    fixes: list[str] = []
    stamp = format_timestamp(now)

    seen: set[str] = set()
    tasks = []
    for task in store.tasks:
        if task.id in seen:
            continue
        seen.add(task.id)
        tasks.append(task)
    if len(tasks) != len(store.tasks):
        fixes.append("Removed duplicate tasks (kept first occurrence)")

    def fix_each(
        predicate: Callable, update: dict, describe: Callable[[list[str]], str]
    ) -> None:
        changed = [task.id for task in tasks if predicate(task)]
        if not changed:
            return
        for index, task in enumerate(tasks):
            if task.id in changed:
                tasks[index] = task.model_copy(update=update)
        fixes.append(describe(changed))

    fix_each(
        lambda t: t.status == TaskStatus.DONE and not t.completed_at,
        {"completed_at": stamp},
        lambda ids: f"Set completedAt on {', '.join(ids)}",
    )

    active = [task.id for task in tasks if task.status == TaskStatus.ACTIVE]
    if len(active) > 1:
        keep = active[0]
        fix_each(
            lambda t: t.status == TaskStatus.ACTIVE and t.id != keep,
            {"status": TaskStatus.PENDING},
            lambda ids: f"Set {', '.join(ids)} to pending (kept {keep} active)",
        )

    focus = store.focus
    first_active = next((task.id for task in tasks if task.status == TaskStatus.ACTIVE), None)
    if focus.current_task != first_active:
        focus = focus.model_copy(update={"current_task": first_active})
        if first_active:
            fixes.append(f"Set focus.currentTask to {first_active}")
        else:
            fixes.append("Cleared focus.currentTask")

    meta = store.meta
    if not meta.version:
        meta = meta.model_copy(update={"version": DEFAULT_SCHEMA_VERSION})
        fixes.append(f"Added _meta.version = {DEFAULT_SCHEMA_VERSION}")

    repaired = store.model_copy(update={"tasks": tasks, "focus": focus, "meta": meta})
    return repaired, fixes
