"""Moving finished tasks from the live store into the archive.

Pure functions: selection by age and preserve count, building archive
entries, removing the archived tasks from the live store without leaving
dangling references behind, and folding new entries into the archive's
counters.
"""

from collections import Counter
from datetime import UTC, datetime, timedelta
from typing import Any

from taskledger.domain.task import (
    ChildOrphaned,
    DependencyPruned,
    DomainEvent,
    FocusCleared,
    Task,
    TaskArchived,
    TaskStatus,
    TaskStore,
    parse_timestamp,
)

from .models import ArchiveMode, ArchivePolicy, ArchiveStore

ARCHIVE_REASON_AUTO = "auto"
ARCHIVE_REASON_CANCELLED = "cancelled"
DEFAULT_SESSION_ID = "system"

SECONDS_PER_DAY = 86400

_UNKNOWN = datetime.min.replace(tzinfo=UTC)


def _parsed(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


def cycle_time_days(task: Task) -> int | None:
    """Whole days from ``createdAt`` to ``completedAt``, or None if either is unknown."""
    created = _parsed(task.created_at)
    completed = _parsed(task.completed_at)
    if created is None or completed is None:
        return None
    return int((completed - created).total_seconds() // SECONDS_PER_DAY)


def select_cancelled(
    store: TaskStore,
    now: datetime,
    days_until_archive: int,
    mode: ArchiveMode = ArchiveMode.RETENTION,
) -> list[Task]:
    """Cancelled tasks whose ``cancelledAt`` is at least ``days_until_archive`` old.

    Under RETENTION, tasks with a missing or unparseable ``cancelledAt``
    are never selected: their age is unknown. FORCE and ALL take every
    cancelled task.
    """
    threshold = now - timedelta(days=days_until_archive)
    selected: list[Task] = []
    for task in store.tasks:
        if task.status != TaskStatus.CANCELLED:
            continue
        if mode != ArchiveMode.RETENTION:
            selected.append(task)
            continue
        cancelled_at = _parsed(task.cancelled_at)
        if cancelled_at is not None and cancelled_at <= threshold:
            selected.append(task)
    return selected


def select_completed(
    store: TaskStore,
    now: datetime,
    policy: ArchivePolicy,
    mode: ArchiveMode = ArchiveMode.RETENTION,
) -> list[Task]:
    """Done tasks due for the archive, in store order.

    Done tasks are ranked newest ``completedAt`` first and the first
    ``preserve_recent_count`` of them stay (ALL preserves none). Of the
    rest, RETENTION takes those completed at least ``days_until_archive``
    ago plus any ranked beyond ``max_completed_tasks``. FORCE and ALL skip
    the age check.

    A task without a parseable ``completedAt`` ranks as the oldest but is
    never archived on age alone.
    """
    done = [task for task in store.tasks if task.status == TaskStatus.DONE]
    ranked = sorted(done, key=lambda task: _parsed(task.completed_at) or _UNKNOWN, reverse=True)

    preserve = 0 if mode == ArchiveMode.ALL else policy.preserve_recent_count
    threshold = now - timedelta(days=policy.days_until_archive)
    chosen: set[str] = set()
    for rank, task in enumerate(ranked):
        if rank < preserve:
            continue
        if mode != ArchiveMode.RETENTION or rank >= policy.max_completed_tasks:
            chosen.add(task.id)
            continue
        completed_at = _parsed(task.completed_at)
        if completed_at is not None and completed_at <= threshold:
            chosen.add(task.id)

    return [task for task in done if task.id in chosen]


def build_archive_entry(
    task: Task,
    archived_at: str,
    session_id: str,
    cancelled_by: str,
) -> dict[str, Any]:
    """Serialize a done or cancelled task with its ``_archive`` block."""
    entry = task.model_dump(by_alias=True, exclude_unset=True, mode="json")
    if task.status == TaskStatus.CANCELLED:
        entry["_archive"] = {
            "archivedAt": archived_at,
            "reason": ARCHIVE_REASON_CANCELLED,
            "sessionId": session_id,
            "cancellationDetails": {
                "cancelledAt": task.cancelled_at,
                "cancelledBy": entry.get("cancelledBy", cancelled_by),
                "cancelReason": task.cancel_reason,
            },
        }
    else:
        entry["_archive"] = {
            "archivedAt": archived_at,
            "reason": ARCHIVE_REASON_AUTO,
            "sessionId": session_id,
            "cycleTimeDays": cycle_time_days(task),
        }
    return entry


def remove_tasks(store: TaskStore, task_ids: list[str]) -> tuple[TaskStore, list[DomainEvent]]:
    """Drop tasks from the live store.

    Remaining tasks lose ``depends`` entries and ``parentId`` values that
    pointed at a removed task, and the focus pointer is cleared if it
    pointed at one.
    """
    removed = set(task_ids)
    events: list[DomainEvent] = [TaskArchived(task_id=task_id) for task_id in task_ids]
    remaining: list[Task] = []

    for task in store.tasks:
        if task.id in removed:
            continue
        update: dict = {}
        pruned = [dep for dep in task.depends if dep in removed]
        if pruned:
            update["depends"] = [dep for dep in task.depends if dep not in removed]
            events.append(DependencyPruned(task_id=task.id, removed=pruned))
        if task.parent_id is not None and task.parent_id in removed:
            update["parent_id"] = None
            events.append(ChildOrphaned(task_id=task.id, former_parent_id=task.parent_id))
        remaining.append(task.model_copy(update=update) if update else task)

    focus = store.focus
    if focus.current_task is not None and focus.current_task in removed:
        events.append(FocusCleared(task_id=focus.current_task))
        focus = focus.model_copy(update={"current_task": None})

    return store.model_copy(update={"tasks": remaining, "focus": focus}), events


def _tally(counts: dict[str, int], keys: list[str]) -> dict[str, int]:
    merged = Counter(counts)
    merged.update(keys)
    return dict(merged)


def _completion_bounds(
    current: tuple[str | None, str | None], entries: list[dict[str, Any]]
) -> tuple[str | None, str | None]:
    stamps = [stamp for stamp in current if _parsed(stamp) is not None]
    stamps += [
        entry["completedAt"]
        for entry in entries
        if entry.get("status") == TaskStatus.DONE.value and _parsed(entry.get("completedAt"))
    ]
    if not stamps:
        return current
    ordered = sorted(stamps, key=parse_timestamp)
    return ordered[0], ordered[-1]


def _average_cycle_time(archived: list[dict[str, Any]]) -> float | None:
    samples = [
        entry["_archive"]["cycleTimeDays"]
        for entry in archived
        if isinstance(entry.get("_archive"), dict)
        and isinstance(entry["_archive"].get("cycleTimeDays"), int)
    ]
    if not samples:
        return None
    return round(sum(samples) / len(samples), 1)


def append_to_archive(
    archive: ArchiveStore,
    entries: list[dict[str, Any]],
    archived_at: str,
) -> ArchiveStore:
    """Return a new archive with ``entries`` appended and counters updated."""
    cancelled = [e for e in entries if e.get("status") == TaskStatus.CANCELLED.value]
    completed = [e for e in entries if e.get("status") == TaskStatus.DONE.value]
    archived_tasks = [*archive.archived_tasks, *entries]

    oldest, newest = _completion_bounds(
        (archive.meta.oldest_task, archive.meta.newest_task), entries
    )
    meta = archive.meta.model_copy(
        update={
            "total_archived": archive.meta.total_archived + len(entries),
            "last_archived": archived_at,
            "oldest_task": oldest,
            "newest_task": newest,
        }
    )

    stats = archive.statistics
    statistics = stats.model_copy(
        update={
            "completed": stats.completed + len(completed),
            "cancelled": stats.cancelled + len(cancelled),
            "by_phase": _tally(stats.by_phase, [e["phase"] for e in entries if e.get("phase")]),
            "by_priority": _tally(
                stats.by_priority, [e["priority"] for e in entries if e.get("priority")]
            ),
            "by_label": _tally(
                stats.by_label, [label for e in entries for label in e.get("labels") or []]
            ),
            "average_cycle_time": _average_cycle_time(archived_tasks),
        }
    )
    return archive.model_copy(
        update={
            "meta": meta,
            "archived_tasks": archived_tasks,
            "statistics": statistics,
        }
    )
