# tests/test_archive_service.py

from datetime import timedelta
from pathlib import Path

import pytest

from taskledger.application import ArchiveService
from taskledger.domain.archive import (
    ArchiveMode,
    ArchivePolicy,
    ArchiveStore,
    append_to_archive,
    cycle_time_days,
    remove_tasks,
    select_cancelled,
    select_completed,
)
from taskledger.domain.shared import ErrorCode, Ok
from taskledger.domain.task import Task, TaskArchived, TaskStore
from taskledger.infrastructure import ArchiveRepository, SafetyBackupStore, StoreRepository

from .conftest import FIXED_NOW
from .fakes import (
    FakeAuditLog,
    FakeLock,
    FlakyStorage,
    read_json,
    task_dict,
    tasks_by_id,
    write_store,
)


def _service(
    store_dir: Path,
    policy: ArchivePolicy | None = None,
    cancelled_days: int = 7,
    **overrides,
) -> ArchiveService:
    args = {
        "repository": StoreRepository(store_dir / "todo.json"),
        "archive_repository": ArchiveRepository(store_dir / "todo-archive.json"),
        "policy": policy or ArchivePolicy(),
        "cancelled_days_until_archive": cancelled_days,
        "lock": FakeLock(),
        "backups": SafetyBackupStore(store_dir / ".backups"),
        "audit_log": FakeAuditLog(),
        "clock": lambda: FIXED_NOW,
    }
    args.update(overrides)
    return ArchiveService(**args)


def _done(task_id: str, days_ago: int | None) -> dict:
    completed = None
    if days_ago is not None:
        completed = (FIXED_NOW - timedelta(days=days_ago)).strftime("%Y-%m-%dT%H:%M:%SZ")
    return task_dict(task_id, status="done", completedAt=completed)


@pytest.fixture()
def finished() -> TaskStore:
    """Five done tasks completed 1, 5, 14, 26 and 2 days before FIXED_NOW."""
    return TaskStore.model_validate(
        {
            "tasks": [
                _done("T001", 1),
                _done("T002", 5),
                _done("T003", 14),
                _done("T004", 26),
                _done("T005", 2),
                task_dict("T006"),
            ]
        }
    )


def _ids(tasks: list[Task]) -> list[str]:
    return [task.id for task in tasks]


def test_cancelled_selection_respects_the_retention_period(store: TaskStore) -> None:
    cancelled_at = FIXED_NOW.replace(year=2025, month=11, day=1, hour=10)
    age = FIXED_NOW - cancelled_at

    assert _ids(select_cancelled(store, FIXED_NOW, 7)) == ["T007"]
    assert select_cancelled(store, FIXED_NOW, age.days + 1) == []
    assert select_cancelled(store, cancelled_at + timedelta(days=3), 3) != []


def test_cancelled_tasks_of_unknown_age_need_force() -> None:
    store = TaskStore.model_validate(
        {
            "tasks": [
                task_dict("T001", status="cancelled", cancelReason="Gone"),
                task_dict("T002", status="cancelled", cancelledAt="last week", cancelReason="Gone"),
            ]
        }
    )

    assert select_cancelled(store, FIXED_NOW, 0) == []
    assert _ids(select_cancelled(store, FIXED_NOW, 0, ArchiveMode.FORCE)) == ["T001", "T002"]


@pytest.mark.parametrize(
    ("mode", "max_completed", "expected"),
    [
        (ArchiveMode.RETENTION, 15, ["T003", "T004"]),
        (ArchiveMode.RETENTION, 2, ["T002", "T003", "T004"]),
        (ArchiveMode.FORCE, 15, ["T002", "T003", "T004"]),
        (ArchiveMode.ALL, 15, ["T001", "T002", "T003", "T004", "T005"]),
    ],
)
def test_completed_selection_keeps_the_most_recent(
    finished: TaskStore, mode: ArchiveMode, max_completed: int, expected: list[str]
) -> None:
    policy = ArchivePolicy(
        days_until_archive=7, preserve_recent_count=2, max_completed_tasks=max_completed
    )

    assert _ids(select_completed(finished, FIXED_NOW, policy, mode)) == expected


def test_done_tasks_without_a_completion_time_rank_oldest() -> None:
    store = TaskStore.model_validate(
        {"tasks": [_done("T001", None), _done("T002", 30), _done("T003", 1)]}
    )
    policy = ArchivePolicy(preserve_recent_count=1)

    assert _ids(select_completed(store, FIXED_NOW, policy)) == ["T002"]
    assert _ids(select_completed(store, FIXED_NOW, policy, ArchiveMode.FORCE)) == ["T001", "T002"]


def test_cycle_time_is_whole_days() -> None:
    task = Task.model_validate(
        task_dict("T001", createdAt="2025-12-01T09:00:00Z", completedAt="2025-12-04T08:00:00Z")
    )

    assert cycle_time_days(task) == 2
    assert cycle_time_days(task.model_copy(update={"completed_at": None})) is None


def test_remove_tasks_leaves_no_dangling_references() -> None:
    store = TaskStore.model_validate(
        {
            "focus": {"currentTask": "T001"},
            "tasks": [
                task_dict("T001", status="cancelled"),
                task_dict("T002", parentId="T001", depends=["T001", "T003"]),
                task_dict("T003"),
            ],
        }
    )

    remaining, events = remove_tasks(store, ["T001"])
    by_id = {t.id: t for t in remaining.tasks}

    assert list(by_id) == ["T002", "T003"]
    assert by_id["T002"].parent_id is None
    assert by_id["T002"].depends == ["T003"]
    assert remaining.focus.current_task is None
    assert isinstance(events[0], TaskArchived)


def test_append_to_archive_updates_counters() -> None:
    archive = ArchiveStore.model_validate(
        {
            "_meta": {"totalArchived": 4, "oldestTask": "2025-12-01T00:00:00Z"},
            "archivedTasks": [],
            "statistics": {"completed": 1, "cancelled": 2, "byPhase": {"core": 1}},
        }
    )
    entries = [
        {"id": "T009", "status": "cancelled", "phase": "core", "priority": "high"},
        {
            "id": "T010",
            "status": "done",
            "priority": "medium",
            "labels": ["infra"],
            "completedAt": "2026-01-10T00:00:00Z",
            "_archive": {"reason": "auto", "cycleTimeDays": 4},
        },
    ]

    updated = append_to_archive(archive, entries, "2026-01-15T12:00:00Z")

    assert updated.meta.total_archived == 6
    assert updated.meta.last_archived == "2026-01-15T12:00:00Z"
    assert updated.meta.oldest_task == "2025-12-01T00:00:00Z"
    assert updated.meta.newest_task == "2026-01-10T00:00:00Z"
    assert updated.statistics.completed == 2
    assert updated.statistics.cancelled == 3
    assert updated.statistics.by_phase == {"core": 2}
    assert updated.statistics.by_priority == {"high": 1, "medium": 1}
    assert updated.statistics.by_label == {"infra": 1}
    assert updated.statistics.average_cycle_time == 4.0
    assert archive.archived_tasks == []


def test_archive_moves_old_cancelled_tasks(store_dir: Path) -> None:
    audit_log = FakeAuditLog()

    result = _service(store_dir, audit_log=audit_log).archive()

    assert isinstance(result, Ok)
    assert _ids(result.value.archived) == ["T007"]
    assert result.value.archived_at == "2026-01-15T12:00:00Z"
    assert "T007" not in tasks_by_id(store_dir / "todo.json")
    assert isinstance(StoreRepository(store_dir / "todo.json").load(), Ok)

    archive = read_json(store_dir / "todo-archive.json")
    [entry] = archive["archivedTasks"]
    assert entry["id"] == "T007"
    assert entry["_archive"]["reason"] == "cancelled"
    assert entry["_archive"]["sessionId"] == "session_20251201_test"
    assert entry["_archive"]["cancellationDetails"]["cancelReason"] == "Superseded by T005"
    assert archive["_meta"]["totalArchived"] == 1
    assert archive["statistics"]["cancelled"] == 1
    assert archive["statistics"]["completed"] == 0

    [logged] = audit_log.entries
    assert logged["action"] == "task_archived"
    assert logged["actor"] == "system"
    assert logged["details"] == {
        "count": 1,
        "taskIds": ["T007"],
        "completed": [],
        "cancelled": ["T007"],
    }


def test_recent_done_tasks_are_preserved_by_default(store_dir: Path) -> None:
    result = _service(store_dir).archive(mode=ArchiveMode.FORCE)

    assert result.value.completed_ids == []
    assert result.value.cancelled_ids == ["T007"]
    assert {"T006", "T023"} <= set(tasks_by_id(store_dir / "todo.json"))


def test_archive_all_moves_done_tasks_with_cycle_time(store_dir: Path) -> None:
    audit_log = FakeAuditLog()

    result = _service(store_dir, audit_log=audit_log).archive(mode=ArchiveMode.ALL)

    assert result.value.completed_ids == ["T006", "T023"]
    assert result.value.cancelled_ids == ["T007"]
    remaining = tasks_by_id(store_dir / "todo.json")
    assert not {"T006", "T007", "T023"} & set(remaining)
    assert remaining["T021"]["parentId"] == "T020"

    archive = read_json(store_dir / "todo-archive.json")
    entries = {entry["id"]: entry for entry in archive["archivedTasks"]}
    assert entries["T006"]["_archive"] == {
        "archivedAt": "2026-01-15T12:00:00Z",
        "reason": "auto",
        "sessionId": "session_20251201_test",
        "cycleTimeDays": 1,
    }
    assert archive["_meta"]["oldestTask"] == "2025-12-02T10:00:00Z"
    assert archive["_meta"]["newestTask"] == "2025-12-03T10:00:00Z"
    assert archive["statistics"]["completed"] == 2
    assert archive["statistics"]["cancelled"] == 1
    assert archive["statistics"]["averageCycleTime"] == 1.5
    assert audit_log.entries[0]["details"]["completed"] == ["T006", "T023"]


def test_preserve_count_comes_from_the_policy(store_dir: Path) -> None:
    policy = ArchivePolicy(preserve_recent_count=1)

    result = _service(store_dir, policy=policy).archive(mode=ArchiveMode.FORCE)

    assert _ids(result.value.archived) == ["T006", "T007"]


def test_count_overrides_max_completed_tasks(store_dir: Path) -> None:
    policy = ArchivePolicy(days_until_archive=365, preserve_recent_count=0)

    result = _service(store_dir, policy=policy, cancelled_days=365).archive(max_completed=1)

    assert _ids(result.value.archived) == ["T006"]


def test_archive_dry_run_changes_nothing(store_dir: Path) -> None:
    before = (store_dir / "todo.json").read_bytes()
    lock = FakeLock()

    result = _service(store_dir, lock=lock).archive(dry_run=True, mode=ArchiveMode.ALL)

    assert _ids(result.value.archived) == ["T006", "T007", "T023"]
    assert result.value.dry_run
    assert lock.acquired == 0
    assert (store_dir / "todo.json").read_bytes() == before
    assert not (store_dir / "todo-archive.json").exists()


def test_nothing_to_archive(store_dir: Path) -> None:
    policy = ArchivePolicy(days_until_archive=365)

    result = _service(store_dir, policy=policy, cancelled_days=365).archive()

    assert result.value.count == 0
    assert not (store_dir / "todo-archive.json").exists()


def test_archived_tasks_are_pruned_from_dependents(tmp_path: Path) -> None:
    store_dir = tmp_path / ".claude"
    write_store(
        store_dir / "todo.json",
        [
            task_dict(
                "T001", status="cancelled", cancelledAt="2025-12-01T00:00:00Z",
                cancelReason="Dropped",
            ),
            task_dict("T002", depends=["T001"]),
        ],
    )

    _service(store_dir).archive()

    assert tasks_by_id(store_dir / "todo.json") == {
        "T002": task_dict("T002", depends=[]),
    }


def test_concurrent_edit_of_an_unversioned_store_is_detected(tmp_path: Path) -> None:
    store_dir = tmp_path / ".claude"
    todo_file = store_dir / "todo.json"
    old_cancel = task_dict(
        "T001", status="cancelled", cancelledAt="2025-12-01T00:00:00Z", cancelReason="Dropped"
    )
    write_store(todo_file, [old_cancel, task_dict("T002")], checksum=None)

    def edit_elsewhere() -> None:
        write_store(todo_file, [old_cancel, task_dict("T002", title="Renamed")], checksum=None)

    result = _service(store_dir, lock=FakeLock(on_acquire=edit_elsewhere)).archive()

    assert result.error.code == ErrorCode.CONCURRENT_MODIFICATION
    assert tasks_by_id(todo_file)["T002"]["title"] == "Renamed"
    assert "T001" in tasks_by_id(todo_file)
    assert not (store_dir / "todo-archive.json").exists()


def test_failed_store_write_discards_the_new_archive(store_dir: Path) -> None:
    todo_file = store_dir / "todo.json"
    before = todo_file.read_bytes()
    service = _service(
        store_dir, repository=StoreRepository(todo_file, storage=FlakyStorage(todo_file))
    )

    result = service.archive()

    assert result.error.code == ErrorCode.WRITE_FAILED
    assert todo_file.read_bytes() == before
    assert not (store_dir / "todo-archive.json").exists()
