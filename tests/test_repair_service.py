# tests/test_repair_service.py

import json
from pathlib import Path

import pytest

from taskledger.application import RepairService
from taskledger.domain.shared import ErrorCode, Ok, RollbackError
from taskledger.domain.task import compute_checksum
from taskledger.infrastructure import SafetyBackupStore, StoreRepository

from .conftest import FIXED_NOW
from .fakes import (
    FailingBackups,
    FakeAuditLog,
    FakeLock,
    FlakyStorage,
    UnrestorableBackups,
    read_json,
    task_dict,
    tasks_by_id,
    write_store,
)


def _service(store_dir: Path, **overrides) -> RepairService:
    args = {
        "repository": StoreRepository(store_dir / "todo.json"),
        "lock": FakeLock(),
        "backups": SafetyBackupStore(store_dir / ".backups"),
        "audit_log": FakeAuditLog(),
        "clock": lambda: FIXED_NOW,
    }
    args.update(overrides)
    return RepairService(**args)


def _edit_by_hand(todo_file: Path) -> None:
    data = read_json(todo_file)
    data["tasks"][0]["title"] = "Edited by hand"
    todo_file.write_text(json.dumps(data, indent=2), encoding="utf-8")


def test_restamps_a_hand_edited_store(store_dir: Path) -> None:
    todo_file = store_dir / "todo.json"
    _edit_by_hand(todo_file)
    audit_log = FakeAuditLog()
    lock = FakeLock()
    repository = StoreRepository(todo_file)
    assert repository.load().error.code == ErrorCode.CONCURRENT_MODIFICATION

    result = _service(store_dir, lock=lock, audit_log=audit_log).repair()

    assert isinstance(result, Ok)
    assert len(result.value.fixes) == 1
    assert result.value.fixes[0].startswith("Restamped checksum")
    assert lock.acquired == 1
    on_disk = read_json(todo_file)
    assert on_disk["_meta"]["checksum"] == compute_checksum(on_disk["tasks"])
    assert on_disk["tasks"][0]["title"] == "Edited by hand"
    assert isinstance(repository.load(), Ok)

    [backup] = list((store_dir / ".backups" / "safety").iterdir())
    assert "_repair_" in backup.name
    [logged] = audit_log.entries
    assert logged["action"] == "validation_run"
    assert logged["details"]["checksum"] == on_disk["_meta"]["checksum"]


def test_healthy_store_is_left_alone(store_dir: Path) -> None:
    todo_file = store_dir / "todo.json"
    before = todo_file.read_bytes()
    audit_log = FakeAuditLog()

    result = _service(store_dir, audit_log=audit_log).repair()

    assert not result.value.repaired
    assert todo_file.read_bytes() == before
    assert not (store_dir / ".backups").exists()
    assert audit_log.entries == []


def test_stamps_and_resolves_bookkeeping(tmp_path: Path) -> None:
    todo_file = write_store(
        tmp_path / "todo.json",
        [
            task_dict("T001", status="active"),
            task_dict("T002", status="active"),
            task_dict("T003", status="done"),
        ],
        focus={"currentTask": "T002"},
    )

    result = _service(tmp_path).repair()

    assert len(result.value.fixes) == 3
    by_id = tasks_by_id(todo_file)
    assert by_id["T002"]["status"] == "pending"
    assert by_id["T003"]["completedAt"] == "2026-01-15T12:00:00Z"
    assert read_json(todo_file)["focus"]["currentTask"] == "T001"


def test_lock_timeout_is_lock_failed(store_dir: Path) -> None:
    result = _service(store_dir, lock=FakeLock(fail=True)).repair()

    assert result.error.code == ErrorCode.LOCK_FAILED


def test_backup_failure_writes_nothing(store_dir: Path) -> None:
    todo_file = store_dir / "todo.json"
    _edit_by_hand(todo_file)
    before = todo_file.read_bytes()

    result = _service(store_dir, backups=FailingBackups()).repair()

    assert result.error.code == ErrorCode.BACKUP_FAILED
    assert todo_file.read_bytes() == before


def test_failed_write_is_reported(store_dir: Path) -> None:
    todo_file = store_dir / "todo.json"
    _edit_by_hand(todo_file)
    before = todo_file.read_bytes()
    repository = StoreRepository(todo_file, storage=FlakyStorage(todo_file))

    result = _service(store_dir, repository=repository).repair()

    assert result.error.code == ErrorCode.WRITE_FAILED
    assert todo_file.read_bytes() == before


def test_failed_write_without_a_restorable_backup_raises(store_dir: Path) -> None:
    todo_file = store_dir / "todo.json"
    _edit_by_hand(todo_file)
    service = _service(
        store_dir,
        repository=StoreRepository(todo_file, storage=FlakyStorage(todo_file)),
        backups=UnrestorableBackups(SafetyBackupStore(store_dir / ".backups")),
    )

    with pytest.raises(RollbackError):
        service.repair()
