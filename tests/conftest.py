# tests/conftest.py

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from taskledger.application import DeletionService
from taskledger.domain.deletion import CancellationPolicy
from taskledger.domain.task import TaskStore
from taskledger.infrastructure import SafetyBackupStore, StoreRepository

from .fakes import FakeAuditLog, FakeLock, task_dict, write_store

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def sample_tasks() -> list[dict[str, Any]]:
    """
    Store used by most tests.

    Trees: T002 -> {T003, T004}; T010 -> {T011, T012};
    T020 -> T021 -> {T022, T023}. T012 is the single active task and
    holds the focus.
    """
    return [
        task_dict("T001", "Set up repository"),
        task_dict("T002", "Authentication epic", type="epic"),
        task_dict("T003", "Login form", parentId="T002"),
        task_dict("T004", "OAuth provider", parentId="T002", status="blocked"),
        task_dict("T005", "Session handling", depends=["T002"]),
        task_dict("T006", "Write README", status="done", completedAt="2025-12-02T10:00:00Z"),
        task_dict(
            "T007",
            "Old spike",
            status="cancelled",
            cancelledAt="2025-11-01T10:00:00Z",
            cancelReason="Superseded by T005",
        ),
        task_dict("T010", "Legacy reporting", type="epic", phase="core"),
        task_dict("T011", "CSV export", parentId="T010"),
        task_dict("T012", "PDF export", parentId="T010", status="active"),
        task_dict("T013", "Report scheduler", depends=["T011", "T001"]),
        task_dict("T020", "Analytics epic", type="epic"),
        task_dict("T021", "Event pipeline", parentId="T020"),
        task_dict("T022", "Dashboards", parentId="T021", depends=["T003"]),
        task_dict(
            "T023", "Tracking plan", parentId="T021", status="done",
            completedAt="2025-12-03T10:00:00Z",
        ),
    ]


@pytest.fixture()
def store_dir(tmp_path: Path) -> Path:
    """A .claude directory holding the sample todo.json."""
    root = tmp_path / ".claude"
    write_store(
        root / "todo.json",
        sample_tasks(),
        focus={"currentTask": "T012", "sessionNote": "Halfway through PDF layout",
               "nextAction": "Fix page breaks"},
        project="demo",
    )
    return root


@pytest.fixture()
def todo_file(store_dir: Path) -> Path:
    return store_dir / "todo.json"


@pytest.fixture()
def store(todo_file: Path) -> TaskStore:
    return StoreRepository(todo_file).load().value


@pytest.fixture()
def policy() -> CancellationPolicy:
    return CancellationPolicy()


@pytest.fixture()
def audit_log() -> FakeAuditLog:
    return FakeAuditLog()


@pytest.fixture()
def make_service(
    store_dir: Path,
    audit_log: FakeAuditLog,
) -> Callable[..., DeletionService]:
    """
    Build a DeletionService over the sample store.

    Real repository and safety backups; fake lock and audit log unless
    overridden.
    """

    def build(**overrides: Any) -> DeletionService:
        args: dict[str, Any] = {
            "repository": StoreRepository(store_dir / "todo.json"),
            "policy": CancellationPolicy(),
            "lock": FakeLock(),
            "backups": SafetyBackupStore(store_dir / ".backups"),
            "audit_log": audit_log,
            "clock": lambda: FIXED_NOW,
        }
        args.update(overrides)
        return DeletionService(**args)

    return build
