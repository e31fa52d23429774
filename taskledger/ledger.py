"""Wiring: build repositories and services for one store directory.

Example:
    ledger = Ledger.open(".claude")
    result = ledger.deletion_service().delete_task("T005", reason="No longer needed")
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from taskledger.application import ArchiveService, DeletionService, RepairService
from taskledger.config import TodoConfig, load_config, resolve_store_dir
from taskledger.infrastructure import (
    ArchiveRepository,
    AuditLog,
    FileStoreLock,
    JsonStorage,
    SafetyBackupStore,
    StorePaths,
    StoreRepository,
)


@dataclass
class Ledger:
    """A store directory plus the configuration read from it."""

    paths: StorePaths
    config: TodoConfig
    storage: JsonStorage

    @classmethod
    def open(cls, store_dir: str | Path | None = None) -> "Ledger":
        paths = StorePaths(resolve_store_dir(store_dir))
        return cls(paths=paths, config=load_config(paths.config_file), storage=JsonStorage())

    def repository(self) -> StoreRepository:
        return StoreRepository(self.paths.todo_file, self.storage)

    def archive_repository(self) -> ArchiveRepository:
        return ArchiveRepository(self.paths.archive_file, self.storage)

    def lock(self) -> FileStoreLock:
        return FileStoreLock(self.paths.todo_file, timeout=self.config.lock.timeout_seconds)

    def backups(self) -> SafetyBackupStore:
        return SafetyBackupStore(self.paths.backup_dir, self.storage)

    def audit_log(self) -> AuditLog | None:
        if not self.config.audit.enabled:
            return None
        return AuditLog(self.paths.log_file, actor=self.config.audit.actor, storage=self.storage)

    def deletion_service(self, clock: Callable[[], datetime] | None = None) -> DeletionService:
        return DeletionService(
            repository=self.repository(),
            policy=self.config.cancellation,
            lock=self.lock(),
            backups=self.backups(),
            audit_log=self.audit_log(),
            clock=clock,
        )

    def archive_service(self, clock: Callable[[], datetime] | None = None) -> ArchiveService:
        return ArchiveService(
            repository=self.repository(),
            archive_repository=self.archive_repository(),
            policy=self.config.archive,
            cancelled_days_until_archive=self.config.cancellation.days_until_archive,
            lock=self.lock(),
            backups=self.backups(),
            audit_log=self.audit_log(),
            clock=clock,
            actor=self.config.audit.actor,
        )

    def repair_service(self, clock: Callable[[], datetime] | None = None) -> RepairService:
        return RepairService(
            repository=self.repository(),
            lock=self.lock(),
            backups=self.backups(),
            audit_log=self.audit_log(),
            clock=clock,
        )
