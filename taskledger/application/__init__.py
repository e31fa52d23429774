"""Application layer - orchestrates domain operations with storage handles.

    DeletionService - Cancel a task (preflight, preview, locked commit, rollback)
    ArchiveService  - Move done and cancelled tasks into the archive
    RepairService   - Automatic fixes and checksum restamp (validate --fix)
"""

from taskledger.application.archive_service import ArchiveOutcome, ArchiveService
from taskledger.application.deletion_service import (
    DeletionOutcome,
    DeletionService,
    OperationState,
)
from taskledger.application.ports import (
    AuditLogPort,
    BackupHandle,
    LockUnavailable,
    SafetyBackups,
    StoreLock,
    TaskStoreRepository,
)
from taskledger.application.repair_service import RepairOutcome, RepairService

__all__ = [
    # Services
    "DeletionService",
    "DeletionOutcome",
    "OperationState",
    "ArchiveService",
    "ArchiveOutcome",
    "RepairService",
    "RepairOutcome",
    # Ports
    "StoreLock",
    "LockUnavailable",
    "SafetyBackups",
    "BackupHandle",
    "AuditLogPort",
    "TaskStoreRepository",
]
