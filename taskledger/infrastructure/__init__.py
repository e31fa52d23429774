"""Infrastructure layer for taskledger.

File-backed implementations of everything the application layer touches
on disk, each returning Result values instead of raising.

Exports:
    Storage:
        - JsonStorage: Low-level JSON file I/O and atomic writes
        - StorePaths: File layout of a store directory
        - StoreRepository: todo.json persistence with checksum verification
        - ArchiveRepository: todo-archive.json persistence

    Commit support:
        - FileStoreLock: Exclusive advisory lock (filelock)
        - SafetyBackupStore: Pre-operation safety backups
        - AuditLog: Append-only todo-log.json
"""

from taskledger.infrastructure.audit_log import AuditEntry, AuditLog
from taskledger.infrastructure.backup import SafetyBackupStore
from taskledger.infrastructure.locking import FileStoreLock
from taskledger.infrastructure.storage import (
    ArchiveRepository,
    JsonStorage,
    StorePaths,
    StoreRepository,
)

__all__ = [
    # Storage
    "JsonStorage",
    "StorePaths",
    "StoreRepository",
    "ArchiveRepository",
    # Commit support
    "FileStoreLock",
    "SafetyBackupStore",
    "AuditLog",
    "AuditEntry",
]
