"""Storage infrastructure for taskledger.

Provides persistence layer implementations for domain models,
using Result monads for explicit error handling.
"""

from taskledger.infrastructure.storage.json_storage import JsonStorage
from taskledger.infrastructure.storage.paths import StorePaths
from taskledger.infrastructure.storage.repositories import (
    ArchiveRepository,
    StoreRepository,
)

__all__ = [
    "JsonStorage",
    "StorePaths",
    "StoreRepository",
    "ArchiveRepository",
]
