"""Archive domain - done and cancelled tasks leaving the live store."""

from .archiving import (
    ARCHIVE_REASON_AUTO,
    ARCHIVE_REASON_CANCELLED,
    DEFAULT_SESSION_ID,
    append_to_archive,
    build_archive_entry,
    cycle_time_days,
    remove_tasks,
    select_cancelled,
    select_completed,
)
from .models import ArchiveMeta, ArchiveMode, ArchivePolicy, ArchiveStatistics, ArchiveStore

__all__ = [
    "ArchiveMeta",
    "ArchiveMode",
    "ArchivePolicy",
    "ArchiveStatistics",
    "ArchiveStore",
    "ARCHIVE_REASON_AUTO",
    "ARCHIVE_REASON_CANCELLED",
    "DEFAULT_SESSION_ID",
    "select_cancelled",
    "select_completed",
    "cycle_time_days",
    "build_archive_entry",
    "remove_tasks",
    "append_to_archive",
]
