"""Pre-operation safety backups.

Before a mutation, the file about to change is copied into
``.backups/safety/safety_<YYYYmmdd_HHMMSS>_<operation>_<filename>/`` together
with a ``metadata.json`` describing the copy. A failed commit restores the
file from there.
"""

import hashlib
import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path

from taskledger.application.ports import BackupHandle
from taskledger.domain.shared.result import Err, Ok, Result
from taskledger.domain.task import format_timestamp
from taskledger.infrastructure.storage.json_storage import JsonStorage

logger = logging.getLogger(__name__)

BACKUP_TYPE_SAFETY = "safety"


def _file_checksum(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


class SafetyBackupStore:
    """File-backed safety backups under a ``.backups`` directory."""

    def __init__(self, backup_root: Path, storage: JsonStorage | None = None) -> None:
        self.backup_root = backup_root
        self._storage = storage or JsonStorage()

    @property
    def safety_dir(self) -> Path:
        return self.backup_root / BACKUP_TYPE_SAFETY

    def _new_backup_dir(self, source: Path, operation: str, now: datetime) -> Path:
        base = f"safety_{now.strftime('%Y%m%d_%H%M%S')}_{operation}_{source.name}"
        candidate = self.safety_dir / base
        counter = 2
        while candidate.exists():
            candidate = self.safety_dir / f"{base}_{counter}"
            counter += 1
        return candidate

    def snapshot(self, path: Path, operation: str) -> Result[BackupHandle, str]:
        """Copy ``path`` into a fresh safety backup directory.

        Args:
            path: File about to be modified.
            operation: Short name of the operation, used in the directory name.

        Returns:
            Ok(BackupHandle) for a later ``restore``, or Err(str).
        """
        if not path.is_file():
            return Err(f"Cannot back up {path}: file not found")

        now = datetime.now(UTC)
        backup_dir = self._new_backup_dir(path, operation, now)
        backup_file = backup_dir / path.name

        try:
            backup_dir.mkdir(parents=True)
            shutil.copy2(path, backup_file)
            size = backup_file.stat().st_size
            checksum = _file_checksum(backup_file)
        except OSError as e:
            return Err(f"Failed to create safety backup of {path}: {e}")

        metadata = {
            "backupType": BACKUP_TYPE_SAFETY,
            "timestamp": format_timestamp(now),
            "trigger": "auto",
            "operation": operation,
            "files": [
                {
                    "source": path.name,
                    "backup": backup_file.name,
                    "size": size,
                    "checksum": checksum,
                }
            ],
            "totalSize": size,
        }
        result = self._storage.save_json(backup_dir / "metadata.json", metadata)
        if isinstance(result, Err):
            return Err(f"Failed to write backup metadata: {result.error}")

        logger.debug("Safety backup of %s at %s", path, backup_dir)
        return Ok(
            BackupHandle(
                source=path,
                backup_file=backup_file,
                backup_dir=backup_dir,
                created_at=format_timestamp(now),
            )
        )

    def restore(self, handle: BackupHandle) -> Result[None, str]:
        """Put the backed-up bytes back at the original location."""
        try:
            content = handle.backup_file.read_bytes()
        except OSError as e:
            return Err(f"Cannot read safety backup {handle.backup_file}: {e}")

        result = self._storage.atomic_write(handle.source, content)
        if isinstance(result, Err):
            return result

        logger.warning("Restored %s from %s", handle.source, handle.backup_dir)
        return Ok(None)
