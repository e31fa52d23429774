"""Repository implementations for the task store and the archive.

Wrap ``JsonStorage`` and turn raw JSON into validated domain models in one
explicit parse step. Failures come back as ``OperationError`` values so the
application layer can map them straight to exit codes.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from taskledger.domain.archive import ArchiveStore
from taskledger.domain.shared import Err, ErrorCode, Ok, OperationError, Result
from taskledger.domain.task import ChecksumStatus, TaskStore, compute_checksum, format_timestamp
from taskledger.infrastructure.storage.json_storage import JsonStorage

logger = logging.getLogger(__name__)


class StoreRepository:
    """Repository for ``todo.json``.

    ``load`` verifies the stored checksum against the task list exactly as
    it appears in the file; ``save`` recomputes it from what is written.
    """

    def __init__(self, todo_file: Path, storage: JsonStorage | None = None) -> None:
        """Initialize the repository.

        Args:
            todo_file: Path of the store file.
            storage: JsonStorage instance to use. Creates new one if not provided.
        """
        self.todo_file = todo_file
        self._storage = storage or JsonStorage()

    def exists(self) -> bool:
        return self.todo_file.exists()

    def _read(self) -> Result[dict, OperationError]:
        """Read the raw document and check the shape of ``_meta`` and ``tasks``."""
        if not self.todo_file.exists():
            return Err(
                OperationError(
                    code=ErrorCode.STORE_NOT_FOUND,
                    message=f"Store not found: {self.todo_file}",
                )
            )

        result = self._storage.load_json(self.todo_file)
        if isinstance(result, Err):
            return Err(OperationError(code=ErrorCode.STORE_INVALID, message=result.error))
        data = result.value

        if not isinstance(data.get("_meta", {}), dict):
            return Err(
                OperationError(
                    code=ErrorCode.STORE_INVALID,
                    message=f"Invalid store data in {self.todo_file}: _meta must be an object",
                )
            )
        if not isinstance(data.get("tasks", []), list):
            return Err(
                OperationError(
                    code=ErrorCode.STORE_INVALID,
                    message=f"Invalid store data in {self.todo_file}: tasks must be a list",
                )
            )
        return Ok(data)

    @staticmethod
    def _checksum_of(data: dict) -> ChecksumStatus:
        stored = (data.get("_meta") or {}).get("checksum")
        return ChecksumStatus(
            stored=str(stored) if stored else None,
            computed=compute_checksum(data.get("tasks", [])),
        )

    def checksum_status(self) -> Result[ChecksumStatus, OperationError]:
        """Compare the stored checksum with the tasks exactly as they are on disk."""
        read = self._read()
        if isinstance(read, Err):
            return read
        return Ok(self._checksum_of(read.value))

    def load(self, verify_checksum: bool = True) -> Result[TaskStore, OperationError]:
        """Load and validate the store.

        Args:
            verify_checksum: Reject the store when ``_meta.checksum`` does
                not match its tasks. An empty checksum is accepted.

        Returns:
            Ok(TaskStore), or Err with STORE_NOT_FOUND, STORE_INVALID or
            CONCURRENT_MODIFICATION.
        """
        read = self._read()
        if isinstance(read, Err):
            return read
        data = read.value

        if verify_checksum:
            checksum = self._checksum_of(data)
            if not checksum.matches:
                logger.warning(
                    "Checksum mismatch in %s: stored %s, computed %s",
                    self.todo_file,
                    checksum.stored,
                    checksum.computed,
                )
                return Err(
                    OperationError(
                        code=ErrorCode.CONCURRENT_MODIFICATION,
                        message=(
                            f"Checksum mismatch (stored {checksum.stored}, "
                            f"computed {checksum.computed}); "
                            "the store was modified outside this tool"
                        ),
                    )
                )

        try:
            return Ok(TaskStore.model_validate(data))
        except ValidationError as e:
            return Err(
                OperationError(
                    code=ErrorCode.STORE_INVALID,
                    message=f"Invalid store data in {self.todo_file}: {e}",
                )
            )

    def save(self, store: TaskStore) -> Result[TaskStore, OperationError]:
        """Stamp checksum and ``lastUpdated``, then write atomically.

        Returns:
            Ok(the stamped store as written), or Err(WRITE_FAILED).
        """
        meta = store.meta.model_copy(update={"checksum": compute_checksum(store.tasks_payload())})
        stamped = store.model_copy(update={"meta": meta, "last_updated": format_timestamp()})

        result = self._storage.save_json(self.todo_file, stamped.to_json_dict())
        if isinstance(result, Err):
            return Err(OperationError(code=ErrorCode.WRITE_FAILED, message=result.error))

        logger.debug("Wrote %s (checksum %s)", self.todo_file, meta.checksum)
        return Ok(stamped)


class ArchiveRepository:
    """Repository for ``todo-archive.json``.

    A missing archive file is an empty archive.
    """

    def __init__(self, archive_file: Path, storage: JsonStorage | None = None) -> None:
        self.archive_file = archive_file
        self._storage = storage or JsonStorage()

    def exists(self) -> bool:
        return self.archive_file.exists()

    def discard(self) -> None:
        """Remove the archive file (used when undoing the write that created it)."""
        try:
            self.archive_file.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", self.archive_file, e)

    def load(self) -> Result[ArchiveStore, OperationError]:
        if not self.archive_file.exists():
            return Ok(ArchiveStore())

        result = self._storage.load_json(self.archive_file)
        if isinstance(result, Err):
            return Err(OperationError(code=ErrorCode.STORE_INVALID, message=result.error))

        try:
            return Ok(ArchiveStore.model_validate(result.value))
        except ValidationError as e:
            return Err(
                OperationError(
                    code=ErrorCode.STORE_INVALID,
                    message=f"Invalid archive data in {self.archive_file}: {e}",
                )
            )

    def save(self, archive: ArchiveStore) -> Result[None, OperationError]:
        result = self._storage.save_json(self.archive_file, archive.to_json_dict())
        if isinstance(result, Err):
            return Err(OperationError(code=ErrorCode.WRITE_FAILED, message=result.error))
        return Ok(None)
