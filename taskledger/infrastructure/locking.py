"""Advisory file lock around the commit phase."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from taskledger.application.ports import LockUnavailable

logger = logging.getLogger(__name__)


class FileStoreLock:
    """Exclusive lock on a store file, held in ``<file>.lock``.

    The lock file is created on first acquisition, never at construction,
    so building one is free of side effects.
    """

    def __init__(self, target: Path, timeout: float = 5.0) -> None:
        self.lock_file = target.with_name(target.name + ".lock")
        self.timeout = timeout
        self._lock = FileLock(str(self.lock_file), timeout=timeout)

    @contextmanager
    def hold(self) -> Iterator[None]:
        try:
            self._lock.acquire()
        except Timeout as e:
            raise LockUnavailable(
                f"Could not lock {self.lock_file} within {self.timeout:g}s"
            ) from e

        logger.debug("Acquired %s", self.lock_file)
        try:
            yield
        finally:
            self._lock.release()
            logger.debug("Released %s", self.lock_file)
