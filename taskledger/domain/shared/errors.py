"""Structured error values shared by the deletion engine.

Errors travel inside ``Err`` as ``OperationError`` records rather than as
exceptions. Each code maps to a CLI exit code through ``EXIT_CODES``.
"""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Machine-readable failure codes."""

    INVALID_INPUT = "E_INVALID_INPUT"
    NOT_FOUND = "E_NOT_FOUND"
    TASK_COMPLETED = "E_TASK_COMPLETED"
    HAS_CHILDREN = "E_HAS_CHILDREN"
    CASCADE_DISABLED = "E_CASCADE_DISABLED"
    CASCADE_LIMIT_EXCEEDED = "E_CASCADE_LIMIT_EXCEEDED"
    CONCURRENT_MODIFICATION = "E_CONCURRENT_MODIFICATION"
    LOCK_FAILED = "E_LOCK_FAILED"
    BACKUP_FAILED = "E_BACKUP_FAILED"
    WRITE_FAILED = "E_WRITE_FAILED"
    VALIDATION_FAILED = "E_VALIDATION_FAILED"
    STORE_INVALID = "E_STORE_INVALID"
    STORE_NOT_FOUND = "E_STORE_NOT_FOUND"


EXIT_GENERAL_ERROR = 1
EXIT_NO_CHANGE = 102

EXIT_CODES: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 2,
    ErrorCode.CASCADE_DISABLED: 2,
    ErrorCode.CASCADE_LIMIT_EXCEEDED: 2,
    ErrorCode.BACKUP_FAILED: 3,
    ErrorCode.WRITE_FAILED: 3,
    ErrorCode.STORE_NOT_FOUND: 3,
    ErrorCode.NOT_FOUND: 4,
    ErrorCode.VALIDATION_FAILED: 6,
    ErrorCode.STORE_INVALID: 6,
    ErrorCode.LOCK_FAILED: 7,
    ErrorCode.HAS_CHILDREN: 16,
    ErrorCode.TASK_COMPLETED: 17,
    ErrorCode.CONCURRENT_MODIFICATION: 21,
}

# Codes the caller cannot fix by changing input or retrying.
_FATAL_CODES = frozenset({ErrorCode.VALIDATION_FAILED, ErrorCode.STORE_INVALID})


class OperationError(BaseModel):
    """A structured failure: which check failed, on which field, and why."""

    code: ErrorCode
    field: str | None = None
    message: str

    model_config = {"frozen": True}

    @property
    def recoverable(self) -> bool:
        return self.code not in _FATAL_CODES

    @property
    def exit_code(self) -> int:
        return EXIT_CODES.get(self.code, EXIT_GENERAL_ERROR)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class RollbackError(RuntimeError):
    """Raised when a safety backup cannot be restored after a failed commit.

    This is the one failure the engine does not turn into a value: the
    store on disk is in an unknown state and needs a human.
    """
