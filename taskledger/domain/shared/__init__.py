"""Shared domain utilities.

- Result monad for explicit error handling
- Structured error values and exit code mapping

Example usage:
    >>> from taskledger.domain.shared import Err, ErrorCode, OperationError
    >>> Err(OperationError(code=ErrorCode.NOT_FOUND, field="taskId", message="Task not found: T999"))
"""

from taskledger.domain.shared.errors import (
    EXIT_CODES,
    EXIT_GENERAL_ERROR,
    EXIT_NO_CHANGE,
    ErrorCode,
    OperationError,
    RollbackError,
)
from taskledger.domain.shared.result import (
    Err,
    Ok,
    Result,
    is_err,
    is_ok,
)

__all__ = [
    # Result monad
    "Ok",
    "Err",
    "Result",
    "is_ok",
    "is_err",
    # Errors
    "ErrorCode",
    "OperationError",
    "RollbackError",
    "EXIT_CODES",
    "EXIT_GENERAL_ERROR",
    "EXIT_NO_CHANGE",
]
