"""Result monad for explicit error handling in domain operations.

Operations that can fail in an expected way (a task that does not exist,
a stale checksum, a reason with forbidden characters) return ``Ok`` or
``Err`` instead of raising. Exceptions are reserved for failures the
caller cannot do anything about.

Example usage:
    >>> def parse_depth(raw: str) -> Result[int, str]:
    ...     if not raw.isdigit():
    ...         return Err(f"Not a number: {raw}")
    ...     return Ok(int(raw))
    ...
    >>> result = parse_depth("3")
    >>> if is_ok(result):
    ...     print(result.value)
    3
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value.

    Attributes:
        value: The success value of type T.
    """

    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error.

    Attributes:
        error: The error value of type E.
    """

    error: E


# Using Union here as TypeVar aliases don't work with | syntax at runtime
Result = Union[Ok[T], Err[E]]  # noqa: UP007


def is_ok(result: Ok[T] | Err[E]) -> bool:
    """Check if a result is successful."""
    return isinstance(result, Ok)


def is_err(result: Ok[T] | Err[E]) -> bool:
    """Check if a result is an error."""
    return isinstance(result, Err)

