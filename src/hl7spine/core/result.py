"""
Result envelope for explicit success/failure handling.

The queue processor threads every step of one entry (parse, dispatch,
archive) through ``Result`` values instead of nested try/except blocks. A
failure short-circuits the chain and arrives at the end as an ``Err`` whose
``error`` is a typed ``Hl7SpineError`` the classifier can inspect.

Architecture:
    ::

        ┌───────────────────────────────────────────────┐
        │                  Result[T]                     │
        ├───────────────┬───────────────┬───────────────┤
        │    Ok[T]      │    Err[T]     │   Utilities   │
        ├───────────────┼───────────────┼───────────────┤
        │ • value: T    │ • error: Exc  │ • try_result_ │
        │ • flat_map()  │ • flat_map()  │   with()      │
        │ • unwrap()    │ • unwrap()    │               │
        └───────────────┴───────────────┴───────────────┘

Examples:
    >>> def half(x: int) -> Result[int]:
    ...     return Ok(x // 2) if x % 2 == 0 else Err(ValueError("odd"))
    >>> Ok(8).flat_map(half).flat_map(half).unwrap()
    2

Tags:
    result-pattern, error-handling, functional-programming, hl7spine
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    ``flat_map`` passes an Err through unchanged so a failure in the first
    step of a chain reaches the end intact.
    """

    error: Exception

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        return self  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result_with(
    f: Callable[[], T],
    error_mapper: Callable[[Exception], Exception],
) -> Result[T]:
    """
    Execute a function and map any exception through ``error_mapper``.

    Example:
        >>> result = try_result_with(
        ...     lambda: int("x"),
        ...     lambda e: ValueError(f"bad number: {e}"),
        ... )
        >>> isinstance(result, Err)
        True
    """
    try:
        return Ok(f())
    except Exception as e:
        return Err(error_mapper(e))


__all__ = [
    "Ok",
    "Err",
    "Result",
    "try_result_with",
]
