"""
Structured error types for hl7spine.

Every failure that can happen while an inbound queue entry is processed is
expressed as an ``Hl7SpineError`` carrying a tagged ``ErrorKind``, an
``ErrorContext`` and an optional chained cause. The queue processor never
inspects message text to decide what to do with a failure; it looks at the
kind and walks the cause chain.

Manifesto:
    - **Typed Error Hierarchy:** One kind per failure class the processor
      treats differently
    - **Structured Signals:** "patient not resolvable" is a type, not a string
    - **Rich Context:** Errors carry queue id, source and message name
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        Hl7SpineError                             │
        │               (kind, context, cause)                             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  DuplicateProcessingError   ConfigError        SubmissionError   │
        │  (DUPLICATE_PROCESSING)     (CONFIG)           (CONFIG)          │
        │                                                                  │
        │  Hl7Error (PARSE)           HandlerError       UnclassifiedError │
        │      │                      (HANDLER)          (UNCLASSIFIED)    │
        │  MessageParseError                                               │
        │  NoRouteError (NO_ROUTE)                                         │
        │  PatientNotResolvedError                                         │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = NoRouteError("ORU_R01")
    >>> error.kind
    <ErrorKind.NO_ROUTE: 'NO_ROUTE'>

    >>> try:
    ...     raise PatientNotResolvedError()
    ... except PatientNotResolvedError as e:
    ...     wrapped = Hl7Error("Error while processing HL7 message: ORU_R01", cause=e)
    >>> wrapped.caused_by(PatientNotResolvedError)
    True

Tags:
    error-handling, exception-hierarchy, error-kind, error-context, hl7spine
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Tag identifying how the queue processor treats a failure.

    Attributes:
        DUPLICATE_PROCESSING: Entry already claimed; rejected, nothing written
        CONFIG: Startup/registration problem
        NO_ROUTE: No handler registered for the message type
        PARSE: Message could not be parsed or interpreted
        HANDLER: Handler/application fault while persisting data
        UNCLASSIFIED: Anything unexpected
    """

    DUPLICATE_PROCESSING = "DUPLICATE_PROCESSING"
    CONFIG = "CONFIG"
    NO_ROUTE = "NO_ROUTE"
    PARSE = "PARSE"
    HANDLER = "HANDLER"
    UNCLASSIFIED = "UNCLASSIFIED"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-None fields are serialized by ``to_dict()``; anything that does
    not have a dedicated field goes into ``metadata``.

    Examples:
        >>> ctx = ErrorContext(queue_id=7, source_name="remote-lab")
        >>> ctx.to_dict()
        {'queue_id': 7, 'source_name': 'remote-lab'}
    """

    queue_id: int | None = None
    source_name: str | None = None
    source_key: str | None = None
    message_name: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["queue_id", "source_name", "source_key", "message_name"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class Hl7SpineError(Exception):
    """
    Base exception for all hl7spine errors.

    Subclasses set ``default_kind``; callers may override it with ``kind=``
    when re-raising a failure under a different classification.

    Examples:
        >>> error = Hl7SpineError("Something went wrong")
        >>> error.kind
        <ErrorKind.UNCLASSIFIED: 'UNCLASSIFIED'>
        >>> error.with_context(queue_id=3).context.queue_id
        3
    """

    default_kind: ErrorKind = ErrorKind.UNCLASSIFIED

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> Hl7SpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise Hl7Error("Bad OBX").with_context(queue_id=entry.id)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def iter_causes(self) -> Iterator[BaseException]:
        """Yield each exception in the cause chain, nearest first."""
        seen: set[int] = {id(self)}
        current = self.cause if self.cause is not None else self.__cause__
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            yield current
            nxt = getattr(current, "cause", None)
            current = nxt if isinstance(nxt, BaseException) else current.__cause__

    def caused_by(self, error_type: type[BaseException]) -> bool:
        """True if any exception in the cause chain is an ``error_type``."""
        return any(isinstance(c, error_type) for c in self.iter_causes())

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "kind": self.kind.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, kind={self.kind.value})"


# =============================================================================
# QUEUE PROTOCOL ERRORS
# =============================================================================


class DuplicateProcessingError(Hl7SpineError):
    """The queue entry is already being processed by another worker."""

    default_kind = ErrorKind.DUPLICATE_PROCESSING

    def __init__(self, queue_id: int | None, source_key: str | None = None):
        self.queue_id = queue_id
        super().__init__(
            f"The hl7 queue entry with id {queue_id} is already processing (key={source_key})",
            context=ErrorContext(queue_id=queue_id, source_key=source_key),
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(Hl7SpineError):
    """
    Configuration error.

    Raised at startup (malformed handler keys, registration after the router
    was sealed) and never during message processing.
    """

    default_kind = ErrorKind.CONFIG


class SubmissionError(ConfigError):
    """A submitted payload could not be read; nothing was enqueued."""


# =============================================================================
# MESSAGE ERRORS (classifiable)
# =============================================================================


class Hl7Error(Hl7SpineError):
    """The message could not be parsed or its content could not be applied."""

    default_kind = ErrorKind.PARSE


class MessageParseError(Hl7Error):
    """The wire parser rejected the raw message text."""


class PatientNotResolvedError(Hl7Error):
    """The patient referenced by the message does not exist."""

    def __init__(self, message: str = "Could not resolve patient", **kwargs: Any):
        super().__init__(message, **kwargs)


class NoRouteError(Hl7Error):
    """No handler is registered for the message type/trigger event."""

    default_kind = ErrorKind.NO_ROUTE

    def __init__(self, message_name: str):
        self.message_name = message_name
        super().__init__(
            f"No route for hl7 message: {message_name}. "
            "Make sure you have a handler registered for this type",
            context=ErrorContext(message_name=message_name),
        )


# =============================================================================
# FATAL ERRORS
# =============================================================================


class HandlerError(Hl7SpineError):
    """A handler raised an application fault while persisting data."""

    default_kind = ErrorKind.HANDLER


class UnclassifiedError(Hl7SpineError):
    """Wraps an unexpected exception so it can travel inside a ``Result``."""

    default_kind = ErrorKind.UNCLASSIFIED


def as_hl7spine_error(error: BaseException, message: str | None = None) -> Hl7SpineError:
    """Return ``error`` unchanged if typed, else wrap it as ``UnclassifiedError``."""
    if isinstance(error, Hl7SpineError):
        return error
    return UnclassifiedError(message or f"{type(error).__name__}: {error}", cause=error)


__all__ = [
    "ErrorKind",
    "ErrorContext",
    "Hl7SpineError",
    "DuplicateProcessingError",
    "ConfigError",
    "SubmissionError",
    "Hl7Error",
    "MessageParseError",
    "PatientNotResolvedError",
    "NoRouteError",
    "HandlerError",
    "UnclassifiedError",
    "as_hl7spine_error",
]
