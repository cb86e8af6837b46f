"""
Canonical protocol definitions for hl7spine.

The queue processor, router, correlator and handlers receive their
collaborators through constructors and depend only on these shapes. The
SQLAlchemy repositories in :mod:`hl7spine.core.repositories` satisfy them,
and so does any test double with the same methods.

Architecture:
    ::

        protocols.py
        ├── Transaction       -- commit / rollback of the shared unit of work
        ├── QueueStore        -- pending queue with atomic claim
        ├── ArchiveStore      -- successful entries
        ├── ErrorStore        -- fatally failed entries
        ├── PatientStore      -- patient resolution
        ├── EncounterStore    -- encounter writes
        ├── ObservationStore  -- observation writes and group read-back
        ├── MessageParser     -- raw text → ParsedMessage
        └── MessageHandler    -- ParsedMessage → HandlerResult

Tags:
    protocol, dependency-injection, contracts, hl7spine
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from hl7spine.core.models import (
        ArchiveEntry,
        Encounter,
        ErrorEntry,
        HandlerResult,
        Observation,
        Patient,
        QueueEntry,
    )
    from hl7spine.framework.message import ParsedMessage


@runtime_checkable
class Transaction(Protocol):
    """Unit of work shared by every store built on the same session."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@runtime_checkable
class QueueStore(Protocol):
    def enqueue(
        self,
        raw_data: str,
        source_id: int,
        source_key: str | None = None,
    ) -> QueueEntry: ...

    def next_pending(self) -> QueueEntry | None: ...

    def claim(self, entry: QueueEntry) -> bool:
        """Atomically move ``entry`` from PENDING to PROCESSING.

        Returns False when another worker got there first.
        """
        ...

    def save(self, entry: QueueEntry) -> QueueEntry: ...

    def delete(self, entry: QueueEntry) -> None: ...


@runtime_checkable
class ArchiveStore(Protocol):
    def save(self, entry: ArchiveEntry) -> ArchiveEntry: ...


@runtime_checkable
class ErrorStore(Protocol):
    def save(self, entry: ErrorEntry) -> ErrorEntry: ...


@runtime_checkable
class PatientStore(Protocol):
    def get(self, patient_id: int) -> Patient | None: ...

    def find_by_identifier(self, identifier: str, authority: str | None = None) -> Patient | None: ...


@runtime_checkable
class EncounterStore(Protocol):
    def save(self, encounter: Encounter) -> Encounter: ...


@runtime_checkable
class ObservationStore(Protocol):
    def save(self, observation: Observation) -> Observation:
        """Insert or update; the returned observation carries its id."""
        ...

    def get(self, observation_id: int) -> Observation | None: ...

    def list_group(self, value_group_id: int) -> list[Observation]: ...


@runtime_checkable
class MessageParser(Protocol):
    def parse(self, raw_data: str) -> ParsedMessage:
        """Raises ``MessageParseError`` when the text is not a valid message."""
        ...


@runtime_checkable
class MessageHandler(Protocol):
    def process_message(self, message: ParsedMessage) -> HandlerResult: ...


__all__ = [
    "Transaction",
    "QueueStore",
    "ArchiveStore",
    "ErrorStore",
    "PatientStore",
    "EncounterStore",
    "ObservationStore",
    "MessageParser",
    "MessageHandler",
]
