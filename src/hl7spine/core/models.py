"""Domain models for the inbound queue and the clinical store.

Manifesto:
    Repositories return these dataclasses, never ORM rows, so the
    processor, handlers and tests work with plain values that stay valid
    after a session is rolled back or closed.

Queue lifecycle::

    PENDING ──claim──> PROCESSING ──┬──> ArchiveEntry   (ARCHIVED)
                                    ├──> (deleted)      (SKIPPED)
                                    └──> ErrorEntry     (ERRORED)

Tags:
    hl7spine, models, dataclasses, queue, observations

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class MessageState(str, Enum):
    """State of a queue entry. Terminal outcomes remove the row instead."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"


class Outcome(str, Enum):
    """Terminal disposition of a processed queue entry."""

    ARCHIVED = "ARCHIVED"
    SKIPPED = "SKIPPED"
    ERRORED = "ERRORED"


class Disposition(str, Enum):
    """Classifier verdict for a failure."""

    SKIPPABLE = "SKIPPABLE"
    FATAL = "FATAL"


# ---------------------------------------------------------------------------
# hl7_sources / hl7_in_queue / hl7_in_archive / hl7_in_error
# ---------------------------------------------------------------------------


@dataclass
class Hl7Source:
    """A sender of inbound messages. ``local`` is seeded with id 1."""

    id: int | None = None
    name: str = ""
    description: str | None = None


@dataclass
class QueueEntry:
    """One inbound message awaiting processing (``hl7_in_queue``)."""

    id: int | None = None
    source_id: int | None = None
    source_name: str = ""
    source_key: str | None = None
    raw_data: str = ""
    state: MessageState = MessageState.PENDING
    created_at: datetime | None = None

    @property
    def is_processing(self) -> bool:
        return self.state is MessageState.PROCESSING


@dataclass(frozen=True)
class ArchiveEntry:
    """Immutable copy of a successfully processed entry (``hl7_in_archive``)."""

    source_id: int | None
    source_name: str
    source_key: str | None
    raw_data: str
    id: int | None = None
    archived_at: datetime | None = None

    @classmethod
    def from_queue(cls, entry: QueueEntry) -> ArchiveEntry:
        return cls(
            source_id=entry.source_id,
            source_name=entry.source_name,
            source_key=entry.source_key,
            raw_data=entry.raw_data,
        )


@dataclass
class ErrorEntry:
    """A fatally failed entry kept for operator review (``hl7_in_error``)."""

    source_id: int | None
    source_name: str
    source_key: str | None
    raw_data: str
    error: str
    error_details: str = ""
    id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_queue(cls, entry: QueueEntry, error: str, error_details: str) -> ErrorEntry:
        return cls(
            source_id=entry.source_id,
            source_name=entry.source_name,
            source_key=entry.source_key,
            raw_data=entry.raw_data,
            error=error,
            error_details=error_details,
        )


# ---------------------------------------------------------------------------
# patients / encounters / observations
# ---------------------------------------------------------------------------


@dataclass
class Patient:
    id: int | None = None
    identifier: str | None = None
    identifier_authority: str | None = None
    given_name: str | None = None
    family_name: str | None = None


@dataclass
class Encounter:
    patient_id: int
    encounter_datetime: datetime
    id: int | None = None
    location_id: int | None = None
    form_id: int | None = None
    message_control_id: str | None = None


@dataclass
class Observation:
    """A persisted clinical observation.

    When ``value_group_id`` is set it is the id of the group's anchor
    observation; the anchor's ``value_group_id`` equals its own ``id``.
    """

    patient_id: int
    concept_id: int
    id: int | None = None
    encounter_id: int | None = None
    value_type: str = "ST"
    value_coded: int | None = None
    value_numeric: float | None = None
    value_datetime: datetime | None = None
    value_text: str | None = None
    obs_datetime: datetime | None = None
    value_group_id: int | None = None

    @property
    def is_group_anchor(self) -> bool:
        return self.id is not None and self.value_group_id == self.id


@dataclass
class HandlerResult:
    """What a handler wrote for one message."""

    message_name: str
    encounter_id: int | None = None
    observation_ids: list[int] = field(default_factory=list)
    value_group_ids: list[int] = field(default_factory=list)


@dataclass
class ProcessingReport:
    """Returned by the queue processor for every entry it accepted."""

    entry: QueueEntry
    outcome: Outcome
    error_entry_id: int | None = None
    archive_entry_id: int | None = None
    handler_result: HandlerResult | None = None


__all__ = [
    "MessageState",
    "Outcome",
    "Disposition",
    "Hl7Source",
    "QueueEntry",
    "ArchiveEntry",
    "ErrorEntry",
    "Patient",
    "Encounter",
    "Observation",
    "HandlerResult",
    "ProcessingReport",
    "utcnow",
]
