"""Repositories for hl7spine tables.

Each repository wraps one SQLAlchemy ``Session`` and returns the
dataclasses of :mod:`hl7spine.core.models`. Repositories built on the same
session share one transaction, which the queue processor commits or rolls
back as a whole.

Architecture::

    inbound.py   -- SourceRepository, QueueRepository,
                   ArchiveRepository, ErrorRepository
    clinical.py  -- PatientRepository, EncounterRepository,
                   ObservationRepository
    _helpers.py  -- PageSlice, SessionRepository

Tags:
    repository, sqlalchemy, hl7spine, data-access
"""

from ._helpers import PageSlice, SessionRepository
from .clinical import EncounterRepository, ObservationRepository, PatientRepository
from .inbound import ArchiveRepository, ErrorRepository, QueueRepository, SourceRepository

__all__ = [
    "PageSlice",
    "SessionRepository",
    "SourceRepository",
    "QueueRepository",
    "ArchiveRepository",
    "ErrorRepository",
    "PatientRepository",
    "EncounterRepository",
    "ObservationRepository",
]
