"""SQLAlchemy ORM layer for hl7spine.

Usage::

    from hl7spine.core.orm import create_hl7_engine, hl7_session_factory, init_schema

    engine = create_hl7_engine("sqlite:///data/hl7spine.db")
    init_schema(engine)
    Session = hl7_session_factory(engine)
"""

from hl7spine.core.orm.base import CreatedAtMixin, Hl7Base
from hl7spine.core.orm.session import (
    Hl7Session,
    create_hl7_engine,
    hl7_session_factory,
    init_schema,
)
from hl7spine.core.orm.tables import (
    EncounterTable,
    Hl7InArchiveTable,
    Hl7InErrorTable,
    Hl7InQueueTable,
    Hl7SourceTable,
    ObservationTable,
    PatientTable,
)

__all__ = [
    "Hl7Base",
    "CreatedAtMixin",
    "Hl7Session",
    "create_hl7_engine",
    "hl7_session_factory",
    "init_schema",
    "Hl7SourceTable",
    "Hl7InQueueTable",
    "Hl7InArchiveTable",
    "Hl7InErrorTable",
    "PatientTable",
    "EncounterTable",
    "ObservationTable",
]
