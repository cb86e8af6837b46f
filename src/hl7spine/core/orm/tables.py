"""SQLAlchemy 2.0 table definitions for hl7spine.

Inbound message lifecycle tables (``hl7_sources``, ``hl7_in_queue``,
``hl7_in_archive``, ``hl7_in_error``) and the clinical store
(``patients``, ``encounters``, ``observations``).

``observations.value_group_id`` references ``observations.id``: the anchor
of a value group points at itself, the other members point at the anchor.

Tags:
    hl7spine, orm, sqlalchemy, tables

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from hl7spine.core.orm.base import CreatedAtMixin, Hl7Base


class Hl7SourceTable(Hl7Base):
    __tablename__ = "hl7_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class Hl7InQueueTable(CreatedAtMixin, Hl7Base):
    __tablename__ = "hl7_in_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(Integer, ForeignKey("hl7_sources.id"), nullable=False)
    source_key: Mapped[str | None] = mapped_column(Text)
    raw_data: Mapped[str] = mapped_column(Text, nullable=False)
    message_state: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")

    __table_args__ = (Index("ix_hl7_in_queue_state_id", "message_state", "id"),)


class Hl7InArchiveTable(Hl7Base):
    __tablename__ = "hl7_in_archive"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(Integer, ForeignKey("hl7_sources.id"), nullable=False)
    source_key: Mapped[str | None] = mapped_column(Text)
    raw_data: Mapped[str] = mapped_column(Text, nullable=False)
    archived_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)


class Hl7InErrorTable(CreatedAtMixin, Hl7Base):
    __tablename__ = "hl7_in_error"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(Integer, ForeignKey("hl7_sources.id"), nullable=False)
    source_key: Mapped[str | None] = mapped_column(Text)
    raw_data: Mapped[str] = mapped_column(Text, nullable=False)
    error: Mapped[str] = mapped_column(Text, nullable=False)
    error_details: Mapped[str] = mapped_column(Text, nullable=False, default="")


class PatientTable(Hl7Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str | None] = mapped_column(Text)
    identifier_authority: Mapped[str | None] = mapped_column(Text)
    given_name: Mapped[str | None] = mapped_column(Text)
    family_name: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (Index("ix_patients_identifier", "identifier", "identifier_authority"),)


class EncounterTable(CreatedAtMixin, Hl7Base):
    __tablename__ = "encounters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(Integer, ForeignKey("patients.id"), nullable=False)
    location_id: Mapped[int | None] = mapped_column(Integer)
    form_id: Mapped[int | None] = mapped_column(Integer)
    encounter_datetime: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    message_control_id: Mapped[str | None] = mapped_column(Text)


class ObservationTable(CreatedAtMixin, Hl7Base):
    __tablename__ = "observations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(Integer, ForeignKey("patients.id"), nullable=False)
    encounter_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("encounters.id"))
    concept_id: Mapped[int] = mapped_column(Integer, nullable=False)
    value_type: Mapped[str] = mapped_column(Text, nullable=False, default="ST")
    value_coded: Mapped[int | None] = mapped_column(Integer)
    value_numeric: Mapped[float | None] = mapped_column(Float)
    value_datetime: Mapped[datetime.datetime | None] = mapped_column(DateTime)
    value_text: Mapped[str | None] = mapped_column(Text)
    obs_datetime: Mapped[datetime.datetime | None] = mapped_column(DateTime)
    value_group_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("observations.id"))

    __table_args__ = (
        Index("ix_observations_patient_concept", "patient_id", "concept_id"),
        Index("ix_observations_value_group", "value_group_id"),
    )


__all__ = [
    "Hl7SourceTable",
    "Hl7InQueueTable",
    "Hl7InArchiveTable",
    "Hl7InErrorTable",
    "PatientTable",
    "EncounterTable",
    "ObservationTable",
]
