"""Declarative base and type-map for all hl7spine ORM models.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map``
that maps Python built-in types to portable SA column types.
"""

from __future__ import annotations

import datetime

from sqlalchemy import DateTime, Float, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from hl7spine.core.models import utcnow


class Hl7Base(DeclarativeBase):
    """Shared declarative base for every hl7spine table.

    * ``str``   → ``Text``
    * ``int``   → ``Integer``
    * ``float`` → ``Float``
    * ``datetime.datetime`` → ``DateTime``
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
        float: Float,
        datetime.datetime: DateTime,
    }


class CreatedAtMixin:
    """Adds a ``created_at`` column filled on insert."""

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
