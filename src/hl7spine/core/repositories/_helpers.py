"""Shared helpers for repository classes.

Tags:
    hl7spine, repository, helpers

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session


@dataclass(frozen=True, slots=True)
class PageSlice:
    """Pagination params used by list operations."""

    limit: int = 50
    offset: int = 0


class SessionRepository:
    """Base for repositories that share one SQLAlchemy ``Session``.

    Repositories flush but never commit on their own; the caller owns the
    unit of work and calls ``commit()`` / ``rollback()`` (which act on the
    shared session, so every repository built on it sees the same outcome).
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
