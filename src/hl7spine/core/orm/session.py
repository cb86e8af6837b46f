"""SQLAlchemy engine factory, session factory and schema bootstrap.

This module provides:

* ``create_hl7_engine``     -- Create a SA engine from a URL.
* ``Hl7Session``            -- Session subclass with ``expire_on_commit=False``.
* ``hl7_session_factory``   -- ``sessionmaker`` producing ``Hl7Session``.
* ``init_schema``           -- Create all tables and seed the ``local`` source.

Tags:
    hl7spine, orm, sqlalchemy, session, engine

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hl7spine.core.logging import get_logger
from hl7spine.core.orm.base import Hl7Base
from hl7spine.core.orm.tables import Hl7SourceTable
from hl7spine.core.settings import LOCAL_SOURCE_NAME

logger = get_logger(__name__)


def create_hl7_engine(
    url: str = "sqlite:///data/hl7spine.db",
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    pool_size, max_overflow:
        Connection pool parameters (ignored for SQLite).
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        database = make_url(url).database
        in_memory = not database or database == ":memory:"
        if in_memory:
            # One shared connection, otherwise every checkout sees an empty db
            kwargs.setdefault("poolclass", StaticPool)
        else:
            Path(database).parent.mkdir(parents=True, exist_ok=True)

        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


class Hl7Session(Session):
    """Pre-configured session with ``expire_on_commit=False``.

    Repositories hand out dataclasses built from rows, but the processor
    commits several times per entry and keeps reading the same rows.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def hl7_session_factory(engine: Engine) -> sessionmaker[Hl7Session]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``Hl7Session`` instances."""
    return sessionmaker(bind=engine, class_=Hl7Session)


def init_schema(engine: Engine) -> None:
    """Create every table and make sure the ``local`` source exists as id 1."""
    Hl7Base.metadata.create_all(engine)
    with Hl7Session(bind=engine) as session:
        existing = session.scalar(
            select(Hl7SourceTable).where(Hl7SourceTable.name == LOCAL_SOURCE_NAME)
        )
        if existing is None:
            session.add(
                Hl7SourceTable(
                    id=1,
                    name=LOCAL_SOURCE_NAME,
                    description="Messages submitted on this server",
                )
            )
            session.commit()
            logger.info("schema.local_source_seeded")
    logger.info("schema.initialized", tables=len(Hl7Base.metadata.tables))


__all__ = [
    "create_hl7_engine",
    "Hl7Session",
    "hl7_session_factory",
    "init_schema",
]
