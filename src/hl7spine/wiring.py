"""Startup composition -- builds the pipeline from settings.

Every collaborator is passed explicitly: repositories share one session,
the router is registered and sealed here, and the processor receives all
of them through its constructor. Surfaces (CLI, API, poller) only call
``open_pipeline`` / ``build_pipeline``.

Usage::

    with open_pipeline(settings) as pipeline:
        pipeline.processor.process_pending(limit=10)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from hl7spine.core.logging import configure_logging
from hl7spine.core.orm import create_hl7_engine, hl7_session_factory, init_schema
from hl7spine.core.repositories import (
    ArchiveRepository,
    EncounterRepository,
    ErrorRepository,
    ObservationRepository,
    PatientRepository,
    QueueRepository,
    SourceRepository,
)
from hl7spine.core.settings import Hl7SpineSettings, get_settings
from hl7spine.framework.classifier import ErrorClassifier
from hl7spine.framework.correlator import ValueGroupCorrelator
from hl7spine.framework.handlers import ValueGroupOruR01Handler
from hl7spine.framework.parser import Hl7Parser
from hl7spine.framework.processor import QueueProcessor
from hl7spine.framework.router import MessageRouter


@dataclass
class Pipeline:
    session: Session
    queue: QueueRepository
    archive: ArchiveRepository
    errors: ErrorRepository
    sources: SourceRepository
    patients: PatientRepository
    encounters: EncounterRepository
    observations: ObservationRepository
    router: MessageRouter
    processor: QueueProcessor


def setup_logging(settings: Hl7SpineSettings | None = None) -> None:
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


def build_router(
    patients: PatientRepository,
    encounters: EncounterRepository,
    observations: ObservationRepository,
) -> MessageRouter:
    """Register the shipped handlers and seal the routing table."""
    router = MessageRouter()
    router.register_handlers(
        {
            "ORU_R01": ValueGroupOruR01Handler(
                patients, encounters, ValueGroupCorrelator(observations)
            ),
        }
    )
    return router.seal()


def build_pipeline(session: Session, settings: Hl7SpineSettings | None = None) -> Pipeline:
    settings = settings or get_settings()
    queue = QueueRepository(session)
    archive = ArchiveRepository(session)
    errors = ErrorRepository(session)
    patients = PatientRepository(session)
    encounters = EncounterRepository(session)
    observations = ObservationRepository(session)
    router = build_router(patients, encounters, observations)
    processor = QueueProcessor(
        queue,
        archive,
        errors,
        Hl7Parser(),
        router,
        ErrorClassifier(settings),
        transaction=session,
        settings=settings,
    )
    return Pipeline(
        session=session,
        queue=queue,
        archive=archive,
        errors=errors,
        sources=SourceRepository(session),
        patients=patients,
        encounters=encounters,
        observations=observations,
        router=router,
        processor=processor,
    )


@lru_cache(maxsize=8)
def get_engine(database_url: str, echo: bool = False) -> Engine:
    """One engine per database URL per process, with the schema in place."""
    engine = create_hl7_engine(database_url, echo=echo)
    init_schema(engine)
    return engine


@contextmanager
def open_session(settings: Hl7SpineSettings | None = None) -> Iterator[Session]:
    settings = settings or get_settings()
    factory = hl7_session_factory(get_engine(settings.database_url, settings.database_echo))
    with factory() as session:
        yield session


@contextmanager
def open_pipeline(settings: Hl7SpineSettings | None = None) -> Iterator[Pipeline]:
    settings = settings or get_settings()
    with open_session(settings) as session:
        yield build_pipeline(session, settings)


__all__ = [
    "Pipeline",
    "setup_logging",
    "build_router",
    "build_pipeline",
    "get_engine",
    "open_session",
    "open_pipeline",
]
