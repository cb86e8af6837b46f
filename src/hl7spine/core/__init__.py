"""hl7spine core -- primitives shared by the framework and the surfaces.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (Hl7SpineError, ErrorKind)
        result.py          Result[T] envelope (Ok / Err / try_result_with)
        models.py          Queue, archive, error and clinical dataclasses
        protocols.py       Store / parser / handler protocols

    Layer 2 -- Persistence
        orm/               Declarative base, tables, engine and session factory
        repositories/      SQLAlchemy repositories returning models

    Layer 3 -- Runtime
        settings.py        HL7SPINE_* environment configuration
        logging.py         structlog configuration and helpers
"""

from hl7spine.core.errors import (
    ConfigError,
    DuplicateProcessingError,
    ErrorContext,
    ErrorKind,
    HandlerError,
    Hl7Error,
    Hl7SpineError,
    MessageParseError,
    NoRouteError,
    PatientNotResolvedError,
    SubmissionError,
    UnclassifiedError,
)
from hl7spine.core.result import Err, Ok, Result, try_result_with
from hl7spine.core.settings import Hl7SpineSettings, get_settings

__all__ = [
    "ConfigError",
    "DuplicateProcessingError",
    "ErrorContext",
    "ErrorKind",
    "HandlerError",
    "Hl7Error",
    "Hl7SpineError",
    "MessageParseError",
    "NoRouteError",
    "PatientNotResolvedError",
    "SubmissionError",
    "UnclassifiedError",
    "Err",
    "Ok",
    "Result",
    "try_result_with",
    "Hl7SpineSettings",
    "get_settings",
]
