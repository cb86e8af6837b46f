"""Skippable vs fatal classification of processing failures.

A failure is SKIPPABLE only when all of these hold:

1. it is a message-content failure (``ErrorKind.PARSE``),
2. its cause chain contains a ``PatientNotResolvedError``,
3. the entry did not come from the ``local`` source,
4. ``ignore_missing_nonlocal_patients`` is enabled.

Everything else is FATAL. The setting is read on every call, so toggling
it takes effect without restarting the processor.

Tags:
    hl7spine, framework, classifier, error-handling
"""

from __future__ import annotations

from collections.abc import Callable

from hl7spine.core.errors import ErrorKind, Hl7SpineError, PatientNotResolvedError
from hl7spine.core.models import Disposition, QueueEntry
from hl7spine.core.settings import LOCAL_SOURCE_NAME, Hl7SpineSettings, get_settings


class ErrorClassifier:
    def __init__(self, settings: Hl7SpineSettings | Callable[[], Hl7SpineSettings] | None = None):
        if settings is None:
            self._settings = get_settings
        elif callable(settings) and not isinstance(settings, Hl7SpineSettings):
            self._settings = settings
        else:
            self._settings = lambda: settings

    def classify(self, error: Hl7SpineError, entry: QueueEntry) -> Disposition:
        if error.kind is not ErrorKind.PARSE:
            return Disposition.FATAL
        if not error.caused_by(PatientNotResolvedError) and not isinstance(
            error, PatientNotResolvedError
        ):
            return Disposition.FATAL
        if entry.source_name == LOCAL_SOURCE_NAME:
            return Disposition.FATAL
        if not self._settings().ignore_missing_nonlocal_patients:
            return Disposition.FATAL
        return Disposition.SKIPPABLE


__all__ = ["ErrorClassifier"]
