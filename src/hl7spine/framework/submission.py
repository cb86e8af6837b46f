"""Submission of raw messages into the inbound queue.

Both entry points enqueue at most one PENDING entry and commit it. An
empty payload is not an error: nothing is enqueued and ``None`` is
returned. A payload that cannot be read raises ``SubmissionError`` and
nothing is enqueued.
"""

from __future__ import annotations

from pathlib import Path

from hl7spine.core.errors import ErrorContext, SubmissionError
from hl7spine.core.logging import get_logger
from hl7spine.core.models import QueueEntry
from hl7spine.core.repositories import QueueRepository
from hl7spine.core.settings import LOCAL_SOURCE_NAME

logger = get_logger(__name__)


def submit_text(
    queue: QueueRepository,
    text: str,
    *,
    source_name: str = LOCAL_SOURCE_NAME,
    source_key: str | None = None,
) -> QueueEntry | None:
    if not text or not text.strip():
        logger.info("submission.empty", source=source_name)
        return None
    source = queue.resolve_source(source_name)
    entry = queue.enqueue(text, source.id, source_key)
    queue.commit()
    logger.info("submission.enqueued", queue_id=entry.id, source=source_name, key=source_key)
    return entry


def submit_bytes(
    queue: QueueRepository,
    data: bytes,
    *,
    source_name: str = LOCAL_SOURCE_NAME,
    source_key: str | None = None,
    encoding: str = "utf-8",
) -> QueueEntry | None:
    if not data:
        logger.info("submission.empty", source=source_name)
        return None
    try:
        text = data.decode(encoding)
    except UnicodeDecodeError as e:
        raise SubmissionError(
            f"Submitted message is not valid {encoding} text",
            context=ErrorContext(source_name=source_name, source_key=source_key),
            cause=e,
        ) from e
    return submit_text(queue, text, source_name=source_name, source_key=source_key)


def submit_file(
    queue: QueueRepository,
    path: str | Path,
    *,
    source_name: str = LOCAL_SOURCE_NAME,
    source_key: str | None = None,
) -> QueueEntry | None:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SubmissionError(
            f"Could not read HL7 file {path}: {e}",
            context=ErrorContext(source_name=source_name, source_key=source_key),
            cause=e,
        ) from e
    return submit_bytes(queue, data, source_name=source_name, source_key=source_key or path.name)


__all__ = ["submit_text", "submit_bytes", "submit_file"]
