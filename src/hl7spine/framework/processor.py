"""Queue processor -- drives one inbound entry to its terminal disposition.

WHY
───
Every entry that enters ``hl7_in_queue`` must leave it exactly once: as an
archive row (success), as nothing at all (skippable failure), or as an
error row (fatal failure). An entry another worker already holds must be
rejected without touching storage.

ARCHITECTURE
────────────
::

    QueueProcessor.process(entry)
      ├── entry already PROCESSING    → Err(DuplicateProcessingError)
      ├── queue.claim(entry) == False → Err(DuplicateProcessingError)
      ├── commit (claim is durable before any work)
      ├── parse → dispatch → archive + delete      (Result chain)
      │     Ok  → commit                       → ARCHIVED
      │     Err → rollback handler writes
      │           classifier.classify(error)
      │             SKIPPABLE → delete, commit → SKIPPED
      │             FATAL     → error row, delete, commit → ERRORED
      │             write fails → rollback, re-raise; entry stays PROCESSING
      └── Ok(ProcessingReport)

    QueueProcessor.process_pending(limit) → BatchSummary

The claim, the handler writes and the terminal writes all share one
session (``transaction``), so a handler failure never leaves half a
message of observations behind.

Related modules:
    classifier.py   -- skippable vs fatal
    diagnostics.py  -- bounded failure detail
    router.py       -- handler dispatch

Example::

    processor = QueueProcessor(queue, archive, errors, Hl7Parser(), router,
                               ErrorClassifier(settings), transaction=session)
    summary = processor.process_pending(limit=50)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from hl7spine.core.errors import (
    DuplicateProcessingError,
    ErrorKind,
    Hl7SpineError,
    as_hl7spine_error,
)
from hl7spine.core.logging import LogContext, get_logger, log_step
from hl7spine.core.models import (
    ArchiveEntry,
    Disposition,
    ErrorEntry,
    HandlerResult,
    Outcome,
    ProcessingReport,
    QueueEntry,
)
from hl7spine.core.protocols import ArchiveStore, ErrorStore, MessageParser, QueueStore, Transaction
from hl7spine.core.result import Err, Ok, Result, try_result_with
from hl7spine.core.settings import Hl7SpineSettings, get_settings
from hl7spine.framework.classifier import ErrorClassifier
from hl7spine.framework.diagnostics import render_failure_detail
from hl7spine.framework.message import ParsedMessage
from hl7spine.framework.router import MessageRouter

logger = get_logger(__name__)

PARSE_FAILURE_SUMMARY = "Trouble parsing HL7 message ({key})"
UNEXPECTED_FAILURE_SUMMARY = "Exception while attempting to process HL7 In Queue ({key})"


@dataclass
class BatchSummary:
    """Counts for one ``process_pending`` run."""

    archived: int = 0
    skipped: int = 0
    errored: int = 0
    rejected: int = 0

    @property
    def processed(self) -> int:
        return self.archived + self.skipped + self.errored

    def record(self, result: Result[ProcessingReport]) -> None:
        if isinstance(result, Err):
            self.rejected += 1
            return
        outcome = result.value.outcome
        if outcome is Outcome.ARCHIVED:
            self.archived += 1
        elif outcome is Outcome.SKIPPED:
            self.skipped += 1
        else:
            self.errored += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "archived": self.archived,
            "skipped": self.skipped,
            "errored": self.errored,
            "rejected": self.rejected,
            "processed": self.processed,
        }


_UNEXPECTED_KINDS = frozenset({ErrorKind.HANDLER, ErrorKind.UNCLASSIFIED})


def failure_summary(error: Hl7SpineError, entry: QueueEntry) -> str:
    """Short description stored in ``hl7_in_error.error``.

    Message-content failures (PARSE, NO_ROUTE) read as parse trouble;
    handler faults and anything unclassified read as unexpected exceptions.
    """
    template = UNEXPECTED_FAILURE_SUMMARY if error.kind in _UNEXPECTED_KINDS else PARSE_FAILURE_SUMMARY
    return template.format(key=entry.source_key)


class QueueProcessor:
    """Processes queue entries one at a time."""

    def __init__(
        self,
        queue: QueueStore,
        archive: ArchiveStore,
        errors: ErrorStore,
        parser: MessageParser,
        router: MessageRouter,
        classifier: ErrorClassifier,
        *,
        transaction: Transaction,
        settings: Hl7SpineSettings | None = None,
    ):
        self.queue = queue
        self.archive = archive
        self.errors = errors
        self.parser = parser
        self.router = router
        self.classifier = classifier
        self.transaction = transaction
        self._settings = settings

    @property
    def settings(self) -> Hl7SpineSettings:
        return self._settings or get_settings()

    # ------------------------------------------------------------------ #
    # Single entry
    # ------------------------------------------------------------------ #

    def process(self, entry: QueueEntry) -> Result[ProcessingReport]:
        """Process ``entry`` to completion.

        Returns ``Err(DuplicateProcessingError)`` when the entry is already
        being processed; nothing is written in that case. Every other
        outcome, including fatal failures, is an ``Ok`` report.

        Raises:
            ValueError: if ``entry`` is None.
            Exception: whatever the skip or error-store write raised while
                finalizing a failure. The claim is already committed, so the
                entry stays PROCESSING and no poller will pick it up again;
                an operator has to reset or remove it.
        """
        if entry is None:
            raise ValueError("A queue entry is required")

        if entry.is_processing:
            logger.warning("queue_entry.already_processing", queue_id=entry.id, key=entry.source_key)
            return Err(DuplicateProcessingError(entry.id, entry.source_key))

        if not self.queue.claim(entry):
            self.transaction.rollback()
            logger.warning("queue_entry.claim_lost", queue_id=entry.id, key=entry.source_key)
            return Err(DuplicateProcessingError(entry.id, entry.source_key))
        self.transaction.commit()

        with LogContext(queue_id=entry.id, source=entry.source_name):
            with log_step("queue_entry.process", logger, key=entry.source_key) as step:
                result = (
                    self._parse(entry)
                    .flat_map(self._dispatch)
                    .flat_map(lambda handled: self._archive(entry, handled))
                )
                if isinstance(result, Err):
                    result = Ok(self._fail(entry, result.error))
                step["outcome"] = result.value.outcome.value
        return result

    def _parse(self, entry: QueueEntry) -> Result[ParsedMessage]:
        return try_result_with(lambda: self.parser.parse(entry.raw_data), as_hl7spine_error)

    def _dispatch(self, message: ParsedMessage) -> Result[HandlerResult]:
        return try_result_with(lambda: self.router.dispatch(message), as_hl7spine_error)

    def _archive(self, entry: QueueEntry, handled: HandlerResult) -> Result[ProcessingReport]:
        def finish() -> ProcessingReport:
            archived = self.archive.save(ArchiveEntry.from_queue(entry))
            self.queue.delete(entry)
            self.transaction.commit()
            logger.info(
                "queue_entry.archived",
                archive_id=archived.id,
                message_name=handled.message_name,
                observations=len(handled.observation_ids),
            )
            return ProcessingReport(
                entry=entry,
                outcome=Outcome.ARCHIVED,
                archive_entry_id=archived.id,
                handler_result=handled,
            )

        return try_result_with(finish, as_hl7spine_error)

    # ------------------------------------------------------------------ #
    # Failure path
    # ------------------------------------------------------------------ #

    def _fail(self, entry: QueueEntry, failure: Exception) -> ProcessingReport:
        # Undo whatever the handler wrote; the committed claim survives.
        self.transaction.rollback()
        error = as_hl7spine_error(failure).with_context(
            queue_id=entry.id,
            source_name=entry.source_name,
            source_key=entry.source_key,
        )
        disposition = self.classifier.classify(error, entry)

        try:
            if disposition is Disposition.SKIPPABLE:
                return self._skip(entry, error)
            return self._record_error(entry, error)
        except Exception:
            # Entry is left PROCESSING; recovery is manual.
            self.transaction.rollback()
            logger.exception("queue_entry.finalize_failed", key=entry.source_key)
            raise

    def _skip(self, entry: QueueEntry, error: Hl7SpineError) -> ProcessingReport:
        self.queue.delete(entry)
        self.transaction.commit()
        logger.info(
            "queue_entry.skipped",
            key=entry.source_key,
            reason=error.message,
            kind=error.kind.value,
        )
        return ProcessingReport(entry=entry, outcome=Outcome.SKIPPED)

    def _record_error(self, entry: QueueEntry, error: Hl7SpineError) -> ProcessingReport:
        summary = failure_summary(error, entry)
        detail = render_failure_detail(error, self.settings.error_detail_max_length)
        stored = self.errors.save(ErrorEntry.from_queue(entry, summary, detail))
        self.queue.delete(entry)
        self.transaction.commit()
        logger.error(
            "queue_entry.errored",
            key=entry.source_key,
            error_id=stored.id,
            summary=summary,
            **error.to_dict(),
        )
        return ProcessingReport(entry=entry, outcome=Outcome.ERRORED, error_entry_id=stored.id)

    # ------------------------------------------------------------------ #
    # Batch
    # ------------------------------------------------------------------ #

    def process_pending(self, limit: int | None = None) -> BatchSummary:
        """Process up to ``limit`` pending entries, oldest first."""
        limit = limit if limit is not None else self.settings.batch_size
        summary = BatchSummary()
        for _ in range(limit):
            entry = self.queue.next_pending()
            if entry is None:
                break
            summary.record(self.process(entry))
        if summary.processed or summary.rejected:
            logger.info("queue.batch_processed", **summary.to_dict())
        return summary


__all__ = [
    "QueueProcessor",
    "BatchSummary",
    "failure_summary",
    "PARSE_FAILURE_SUMMARY",
    "UNEXPECTED_FAILURE_SUMMARY",
]
