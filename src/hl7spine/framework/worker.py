"""Background poller -- drains the inbound queue on an interval.

Usage (programmatic)::

    poller = QueuePoller(processor, poll_interval=5.0, batch_size=50)
    stop = threading.Event()
    poller.run_forever(stop)   # blocking until stop.set()

Usage (CLI)::

    hl7spine worker start --poll-interval 2
"""

from __future__ import annotations

import signal
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hl7spine.core.logging import get_logger
from hl7spine.core.models import utcnow
from hl7spine.framework.processor import BatchSummary, QueueProcessor

logger = get_logger(__name__)


@dataclass
class PollerStats:
    """Aggregate statistics for a poller."""

    polls: int = 0
    poll_errors: int = 0
    totals: BatchSummary = field(default_factory=BatchSummary)
    started_at: datetime = field(default_factory=utcnow)
    last_poll_at: datetime | None = None

    def add(self, summary: BatchSummary) -> None:
        self.totals.archived += summary.archived
        self.totals.skipped += summary.skipped
        self.totals.errored += summary.errored
        self.totals.rejected += summary.rejected

    def to_dict(self) -> dict[str, Any]:
        return {
            "polls": self.polls,
            "poll_errors": self.poll_errors,
            **self.totals.to_dict(),
            "uptime_seconds": round((utcnow() - self.started_at).total_seconds(), 2),
            "last_poll_at": self.last_poll_at.isoformat() if self.last_poll_at else None,
        }


class QueuePoller:
    """Calls ``processor.process_pending`` every ``poll_interval`` seconds."""

    def __init__(
        self,
        processor: QueueProcessor,
        poll_interval: float = 5.0,
        batch_size: int = 50,
    ):
        self.processor = processor
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.stats = PollerStats()

    def run_once(self) -> BatchSummary:
        summary = self.processor.process_pending(self.batch_size)
        self.stats.polls += 1
        self.stats.last_poll_at = utcnow()
        self.stats.add(summary)
        return summary

    def run_forever(self, stop: threading.Event | None = None) -> PollerStats:
        """Poll until ``stop`` is set. Errors in one poll are logged and the loop goes on.

        When called from the main thread without an event, SIGINT and
        SIGTERM set the internal one.
        """
        if stop is None:
            stop = threading.Event()
            self._install_signal_handlers(stop)

        logger.info("poller.started", poll_interval=self.poll_interval, batch_size=self.batch_size)
        while not stop.is_set():
            try:
                summary = self.run_once()
                # A full batch means more may be waiting
                if summary.processed + summary.rejected >= self.batch_size:
                    continue
            except Exception:
                self.stats.poll_errors += 1
                logger.exception("poller.poll_failed")
            stop.wait(self.poll_interval)
        logger.info("poller.stopped", **self.stats.to_dict())
        return self.stats

    @staticmethod
    def _install_signal_handlers(stop: threading.Event) -> None:
        def _handle(signum: int, _frame: Any) -> None:
            logger.info("poller.signal_received", signal=signum)
            stop.set()

        try:
            signal.signal(signal.SIGINT, _handle)
            signal.signal(signal.SIGTERM, _handle)
        except ValueError:
            pass  # not in main thread


__all__ = ["QueuePoller", "PollerStats"]
