"""Inbound message repositories: sources, queue, archive, error store.

Tags:
    hl7spine, repository, queue, archive, error-store

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import delete, func, select, update

from hl7spine.core.models import (
    ArchiveEntry,
    ErrorEntry,
    Hl7Source,
    MessageState,
    QueueEntry,
    utcnow,
)
from hl7spine.core.orm.tables import (
    Hl7InArchiveTable,
    Hl7InErrorTable,
    Hl7InQueueTable,
    Hl7SourceTable,
)

from ._helpers import PageSlice, SessionRepository


class SourceRepository(SessionRepository):
    """CRUD for the ``hl7_sources`` table."""

    def get(self, source_id: int) -> Hl7Source | None:
        row = self.session.get(Hl7SourceTable, source_id)
        return _source(row) if row is not None else None

    def get_by_name(self, name: str) -> Hl7Source | None:
        row = self.session.scalar(select(Hl7SourceTable).where(Hl7SourceTable.name == name))
        return _source(row) if row is not None else None

    def get_or_create(self, name: str, description: str | None = None) -> Hl7Source:
        """Return the source called ``name``, inserting it when unknown."""
        existing = self.get_by_name(name)
        if existing is not None:
            return existing
        row = Hl7SourceTable(name=name, description=description)
        self.session.add(row)
        self.session.flush()
        return _source(row)

    def list_sources(self) -> list[Hl7Source]:
        rows = self.session.scalars(select(Hl7SourceTable).order_by(Hl7SourceTable.id))
        return [_source(r) for r in rows]


class QueueRepository(SessionRepository):
    """CRUD for the ``hl7_in_queue`` table, including the atomic claim."""

    def resolve_source(self, name: str) -> Hl7Source:
        return SourceRepository(self.session).get_or_create(name)

    def enqueue(
        self,
        raw_data: str,
        source_id: int,
        source_key: str | None = None,
    ) -> QueueEntry:
        row = Hl7InQueueTable(
            source_id=source_id,
            source_key=source_key,
            raw_data=raw_data,
            message_state=MessageState.PENDING.value,
            created_at=utcnow(),
        )
        self.session.add(row)
        self.session.flush()
        return self._entry(row)

    def get(self, queue_id: int) -> QueueEntry | None:
        row = self.session.get(Hl7InQueueTable, queue_id)
        return self._entry(row) if row is not None else None

    def next_pending(self) -> QueueEntry | None:
        row = self.session.scalar(
            select(Hl7InQueueTable)
            .where(Hl7InQueueTable.message_state == MessageState.PENDING.value)
            .order_by(Hl7InQueueTable.id)
            .limit(1)
        )
        return self._entry(row) if row is not None else None

    def claim(self, entry: QueueEntry) -> bool:
        """Atomically move ``entry`` from PENDING to PROCESSING.

        Single conditional UPDATE; ``rowcount == 0`` means another worker
        claimed (or removed) the entry first. Updates ``entry.state`` on
        success.
        """
        result = self.session.execute(
            update(Hl7InQueueTable)
            .where(
                Hl7InQueueTable.id == entry.id,
                Hl7InQueueTable.message_state == MessageState.PENDING.value,
            )
            .values(message_state=MessageState.PROCESSING.value)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            return False
        entry.state = MessageState.PROCESSING
        return True

    def save(self, entry: QueueEntry) -> QueueEntry:
        if entry.id is None:
            return self.enqueue(entry.raw_data, entry.source_id, entry.source_key)
        row = self.session.get(Hl7InQueueTable, entry.id)
        if row is None:
            raise LookupError(f"queue entry {entry.id} does not exist")
        row.source_key = entry.source_key
        row.raw_data = entry.raw_data
        row.message_state = entry.state.value
        self.session.flush()
        return entry

    def delete(self, entry: QueueEntry) -> None:
        self.session.execute(
            delete(Hl7InQueueTable)
            .where(Hl7InQueueTable.id == entry.id)
            .execution_options(synchronize_session="fetch")
        )

    def count(self, state: MessageState | None = None) -> int:
        stmt = select(func.count()).select_from(Hl7InQueueTable)
        if state is not None:
            stmt = stmt.where(Hl7InQueueTable.message_state == state.value)
        return self.session.scalar(stmt) or 0

    def list_entries(
        self,
        *,
        state: MessageState | None = None,
        page: PageSlice = PageSlice(),
    ) -> tuple[list[QueueEntry], int]:
        """List queue entries oldest first.  Returns ``(entries, total)``."""
        stmt = select(Hl7InQueueTable).order_by(Hl7InQueueTable.id)
        if state is not None:
            stmt = stmt.where(Hl7InQueueTable.message_state == state.value)
        rows = self.session.scalars(stmt.limit(page.limit).offset(page.offset))
        return [self._entry(r) for r in rows], self.count(state)

    def _entry(self, row: Hl7InQueueTable) -> QueueEntry:
        return QueueEntry(
            id=row.id,
            source_id=row.source_id,
            source_name=_source_name(self, row.source_id),
            source_key=row.source_key,
            raw_data=row.raw_data,
            state=MessageState(row.message_state),
            created_at=row.created_at,
        )


class ArchiveRepository(SessionRepository):
    """CRUD for the ``hl7_in_archive`` table."""

    def save(self, entry: ArchiveEntry) -> ArchiveEntry:
        archived_at = entry.archived_at or utcnow()
        row = Hl7InArchiveTable(
            source_id=entry.source_id,
            source_key=entry.source_key,
            raw_data=entry.raw_data,
            archived_at=archived_at,
        )
        self.session.add(row)
        self.session.flush()
        return replace(entry, id=row.id, archived_at=archived_at)

    def get(self, archive_id: int) -> ArchiveEntry | None:
        row = self.session.get(Hl7InArchiveTable, archive_id)
        return self._entry(row) if row is not None else None

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(Hl7InArchiveTable)) or 0

    def list_entries(self, *, page: PageSlice = PageSlice()) -> tuple[list[ArchiveEntry], int]:
        """List archived entries newest first.  Returns ``(entries, total)``."""
        rows = self.session.scalars(
            select(Hl7InArchiveTable)
            .order_by(Hl7InArchiveTable.id.desc())
            .limit(page.limit)
            .offset(page.offset)
        )
        return [self._entry(r) for r in rows], self.count()

    def _entry(self, row: Hl7InArchiveTable) -> ArchiveEntry:
        return ArchiveEntry(
            id=row.id,
            source_id=row.source_id,
            source_name=_source_name(self, row.source_id),
            source_key=row.source_key,
            raw_data=row.raw_data,
            archived_at=row.archived_at,
        )


class ErrorRepository(SessionRepository):
    """CRUD for the ``hl7_in_error`` table plus operator requeue."""

    def save(self, entry: ErrorEntry) -> ErrorEntry:
        row = Hl7InErrorTable(
            source_id=entry.source_id,
            source_key=entry.source_key,
            raw_data=entry.raw_data,
            error=entry.error,
            error_details=entry.error_details,
            created_at=entry.created_at or utcnow(),
        )
        self.session.add(row)
        self.session.flush()
        entry.id = row.id
        entry.created_at = row.created_at
        return entry

    def get(self, error_id: int) -> ErrorEntry | None:
        row = self.session.get(Hl7InErrorTable, error_id)
        return self._entry(row) if row is not None else None

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(Hl7InErrorTable)) or 0

    def list_entries(self, *, page: PageSlice = PageSlice()) -> tuple[list[ErrorEntry], int]:
        """List error entries newest first.  Returns ``(entries, total)``."""
        rows = self.session.scalars(
            select(Hl7InErrorTable)
            .order_by(Hl7InErrorTable.id.desc())
            .limit(page.limit)
            .offset(page.offset)
        )
        return [self._entry(r) for r in rows], self.count()

    def delete(self, error_id: int) -> bool:
        result = self.session.execute(
            delete(Hl7InErrorTable)
            .where(Hl7InErrorTable.id == error_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def requeue(self, error_id: int) -> QueueEntry | None:
        """Copy a failed message back into the queue as a new PENDING entry.

        The error row is removed. Returns None when ``error_id`` is unknown.
        """
        entry = self.get(error_id)
        if entry is None:
            return None
        queued = QueueRepository(self.session).enqueue(
            entry.raw_data, entry.source_id, entry.source_key
        )
        self.delete(error_id)
        return queued

    def _entry(self, row: Hl7InErrorTable) -> ErrorEntry:
        return ErrorEntry(
            id=row.id,
            source_id=row.source_id,
            source_name=_source_name(self, row.source_id),
            source_key=row.source_key,
            raw_data=row.raw_data,
            error=row.error,
            error_details=row.error_details,
            created_at=row.created_at,
        )


def _source(row: Hl7SourceTable) -> Hl7Source:
    return Hl7Source(id=row.id, name=row.name, description=row.description)


def _source_name(repo: SessionRepository, source_id: int | None) -> str:
    if source_id is None:
        return ""
    row = repo.session.get(Hl7SourceTable, source_id)
    return row.name if row is not None else ""
