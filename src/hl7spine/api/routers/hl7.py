"""
HL7 router -- upload messages and inspect the queue, archive and error store.

Endpoints:
    POST /hl7/upload                 Enqueue an uploaded message file (field ``hl7``)
    GET  /hl7/queue                  List queue entries
    GET  /hl7/archive                List archived entries
    GET  /hl7/errors                 List error entries
    GET  /hl7/errors/{id}            Show one error entry
    POST /hl7/errors/{id}/requeue    Put a failed message back into the queue

An empty upload is accepted and ignored (204, nothing enqueued).
"""

from __future__ import annotations

from fastapi import APIRouter, File, Path, Query, Response, UploadFile, status

from hl7spine.api.deps import PipelineDep, SettingsDep
from hl7spine.api.errors import problem_response
from hl7spine.api.schemas import (
    ArchiveEntrySchema,
    ErrorEntrySchema,
    ErrorSummarySchema,
    PagedResponse,
    PageMeta,
    QueueEntrySchema,
    SuccessResponse,
)
from hl7spine.core.models import MessageState, QueueEntry
from hl7spine.core.repositories import PageSlice
from hl7spine.framework.submission import submit_bytes

router = APIRouter(prefix="/hl7")


def _queue_schema(entry: QueueEntry) -> QueueEntrySchema:
    return QueueEntrySchema(
        id=entry.id,
        source_id=entry.source_id,
        source_name=entry.source_name,
        source_key=entry.source_key,
        state=entry.state.value,
        created_at=entry.created_at,
    )


@router.post(
    "/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[QueueEntrySchema],
)
def upload(
    pipeline: PipelineDep,
    settings: SettingsDep,
    hl7: UploadFile = File(..., description="File containing one HL7 message"),
):
    """Enqueue the uploaded message as the configured upload source.

    A ``SubmissionError`` (unreadable payload) surfaces as a 400 problem
    through the application's error handler.
    """
    data = hl7.file.read()
    entry = submit_bytes(
        pipeline.queue,
        data,
        source_name=settings.upload_source_name,
        source_key=hl7.filename or None,
    )
    if entry is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return SuccessResponse(data=_queue_schema(entry))


@router.get("/queue", response_model=PagedResponse[QueueEntrySchema])
def list_queue(
    pipeline: PipelineDep,
    state: MessageState | None = Query(None, description="Filter by state"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    entries, total = pipeline.queue.list_entries(state=state, page=PageSlice(limit, offset))
    return PagedResponse(
        data=[_queue_schema(e) for e in entries],
        page=PageMeta.from_result(total, limit, offset),
    )


@router.get("/archive", response_model=PagedResponse[ArchiveEntrySchema])
def list_archive(
    pipeline: PipelineDep,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    entries, total = pipeline.archive.list_entries(page=PageSlice(limit, offset))
    return PagedResponse(
        data=[ArchiveEntrySchema.model_validate(e) for e in entries],
        page=PageMeta.from_result(total, limit, offset),
    )


@router.get("/errors", response_model=PagedResponse[ErrorSummarySchema])
def list_errors(
    pipeline: PipelineDep,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    entries, total = pipeline.errors.list_entries(page=PageSlice(limit, offset))
    return PagedResponse(
        data=[ErrorSummarySchema.model_validate(e) for e in entries],
        page=PageMeta.from_result(total, limit, offset),
    )


@router.get("/errors/{error_id}", response_model=SuccessResponse[ErrorEntrySchema])
def get_error(pipeline: PipelineDep, error_id: int = Path(..., description="Error entry ID")):
    entry = pipeline.errors.get(error_id)
    if entry is None:
        return problem_response(status=404, title=f"Error entry {error_id} not found")
    return SuccessResponse(data=ErrorEntrySchema.model_validate(entry))


@router.post("/errors/{error_id}/requeue", response_model=SuccessResponse[QueueEntrySchema])
def requeue_error(pipeline: PipelineDep, error_id: int = Path(..., description="Error entry ID")):
    """Copy the failed message back into the queue as a new PENDING entry."""
    entry = pipeline.errors.requeue(error_id)
    if entry is None:
        return problem_response(status=404, title=f"Error entry {error_id} not found")
    pipeline.session.commit()
    return SuccessResponse(data=_queue_schema(entry))
