"""
API schemas -- response envelopes, RFC 7807 errors and record models.

Every endpoint returns either :class:`SuccessResponse` / :class:`PagedResponse`
or :class:`ProblemDetail` (4xx/5xx).
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs»."""

    type: str = Field(default="about:blank")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="")
    instance: str = Field(default="", description="URI of the failing request")


# ── Success Envelopes ────────────────────────────────────────────────────


class PageMeta(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def from_result(cls, total: int, limit: int, offset: int) -> PageMeta:
        return cls(total=total, limit=limit, offset=offset, has_more=(offset + limit) < total)


class SuccessResponse(BaseModel, Generic[T]):
    data: T
    warnings: list[str] = Field(default_factory=list)


class PagedResponse(BaseModel, Generic[T]):
    data: list[T]
    page: PageMeta


# ── Records ──────────────────────────────────────────────────────────────


class QueueEntrySchema(BaseModel):
    """A queued inbound message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    source_id: int | None = None
    source_name: str
    source_key: str | None = None
    state: str
    created_at: datetime | None = None


class ErrorSummarySchema(BaseModel):
    """Error entry without the raw message and details (list view)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    source_name: str
    source_key: str | None = None
    error: str
    created_at: datetime | None = None


class ErrorEntrySchema(ErrorSummarySchema):
    """Full error entry."""

    source_id: int | None = None
    raw_data: str
    error_details: str


class ArchiveEntrySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    source_name: str
    source_key: str | None = None
    archived_at: datetime | None = None


class HealthSchema(BaseModel):
    status: str
    service: str
    version: str
    queue_pending: int | None = None
