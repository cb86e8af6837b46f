"""
Health router -- liveness for container healthchecks (no prefix).
"""

from __future__ import annotations

from fastapi import APIRouter

from hl7spine import __version__
from hl7spine.api.deps import PipelineDep
from hl7spine.api.schemas import HealthSchema
from hl7spine.core.models import MessageState

router = APIRouter()


@router.get("/health", response_model=HealthSchema)
def health(pipeline: PipelineDep) -> HealthSchema:
    """Service status plus the number of PENDING queue entries."""
    return HealthSchema(
        status="ok",
        service="hl7spine",
        version=__version__,
        queue_pending=pipeline.queue.count(MessageState.PENDING),
    )
