"""
Error handling -- maps hl7spine errors to RFC 7807 responses.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from hl7spine.api.schemas import ProblemDetail
from hl7spine.core.errors import ErrorKind, Hl7SpineError
from hl7spine.core.logging import get_logger

logger = get_logger(__name__)

ERROR_KIND_TO_STATUS: dict[ErrorKind, int] = {
    ErrorKind.CONFIG: 400,
    ErrorKind.PARSE: 422,
    ErrorKind.NO_ROUTE: 422,
    ErrorKind.DUPLICATE_PROCESSING: 409,
    ErrorKind.HANDLER: 500,
    ErrorKind.UNCLASSIFIED: 500,
}


def problem_response(*, status: int, title: str, detail: str = "", instance: str = "") -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(title=title, status=status, detail=detail, instance=instance)
    return JSONResponse(status_code=status, content=body.model_dump())


async def hl7spine_error_handler(request: Request, exc: Hl7SpineError) -> JSONResponse:
    """Typed errors keep their message; the kind decides the status."""
    status = ERROR_KIND_TO_STATUS.get(exc.kind, 500)
    logger.warning("api.request_failed", path=request.url.path, status=status, **exc.to_dict())
    return problem_response(
        status=status,
        title=exc.message,
        detail=exc.kind.value,
        instance=str(request.url),
    )
