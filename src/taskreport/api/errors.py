"""Map TaskReport errors to HTTP responses."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from taskreport.core.exceptions import (
    AuthorizationError,
    CacheError,
    DeletionReasonError,
    DuplicateFileError,
    FileNamingError,
    IngestionError,
    MissingColumnsError,
    QuotaExceededError,
    RecordNotFoundError,
    StoreError,
    TaskReportError,
    ValidationFailedError,
)

# Checked in order; subclasses before their bases.
STATUS_CODES: list[tuple[type[TaskReportError], int]] = [
    (FileNamingError, 400),
    (DuplicateFileError, 409),
    (QuotaExceededError, 429),
    (IngestionError, 422),
    (AuthorizationError, 403),
    (DeletionReasonError, 400),
    (RecordNotFoundError, 404),
    (StoreError, 502),
    (CacheError, 503),
]


def status_for(exc: TaskReportError) -> int:
    for exc_type, status in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status
    return 500


async def taskreport_error_handler(request: Request, exc: TaskReportError) -> JSONResponse:
    body: dict = {"error": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, ValidationFailedError):
        body["errors"] = [e.model_dump() for e in exc.errors]
    elif isinstance(exc, MissingColumnsError):
        body["missing"] = exc.titles
    return JSONResponse(status_code=status_for(exc), content=body)
