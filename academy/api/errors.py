"""Map domain errors to HTTP responses.

One handler for the whole DomainError hierarchy; the status table is the
only place that knows about HTTP.  The body is ``{"detail", "code"}`` so
clients can branch on ``code`` without parsing messages.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from academy.core.errors import (
    AlreadyEnrolled,
    AlreadyIssued,
    AlreadySubmitted,
    DomainError,
    DuplicateSubmission,
    InvalidArgument,
    InvalidState,
    NotAccessible,
    NotAuthorized,
    NotFound,
    QuizMisconfigured,
)
from academy.core.metrics import DOMAIN_ERRORS

logger = logging.getLogger(__name__)

_UNPROCESSABLE = 422

# Checked in order; subclasses (InvalidTransition) fall through to their base.
_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (NotAuthorized, status.HTTP_403_FORBIDDEN),
    (NotAccessible, status.HTTP_403_FORBIDDEN),
    (AlreadyEnrolled, status.HTTP_409_CONFLICT),
    (DuplicateSubmission, status.HTTP_409_CONFLICT),
    (AlreadySubmitted, status.HTTP_409_CONFLICT),
    (AlreadyIssued, status.HTTP_409_CONFLICT),
    (InvalidState, status.HTTP_409_CONFLICT),
    (QuizMisconfigured, _UNPROCESSABLE),
    (InvalidArgument, _UNPROCESSABLE),
]


def status_for(exc: DomainError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    DOMAIN_ERRORS.labels(code=exc.code).inc()
    logger.warning(
        "%s %s refused: %s",
        request.method,
        request.url.path,
        exc.message,
        extra={"error_code": exc.code, "status_code": status_code},
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def install(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
