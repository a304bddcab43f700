"""Maps core ServiceErrors onto HTTP responses.

The body shape is the same for every failure::

    {"error": {"kind": ..., "message": ..., "context": {...}}, "request_id": ...}
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from learnhub.core.errors import (
    ConcurrentModification,
    CourseUnavailable,
    EnrollmentRequired,
    NotAuthorized,
    NotFound,
    ServiceError,
    ServiceUnavailable,
    StateError,
    ValidationError,
)
from learnhub.middleware.request_context import request_id_var

logger = logging.getLogger(__name__)

# most specific first
_STATUS_BY_ERROR: tuple[tuple[type[ServiceError], int], ...] = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (EnrollmentRequired, status.HTTP_403_FORBIDDEN),
    (CourseUnavailable, status.HTTP_403_FORBIDDEN),
    (NotAuthorized, status.HTTP_403_FORBIDDEN),
    (StateError, status.HTTP_409_CONFLICT),
    (ConcurrentModification, status.HTTP_409_CONFLICT),
    (ServiceUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: ServiceError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ServiceError)
    code = status_for(exc)
    log = logger.error if code >= 500 else logger.warning
    log(
        "%s %s failed: kind=%s message=%s",
        request.method,
        request.url.path,
        exc.kind,
        exc.message,
        extra={"error_kind": exc.kind, "status_code": code},
    )
    headers = {"Retry-After": "1"} if isinstance(exc, ServiceUnavailable) else None
    request_id = getattr(request.state, "request_id", None) or request_id_var.get("-")
    return JSONResponse(
        status_code=code,
        content={"error": exc.to_dict(), "request_id": request_id},
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
