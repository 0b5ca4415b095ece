# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Translation of boundary errors into HTTP responses."""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from campusiq.domains.mutation import (
    ErrorKind,
    InvalidArgumentError,
    MutationError,
    RateLimitedError,
    user_message,
)

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FAILED_PRECONDITION: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.STORAGE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def mutation_error_handler(request: Request, exc: MutationError) -> JSONResponse:
    """Render a MutationError with a role-aware message."""
    actor = getattr(request.state, "actor", None)
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    body: dict = {
        "detail": user_message(exc, actor),
        "kind": exc.kind.value,
    }
    headers: dict[str, str] = {}

    if isinstance(exc, InvalidArgumentError):
        body["field"] = exc.field
    if isinstance(exc, RateLimitedError) and exc.retry_after:
        body["retry_after"] = exc.retry_after
        headers["Retry-After"] = str(exc.retry_after)

    if status_code >= 500:
        logger.error("Request failed: %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=body, headers=headers or None)
