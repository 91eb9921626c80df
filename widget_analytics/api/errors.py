"""
Translation of analytics errors into HTTP responses.

Error bodies are flat: `{"success": false, "error": ..., "code": ...}` plus
any per-error fields such as `remaining`, never nested under `detail`.
"""

import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from widget_analytics.domain.errors import AnalyticsError, StoreError

logger = logging.getLogger(__name__)


class ErrorBodyException(HTTPException):
    """HTTPException whose detail is the complete response body."""


def to_http(err: AnalyticsError, context: str = "") -> ErrorBodyException:
    """ErrorBodyException carrying the error's status and body."""
    if isinstance(err, StoreError):
        # Cause stays in the log; the caller only sees a generic message
        logger.error(
            "Storage failure during %s (%s): %s",
            context or "request",
            err.operation,
            err.__cause__,
            exc_info=err,
        )
    headers = {"WWW-Authenticate": "Bearer"} if err.status_code == 401 else None
    return ErrorBodyException(
        status_code=err.status_code, detail=err.to_detail(), headers=headers
    )


async def error_body_handler(request: Request, exc: ErrorBodyException) -> JSONResponse:
    """Send the exception detail as the top-level JSON body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.detail,
        headers=exc.headers,
    )
