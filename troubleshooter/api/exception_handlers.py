"""
Global exception handlers for FastAPI.

Every application error is rendered as::

    {"error": {"type", "kind", "message", "fields"?}, "timestamp"}
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import aiosqlite
import structlog

from troubleshooter.core.exceptions import TroubleshooterError, ValidationError

log = structlog.get_logger(__name__)

STATUS_BY_KIND = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "bad_request": status.HTTP_400_BAD_REQUEST,
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "conflict": status.HTTP_409_CONFLICT,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_body(
    error_type: str,
    kind: str,
    message: str,
    fields: Optional[list] = None,
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"type": error_type, "kind": kind, "message": message}
    if fields is not None:
        error["fields"] = fields
    return {
        "error": error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def setup_exception_handlers(app: FastAPI):
    """Register custom exception handlers with the FastAPI application.

    Application errors map to a status by their ``kind``. Store failures and
    anything unexpected become a generic 500 without leaking details.
    """

    @app.exception_handler(TroubleshooterError)
    async def troubleshooter_error_handler(
        request: Request,
        exc: TroubleshooterError,
    ) -> JSONResponse:
        """Handle TroubleshooterError exceptions with the status of their kind."""
        status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)

        log_ctx = log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )

        if status_code >= 500:
            log_ctx.error("request_error", message=exc.message, status_code=status_code)
        else:
            log_ctx.warning("request_error", message=exc.message, status_code=status_code)

        fields = exc.fields if isinstance(exc, ValidationError) else None

        return JSONResponse(
            status_code=status_code,
            content=error_body(type(exc).__name__, exc.kind, exc.message, fields),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Render malformed request bodies and parameters like ValidationError."""
        fields = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        log.warning("request_invalid", path=request.url.path, fields=fields)

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(
                "RequestValidationError", "validation", "Invalid request", fields
            ),
        )

    @app.exception_handler(aiosqlite.Error)
    async def database_error_handler(
        request: Request,
        exc: aiosqlite.Error,
    ) -> JSONResponse:
        """Translate store failures into a generic internal error."""
        log.error(
            "database_error",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            message=str(exc),
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("DatabaseError", "internal", "A database error occurred"),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle all unhandled exceptions with HTTP 500 status."""
        log_ctx = log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )

        log_ctx.error(
            "unhandled_exception",
            message=str(exc),
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(
                "InternalServerError", "internal", "An unexpected error occurred"
            ),
        )
