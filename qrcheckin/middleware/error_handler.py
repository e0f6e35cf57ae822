"""
Error handling middleware for consistent error responses and logging.

Every error leaves the service in the same envelope::

    {"ok": false, "error": {"code", "message", "correlation_id", "timestamp", "details"?}}

Business-rule failures keep their message; database and unexpected errors
are logged in full and answered with a generic message.
"""

import traceback
import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from qrcheckin.exceptions import CheckinAPIException
from qrcheckin.logging_config import correlation_id_var, get_logger

logger = get_logger("middleware.error_handler")

CORRELATION_HEADER = "X-Correlation-ID"


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
    correlation_id: str | None = None,
) -> JSONResponse:
    """Create standardized error response."""
    error = {
        "code": error_code,
        "message": message,
        "correlation_id": correlation_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if details:
        error["details"] = details

    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": error},
        headers={CORRELATION_HEADER: correlation_id or "unknown"},
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware for centralized error handling and logging."""

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors that occur."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        token = correlation_id_var.set(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except CheckinAPIException as e:
            # Business-rule failures are expected traffic
            log = logger.warning if e.status_code >= 500 else logger.info
            log(
                f"Application error: {e.error_code} - {e.message}",
                extra={
                    "error_code": e.error_code,
                    "operation": f"{request.method} {request.url.path}",
                },
            )
            return error_response(
                status_code=e.status_code,
                error_code=e.error_code,
                message=e.message,
                details=e.details,
                correlation_id=correlation_id,
            )

        except SQLAlchemyError as e:
            error_code = "DATABASE_ERROR"
            if isinstance(e, IntegrityError):
                error_code = "INTEGRITY_CONSTRAINT_VIOLATION"
            elif isinstance(e, OperationalError):
                error_code = "DATABASE_OPERATIONAL_ERROR"

            logger.error(
                f"Database error: {type(e).__name__}: {e}",
                extra={
                    "error_code": error_code,
                    "operation": f"{request.method} {request.url.path}",
                },
            )
            return error_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_code="INTERNAL_SERVER_ERROR",
                message="An internal error occurred",
                correlation_id=correlation_id,
            )

        except Exception as e:
            logger.error(
                f"Unexpected error: {type(e).__name__}: {e}\n{traceback.format_exc()}",
                extra={
                    "error_code": "INTERNAL_SERVER_ERROR",
                    "operation": f"{request.method} {request.url.path}",
                },
            )
            # Don't expose internal error details
            return error_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_code="INTERNAL_SERVER_ERROR",
                message="An internal error occurred",
                correlation_id=correlation_id,
            )

        finally:
            correlation_id_var.reset(token)


def handle_validation_errors(errors: list) -> dict[str, Any]:
    """Convert pydantic validation errors to structured format."""
    formatted_errors = []

    for error in errors:
        formatted_error = {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        formatted_errors.append(formatted_error)

    return {"validation_errors": formatted_errors, "error_count": len(formatted_errors)}


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        details=handle_validation_errors(exc.errors()),
        correlation_id=getattr(request.state, "correlation_id", None),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(
        status_code=exc.status_code,
        error_code="HTTP_EXCEPTION",
        message=str(exc.detail) if exc.detail else "HTTP error",
        correlation_id=getattr(request.state, "correlation_id", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Route framework-level errors through the same envelope."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
