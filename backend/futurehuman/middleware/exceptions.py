"""Exception handlers that put every error in one envelope.

    {"error": {"code": "...", "message": "...", "details": {...}}}

The wizard client reads `code` and `message` from this shape to build a
single notification per failed call.
"""

import logging
from typing import Any, Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class FutureHumanException(Exception):
    """Base for errors raised on purpose by route handlers."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class ResourceNotFoundError(FutureHumanException):
    """Missing, or owned by someone else (both look the same to the caller)."""

    def __init__(self, resource: str, identifier: Union[str, int]):
        super().__init__(
            f"{resource} not found: {identifier}",
            status.HTTP_404_NOT_FOUND,
            "RESOURCE_NOT_FOUND",
        )


class ConflictError(FutureHumanException):
    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message, status.HTTP_409_CONFLICT, error_code)


# (substring of the driver message, status, code, client-facing message)
_INTEGRITY_RULES = (
    ("unique", status.HTTP_409_CONFLICT, "DUPLICATE_RECORD", "A record with this value already exists"),
    ("foreign key", status.HTTP_422_UNPROCESSABLE_ENTITY, "FOREIGN_KEY_VIOLATION", "Referenced record does not exist"),
    ("not null", status.HTTP_422_UNPROCESSABLE_ENTITY, "NULL_VALUE_NOT_ALLOWED", "Required field is missing"),
)


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: Union[dict, None] = None,
) -> JSONResponse:
    body: dict[str, Any] = {"code": code, "message": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


async def app_exception_handler(request: Request, exc: FutureHumanException) -> JSONResponse:
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return error_response(exc.status_code, exc.error_code, exc.message)


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> HTTP %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return error_response(
        exc.status_code,
        f"HTTP_{exc.status_code}",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    errors = [
        {
            "field": " -> ".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("%s %s -> %d validation error(s)", request.method, request.url.path, len(errors))
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Validation error",
        details={"errors": errors},
    )


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    reason = str(getattr(exc, "orig", exc))
    logger.error("Integrity error on %s: %s", request.url.path, reason)

    lowered = reason.lower()
    for needle, status_code, code, message in _INTEGRITY_RULES:
        if needle in lowered:
            return error_response(status_code, code, message)
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "INTEGRITY_ERROR",
        "Database constraint violation",
    )


async def operational_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Database unavailable on %s: %s", request.url.path, exc)
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "DATABASE_UNAVAILABLE",
        "Database temporarily unavailable. Please try again.",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(FutureHumanException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
