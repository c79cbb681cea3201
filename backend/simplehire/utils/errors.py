"""Application errors and the JSON error envelope."""

import logging
import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from simplehire.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """
    Error raised by routes and services that maps directly onto a response.

    Args:
        message: Human readable error message
        status_code: HTTP status to respond with
        code: Stable machine readable error code
        details: Optional extra payload for the client
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "ERROR",
        details: Optional[Any] = None,
        headers: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        self.headers = headers


class ValidationFailed(AppError):
    def __init__(self, message: str = "Validation failed", code: str = "VALIDATION_ERROR", details: Any = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, code, details)


class Unauthorized(AppError):
    def __init__(self, message: str = "Authentication required", code: str = "UNAUTHORIZED"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, code)


class Forbidden(AppError):
    def __init__(self, message: str = "Access denied", code: str = "FORBIDDEN"):
        super().__init__(message, status.HTTP_403_FORBIDDEN, code)


class NotFound(AppError):
    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(message, status.HTTP_404_NOT_FOUND, code)


class Conflict(AppError):
    def __init__(self, message: str = "Resource already exists", code: str = "CONFLICT"):
        super().__init__(message, status.HTTP_409_CONFLICT, code)


class PaymentFailed(AppError):
    def __init__(self, message: str = "Payment failed", code: str = "PAYMENT_FAILED", details: Any = None):
        super().__init__(message, status.HTTP_402_PAYMENT_REQUIRED, code, details)


class ServiceUnavailable(AppError):
    def __init__(self, message: str = "Service unavailable", code: str = "SERVICE_UNAVAILABLE"):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE, code)


class RateLimited(AppError):
    def __init__(self, message: str = "Too many requests, please try again later", retry_after: int = 60):
        super().__init__(
            message,
            status.HTTP_429_TOO_MANY_REQUESTS,
            "RATE_LIMIT_EXCEEDED",
            headers={"Retry-After": str(retry_after)},
        )


def error_body(message: str, code: str, details: Any = None) -> dict:
    body = {"success": False, "error": message, "code": code}
    if details is not None:
        body["details"] = details
    return body


def error_response(status_code: int, message: str, code: str, details: Any = None, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(message, code, details), headers=headers)


_HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "FILE_TOO_LARGE",
    429: "RATE_LIMIT_EXCEEDED",
}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.code, exc.details, headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", "VALIDATION_ERROR", details)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return error_response(404, "Route not found", "NOT_FOUND")
    code = _HTTP_STATUS_CODES.get(exc.status_code, "ERROR")
    return error_response(exc.status_code, str(exc.detail), code, headers=getattr(exc, "headers", None))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return error_response(status.HTTP_409_CONFLICT, "A record with this value already exists", "DUPLICATE_ENTRY")


async def no_result_handler(request: Request, exc: NoResultFound) -> JSONResponse:
    return error_response(status.HTTP_404_NOT_FOUND, "Record not found", "NOT_FOUND")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    details = None
    if not settings.is_production:
        details = {"stack": traceback.format_exception(type(exc), exc, exc.__traceback__)}
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error" if settings.is_production else str(exc),
        "INTERNAL_SERVER_ERROR",
        details,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error envelope handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(NoResultFound, no_result_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
