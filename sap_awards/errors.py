"""
Application error types and the JSON handlers that render them.

Every error body has the shape {"status": "fail" | "error", "message": ...};
4xx responses are "fail", 5xx responses are "error". Outside production the
5xx body also carries debug details.
"""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from .config import IS_PRODUCTION

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: list | None = None,
        headers: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors
        self.headers = headers


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class StateConflictError(AppError):
    """Write rejected by the current state (not approved, already voted, in use)"""

    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class PermissionDeniedError(AppError):
    status_code = 403


class RateLimitExceeded(AppError):
    status_code = 429


class PersistenceError(AppError):
    status_code = 500


class DownstreamFailure(AppError):
    """Email, certificate or storage failure inside a background job. Never returned to a client."""

    status_code = 502


def error_body(status_code: int, message: str, errors: list | None = None, exc: Exception | None = None):
    body = {"status": "fail" if status_code < 500 else "error", "message": message}
    if errors:
        body["errors"] = errors
    if exc is not None and status_code >= 500 and not IS_PRODUCTION:
        body["debug"] = {"type": type(exc).__name__, "detail": str(exc)}
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def format_validation_errors(errors) -> list:
    """Flatten pydantic error dicts into [{field, message}]"""
    formatted = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        formatted.append({"field": ".".join(loc) or None, "message": message})
    return formatted


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"⚠️ {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, exc.message, exc.errors, exc),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content=error_body(400, "Validation failed", format_validation_errors(exc.errors())),
        )

    @app.exception_handler(PydanticValidationError)
    async def model_validation_exception_handler(request: Request, exc: PydanticValidationError):
        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content=error_body(400, "Validation failed", format_validation_errors(exc.errors())),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"❌ Database error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content=error_body(500, "A database error occurred. Please try again later.", exc=exc),
        )
