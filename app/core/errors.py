# app/core/errors.py
"""
Domain error taxonomy and its HTTP mapping.

Repositories and services raise the exceptions below and never touch
HTTP. `register_exception_handlers` is the single place where they are
turned into status codes and a client-safe message.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for failures the API knows how to report."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Unexpected server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationFailed(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class InvalidRole(ValidationFailed):
    message = "Only artist accounts can be approved/rejected"


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Admin access required"


class Conflict(DomainError):
    # Existing clients expect 400 for duplicates.
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Conflict"


class DuplicateUsername(Conflict):
    message = "Username already exists"


class AuthenticationFailure(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication failed"


class InvalidCredentials(AuthenticationFailure):
    message = "Invalid credentials"


class InternalError(DomainError):
    pass


class StorageError(InternalError):
    message = "Could not store uploaded file"


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.message}",
            exc_info=exc,
        )
    else:
        logger.warning(
            f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}"
        )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Malformed bodies/params are a plain 400 for this API, not FastAPI's 422.
    """
    fields = [
        ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        for err in exc.errors()
    ]
    logger.warning(f"{request.method} {request.url.path} invalid input: {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid or missing fields", "fields": fields},
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """
    Framework-raised HTTP errors (unknown route, missing static file)
    in the same `{"message": ...}` shape as everything else.
    """
    message = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all: log the traceback, never echo internals to the client.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Unexpected server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
