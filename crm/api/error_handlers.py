"""
Exception handlers for FastAPI.

Maps the CrmException hierarchy to HTTP responses with the body
{"error", "message", "details"}.
"""

import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from crm.core.exceptions import (
    CrmException,
    ConflictError,
    DatabaseError,
    ExternalAPIError,
    ValidationError,
    NotFoundError,
    ConfigurationError,
)

logger = logging.getLogger(__name__)


async def crm_exception_handler(request: Request, exc: CrmException) -> JSONResponse:
    """Handler for every custom exception."""
    status_code = 500
    error_type = exc.__class__.__name__

    # Exception type -> HTTP status
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, ValidationError):
        status_code = 400
    elif isinstance(exc, ConflictError):
        status_code = 409
    elif isinstance(exc, ExternalAPIError):
        status_code = 502
    elif isinstance(exc, DatabaseError):
        status_code = 503
    elif isinstance(exc, ConfigurationError):
        status_code = 500

    logger.error(
        f"{error_type}: {exc.message}",
        extra={"error_type": error_type, "details": exc.details, "path": request.url.path},
    )

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {"error": error_type, "message": exc.message, "details": exc.details}
        ),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies/params are client errors (400)."""
    logger.info(f"Request validation failed on {request.url.path}")
    return JSONResponse(
        status_code=400,
        content={
            "error": "ValidationError",
            "message": "Validation failed",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(f"Unhandled error: {exc}", extra={"path": request.url.path})

    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": "Internal server error",
            "details": {},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Registers every exception handler on the FastAPI app.

    Usage:
        from crm.api.error_handlers import register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(CrmException, crm_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Generic handler for unhandled exceptions
    app.add_exception_handler(Exception, generic_exception_handler)
