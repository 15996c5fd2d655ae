"""
Error Handlers

Map domain errors and request validation failures to one JSON error body:
{"error": {"code", "message", "details"}}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from ...domain.errors import (
    AuthorizationError, DomainError, InfrastructureError, ValidationError
)
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _error_response(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={"X-Correlation-Id": get_correlation_id() or ""}
    )


def _log_level(exc: DomainError) -> int:
    if isinstance(exc, InfrastructureError):
        return logging.ERROR
    if isinstance(exc, AuthorizationError):
        return logging.WARNING
    if isinstance(exc, ValidationError):
        return logging.DEBUG
    return logging.INFO


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Handle domain errors raised by services and the succession engine.

    Expected outcomes (conflicts, validation) are logged quietly;
    authorization failures at warning; backing-service failures at error.
    """
    logger.log(
        _log_level(exc),
        f"{request.method} {request.url.path} -> {exc.error_code}: {exc.message}",
        extra={"error_code": exc.error_code, "status": exc.http_status}
    )
    return _error_response(exc.http_status, exc.to_dict())


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body or parameters did not match the route schema"""
    # Never echo the body: registration requests carry passwords
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    logger.info(
        f"Request validation failed: {request.method} {request.url.path}",
        extra={"error_code": "VALIDATION_ERROR"}
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        {
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": {"errors": errors}
            }
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled errors; full stack trace goes to the error log"""
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": {"hint": "Check server logs for details"}
            }
        }
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
