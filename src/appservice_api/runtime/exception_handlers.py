"""
Process-wide exception boundary.

Generated handlers do not translate exceptions themselves (apart from 404
for a missing value and 400 for a bad body); whatever a service raises ends
up here and becomes a structured JSON error:

- RequestBodyError -> 400 invalid_body
- ValueError (domain argument checks) -> 400 invalid_argument
- NotFoundError -> 404 not_found
- BusinessRuleError -> 409 business_rule
- OperationCancelledError -> 499 cancelled
- anything else -> 500 internal_error (logged with traceback)
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from appservice_api.core.errors import (
    BusinessRuleError,
    NotFoundError,
    OperationCancelledError,
    RequestBodyError,
)

logger = logging.getLogger("appservice_api.errors")

CLIENT_CLOSED_REQUEST = 499


def error_body(detail: Any, error_type: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"detail": detail, "type": error_type}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the standard exception handlers on a FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(RequestBodyError)
    async def request_body_handler(request: Request, exc: RequestBodyError) -> Response:
        """Malformed or invalid request bodies are client errors."""
        return JSONResponse(
            status_code=400,
            content=error_body(str(exc), "invalid_body", errors=exc.errors or None),
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> Response:
        return JSONResponse(status_code=404, content=error_body(str(exc), "not_found"))

    @app.exception_handler(BusinessRuleError)
    async def business_rule_handler(request: Request, exc: BusinessRuleError) -> Response:
        """Convert business rule violations to 409 Conflict."""
        return JSONResponse(status_code=409, content=error_body(str(exc), "business_rule"))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> Response:
        """Argument checks in domain code (empty name, negative price, ...)."""
        return JSONResponse(status_code=400, content=error_body(str(exc), "invalid_argument"))

    @app.exception_handler(OperationCancelledError)
    async def cancelled_handler(request: Request, exc: OperationCancelledError) -> Response:
        logger.info("Request cancelled: %s %s (%s)", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=CLIENT_CLOSED_REQUEST, content=error_body(str(exc), "cancelled")
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=500, content=error_body("Internal server error", "internal_error")
        )
