"""
Error taxonomy for appservice-api.

Startup errors (raised while routes are generated):
- RegistrationError: ambiguous or unsupported service/method declarations
- ServiceResolutionError: a service instance cannot be obtained

Request errors (raised while a request is handled):
- RequestBodyError: malformed JSON or payload validation failure (400)
- OperationCancelledError: the caller went away (499)

Business errors (raised by application services, translated at the
process-wide exception boundary):
- BusinessRuleError: a domain rule was violated (409)
- NotFoundError: the addressed resource does not exist (404)
"""

from __future__ import annotations

from typing import Any


class AppServiceError(Exception):
    """Base class for all appservice-api errors."""


# =============================================================================
# Startup
# =============================================================================


class RegistrationError(AppServiceError):
    """A service or method cannot be mapped to an endpoint."""

    def __init__(self, message: str, *, service: str | None = None, method: str | None = None):
        self.service = service
        self.method = method
        location = ".".join(part for part in (service, method) if part)
        super().__init__(f"{location}: {message}" if location else message)


class ServiceResolutionError(AppServiceError):
    """The container could not produce an instance of a service type."""

    def __init__(self, service_type: type, reason: str):
        self.service_type = service_type
        self.reason = reason
        super().__init__(f"Cannot resolve {service_type.__name__}: {reason}")


# =============================================================================
# Request
# =============================================================================


class RequestBodyError(AppServiceError):
    """The request body could not be turned into the declared payload type."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(message)


class OperationCancelledError(AppServiceError):
    """Raised by CancellationToken.raise_if_cancelled once the request is cancelled."""


# =============================================================================
# Business
# =============================================================================


class BusinessRuleError(AppServiceError):
    """A business rule was violated (duplicate name, invalid state, ...)."""


class NotFoundError(AppServiceError, LookupError):
    """The resource addressed by the operation does not exist."""
