"""Service-facing building blocks: markers, cancellation and errors."""

from appservice_api.core.cancellation import CancellationToken
from appservice_api.core.errors import (
    AppServiceError,
    BusinessRuleError,
    NotFoundError,
    OperationCancelledError,
    RegistrationError,
    RequestBodyError,
    ServiceResolutionError,
)
from appservice_api.core.markers import AppService, operation, requires_permission

__all__ = [
    "AppService",
    "AppServiceError",
    "BusinessRuleError",
    "CancellationToken",
    "NotFoundError",
    "OperationCancelledError",
    "RegistrationError",
    "RequestBodyError",
    "ServiceResolutionError",
    "operation",
    "requires_permission",
]
