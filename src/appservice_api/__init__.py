"""
appservice-api - expose application service classes as HTTP endpoints.

Public methods of classes deriving from ``AppService`` are mapped to
``/api/<group>/<segment>`` routes by naming convention; explicit
``@operation`` / ``@requires_permission`` declarations override the
defaults.
"""

from appservice_api.core import (
    AppService,
    AppServiceError,
    BusinessRuleError,
    CancellationToken,
    NotFoundError,
    OperationCancelledError,
    RegistrationError,
    RequestBodyError,
    ServiceResolutionError,
    operation,
    requires_permission,
)
from appservice_api.runtime import (
    AppServiceRouteGenerator,
    ClaimsPermissionEvaluator,
    Lifetime,
    PermissionEvaluator,
    Principal,
    RolePermissionEvaluator,
    ServerConfig,
    ServiceContainer,
    create_app,
    generate_app_service_routes,
    run_app,
)

__version__ = "0.4.0"

__all__ = [
    "AppService",
    "AppServiceError",
    "AppServiceRouteGenerator",
    "BusinessRuleError",
    "CancellationToken",
    "ClaimsPermissionEvaluator",
    "Lifetime",
    "NotFoundError",
    "OperationCancelledError",
    "PermissionEvaluator",
    "Principal",
    "RegistrationError",
    "RequestBodyError",
    "RolePermissionEvaluator",
    "ServerConfig",
    "ServiceContainer",
    "ServiceResolutionError",
    "__version__",
    "create_app",
    "generate_app_service_routes",
    "operation",
    "requires_permission",
    "run_app",
]
