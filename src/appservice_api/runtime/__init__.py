"""
Runtime: discovery, route generation and the FastAPI application factory.
"""

from appservice_api.runtime.app_factory import create_app, run_app
from appservice_api.runtime.auth import Principal, TokenVerifier, TokenVerifierConfig
from appservice_api.runtime.config import ServerConfig
from appservice_api.runtime.container import Lifetime, ServiceContainer, resolve_service
from appservice_api.runtime.permissions import (
    ClaimsPermissionEvaluator,
    PermissionEvaluator,
    RolePermissionEvaluator,
)
from appservice_api.runtime.route_generator import (
    AppServiceRouteGenerator,
    MappedRoute,
    generate_app_service_routes,
)

__all__ = [
    "AppServiceRouteGenerator",
    "ClaimsPermissionEvaluator",
    "Lifetime",
    "MappedRoute",
    "PermissionEvaluator",
    "Principal",
    "RolePermissionEvaluator",
    "ServerConfig",
    "ServiceContainer",
    "TokenVerifier",
    "TokenVerifierConfig",
    "create_app",
    "generate_app_service_routes",
    "resolve_service",
    "run_app",
]
