"""
Route generator for application services.

Wires the pieces together at startup: scanner -> conventions -> response
plan -> handler builder -> permission binder -> describer, and registers
one FastAPI route per public service method.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.exceptions import FastAPIError

from appservice_api.core.errors import RegistrationError
from appservice_api.runtime.auth import (
    Principal,
    TokenVerifier,
    TokenVerifierConfig,
    create_auth_dependency,
)
from appservice_api.runtime.config import ServerConfig
from appservice_api.runtime.container import ServiceContainer
from appservice_api.runtime.conventions import build_route
from appservice_api.runtime.handler_builder import build_handler
from appservice_api.runtime.logging import log_with_context
from appservice_api.runtime.openapi import EndpointDescriber
from appservice_api.runtime.permissions import (
    ClaimsPermissionEvaluator,
    PermissionEvaluator,
    bind_permission,
    create_policy_dependency,
)
from appservice_api.runtime.responses import ResponsePlan, plan_response
from appservice_api.runtime.scanner import (
    describe_methods,
    describe_services,
    discover_service_types,
)
from appservice_api.specs.descriptors import (
    HttpMethod,
    MethodDescriptor,
    RouteDescriptor,
    ServiceDescriptor,
)

logger = logging.getLogger("appservice_api.routes")


@dataclass(frozen=True)
class MappedRoute:
    """One generated endpoint, kept for route tables and diagnostics."""

    service: ServiceDescriptor
    method: MethodDescriptor
    route: RouteDescriptor
    plan: ResponsePlan
    policy: str | None
    full_path: str

    @property
    def http_method(self) -> HttpMethod:
        return self.route.method

    @property
    def handler(self) -> str:
        return f"{self.service.name}.{self.method.name}"


def build_verifier(config: ServerConfig) -> TokenVerifier | None:
    """Token verifier for *config*, or None when no JWT secret is configured."""
    if not config.jwt_secret:
        return None
    return TokenVerifier(
        TokenVerifierConfig(
            secret_key=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            issuer=config.jwt_issuer,
            audience=config.jwt_audience,
            leeway_seconds=config.jwt_leeway_seconds,
        )
    )


class AppServiceRouteGenerator:
    """
    Generates FastAPI routes from application service classes.

    Every route lives on one APIRouter mounted under ``config.api_prefix``.
    Authentication is a router-level dependency; a permission requirement
    adds a route-level dependency on top of it.
    """

    def __init__(
        self,
        container: ServiceContainer | None = None,
        evaluator: PermissionEvaluator | None = None,
        config: ServerConfig | None = None,
        *,
        verifier: TokenVerifier | None = None,
    ):
        self.container = container or ServiceContainer()
        self.evaluator = evaluator or ClaimsPermissionEvaluator()
        self.config = config or ServerConfig()
        self.verifier = verifier or build_verifier(self.config)
        self.describer = EndpointDescriber()

        if self.config.require_auth and self.verifier is None:
            logger.warning(
                "Authentication is required but no JWT secret is configured; "
                "every request to %s will be rejected",
                self.config.api_prefix,
            )

        self.auth_dependency: Callable[..., Awaitable[Principal]] = create_auth_dependency(
            self.verifier,
            cookie_name=self.config.auth_cookie_name,
            required=self.config.require_auth,
        )
        self._router = APIRouter(
            prefix=self.config.api_prefix.rstrip("/"),
            dependencies=[Depends(self.auth_dependency)],
        )
        self._groups: dict[str, ServiceDescriptor] = {}
        self._mapped: list[MappedRoute] = []
        self._conflicts: list[str] = []

    @property
    def router(self) -> APIRouter:
        return self._router

    @property
    def mapped_routes(self) -> list[MappedRoute]:
        return list(self._mapped)

    @property
    def conflicts(self) -> list[str]:
        """Duplicate method+path pairs seen so far (only non-empty when routes are lenient)."""
        return list(self._conflicts)

    @property
    def schemas(self) -> dict[str, Any]:
        """Payload schemas collected for the OpenAPI components section."""
        return self.describer.schemas

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def add_service(self, service_type: type) -> list[MappedRoute]:
        """
        Map every public method of *service_type*.

        Raises:
            RegistrationError: route group already taken, a method shape is
                not recognised in strict mode, or a method+path is already
                mapped while routes are strict.
        """
        return self._register(describe_services([service_type]))

    def add_services(self, services: ModuleType | str | Iterable[type]) -> list[MappedRoute]:
        """Map a module/package (discovered) or an explicit list of service classes.

        Nothing is added to the router unless every service can be mapped.
        """
        if isinstance(services, ModuleType | str):
            service_types = discover_service_types(services)
        else:
            service_types = list(services)

        mapped = self._register(describe_services(service_types))

        log_with_context(
            logger,
            logging.INFO,
            f"Mapped {len(mapped)} routes from {len(service_types)} services",
            services=[t.__name__ for t in service_types],
        )
        return mapped

    # -------------------------------------------------------------------------
    # Route helpers
    # -------------------------------------------------------------------------

    def _register(self, services: list[ServiceDescriptor]) -> list[MappedRoute]:
        # Describe and check everything first so a failure leaves the router untouched
        planned: list[tuple[ServiceDescriptor, MethodDescriptor, RouteDescriptor]] = []
        for service in services:
            previous = self._groups.get(service.route_group)
            if previous is not None:
                raise RegistrationError(
                    f"route group '{service.route_group}' is already used by {previous.name}",
                    service=service.name,
                )
            methods = describe_methods(service.service_type, strict=self.config.strict_shapes)
            if not methods:
                logger.warning("%s has no public methods to map", service.name)
            planned.extend((service, method, build_route(service, method)) for method in methods)

        self._check_conflicts(planned)

        for service in services:
            self._groups[service.route_group] = service
        return [self._add_route(service, method, route) for service, method, route in planned]

    def _check_conflicts(
        self, planned: list[tuple[ServiceDescriptor, MethodDescriptor, RouteDescriptor]]
    ) -> None:
        taken = {(m.http_method, m.full_path): m.handler for m in self._mapped}
        conflicts: list[str] = []
        for service, method, route in planned:
            key = (route.method, self._full_path(route))
            handler = f"{service.name}.{method.name}"
            if key in taken:
                conflicts.append(
                    f"{route.method.value} {key[1]} is mapped by both {taken[key]} and {handler}"
                )
            else:
                taken[key] = handler

        for conflict in conflicts:
            logger.warning("Route conflict: %s", conflict)
        if conflicts and self.config.strict_routes:
            raise RegistrationError(
                f"route conflicts detected ({len(conflicts)}):\n" + "\n".join(conflicts)
            )
        self._conflicts.extend(conflicts)

    def _full_path(self, route: RouteDescriptor) -> str:
        return f"{self.config.api_prefix.rstrip('/')}{route.path}"

    def _add_route(
        self, service: ServiceDescriptor, method: MethodDescriptor, route: RouteDescriptor
    ) -> MappedRoute:
        requirement = bind_permission(method)
        plan = plan_response(
            method.shape,
            method.return_shape,
            method.name,
            authenticated=self.config.require_auth,
            permission=requirement is not None,
        )
        handler = build_handler(
            service, method, route, plan, self.container, api_prefix=self.config.api_prefix
        )

        dependencies = []
        if requirement is not None:
            policy = create_policy_dependency(
                requirement.policy_name, self.evaluator, self.auth_dependency
            )
            dependencies.append(Depends(policy))

        route_kwargs = self.describer.describe(method, route, plan)
        try:
            self._router.add_api_route(
                route.path,
                handler,
                methods=[route.method.value],
                dependencies=dependencies,
                **route_kwargs,
            )
        except FastAPIError as e:
            # Return annotations that are not valid Pydantic fields stay undocumented
            logger.debug(
                "Cannot document response of %s.%s (%s); registering without response_model",
                service.name,
                method.name,
                e,
            )
            route_kwargs["response_model"] = None
            self._router.add_api_route(
                route.path,
                handler,
                methods=[route.method.value],
                dependencies=dependencies,
                **route_kwargs,
            )

        mapped = MappedRoute(
            service=service,
            method=method,
            route=route,
            plan=plan,
            policy=requirement.policy_name if requirement else None,
            full_path=self._full_path(route),
        )
        self._mapped.append(mapped)
        logger.debug(
            "Mapped %s %s -> %s.%s (%s)",
            route.method.value,
            mapped.full_path,
            service.name,
            method.name,
            method.shape.value,
        )
        return mapped


def generate_app_service_routes(
    services: ModuleType | str | Iterable[type],
    container: ServiceContainer | None = None,
    evaluator: PermissionEvaluator | None = None,
    config: ServerConfig | None = None,
) -> AppServiceRouteGenerator:
    """
    Convenience function to generate routes for a set of services.

    Args:
        services: Module, dotted module name, or service classes
        container: Container used to resolve service instances
        evaluator: Permission evaluator (defaults to the claims evaluator)
        config: Server configuration

    Returns:
        The populated generator; mount ``generator.router`` on an app
    """
    generator = AppServiceRouteGenerator(container, evaluator, config)
    generator.add_services(services)
    return generator
