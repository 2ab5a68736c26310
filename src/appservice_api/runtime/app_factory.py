"""
Application factory.

Builds a FastAPI application exposing application services:

    from appservice_api import create_app

    app = create_app("myproject.services")

Run with ``uvicorn myproject.main:app`` or ``run_app("myproject.services")``.
"""

from __future__ import annotations

import importlib
import logging
import os
from collections.abc import Iterable
from types import ModuleType
from typing import Any

from fastapi import FastAPI

from appservice_api.runtime.config import ServerConfig
from appservice_api.runtime.container import ServiceContainer
from appservice_api.runtime.exception_handlers import register_exception_handlers
from appservice_api.runtime.logging import setup_logging
from appservice_api.runtime.openapi import install_openapi
from appservice_api.runtime.permissions import PermissionEvaluator
from appservice_api.runtime.route_generator import AppServiceRouteGenerator
from appservice_api.runtime.route_validator import validate_routes

logger = logging.getLogger("appservice_api.app")

# Module-level hook a services package may define to register its dependencies
CONFIGURE_HOOK = "configure_services"

SERVICES_ENV = "APPSERVICE_SERVICES"

Services = ModuleType | str | Iterable[type]


def configure_container(services: Services, container: ServiceContainer) -> None:
    """Call the ``configure_services(container)`` hook of a services module, if any."""
    if isinstance(services, str):
        services = importlib.import_module(services)
    if not isinstance(services, ModuleType):
        return
    hook = getattr(services, CONFIGURE_HOOK, None)
    if callable(hook):
        logger.debug("Running %s.%s", services.__name__, CONFIGURE_HOOK)
        hook(container)


def create_app(
    services: Services,
    config: ServerConfig | None = None,
    container: ServiceContainer | None = None,
    evaluator: PermissionEvaluator | None = None,
    *,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Create a FastAPI application from application services.

    Args:
        services: Module, dotted module name, or service classes to expose
        config: Server configuration (defaults to ``ServerConfig.from_env()``)
        container: Service container; when omitted a new one is created and
            the module's ``configure_services`` hook populates it
        evaluator: Permission evaluator (defaults to the claims evaluator)
        configure_logging: Install the package log handlers

    Returns:
        FastAPI application

    Raises:
        RegistrationError: a service cannot be mapped, or routes conflict
            while ``config.strict_routes`` is set
    """
    config = config or ServerConfig.from_env()
    if configure_logging:
        setup_logging(config.log_level, json_output=config.log_json, log_dir=config.log_dir)

    if container is None:
        container = ServiceContainer()
        configure_container(services, container)

    app = FastAPI(
        title=config.title,
        version=config.version,
        description=config.description,
    )
    register_exception_handlers(app)

    generator = AppServiceRouteGenerator(container, evaluator, config)
    generator.add_services(services)
    app.include_router(generator.router)

    @app.get("/health", tags=["System"], include_in_schema=False)
    async def health() -> dict[str, Any]:
        return {"status": "healthy", "routes": len(generator.mapped_routes)}

    install_openapi(
        app,
        title=config.title,
        version=config.version,
        description=config.description,
        extra_schemas=generator.schemas,
        bearer_auth=config.require_auth,
    )

    validate_routes(app, strict=config.strict_routes)

    app.state.container = container
    app.state.route_generator = generator
    app.state.config = config
    return app


def create_app_factory() -> FastAPI:
    """
    ASGI factory reading the services module from ``APPSERVICE_SERVICES``.

    Usage:
        APPSERVICE_SERVICES=appservice_api.demo \\
            uvicorn appservice_api.runtime.app_factory:create_app_factory --factory
    """
    target = os.environ.get(SERVICES_ENV)
    if not target:
        raise RuntimeError(f"{SERVICES_ENV} is not set")
    return create_app(target)


def run_app(
    services: ModuleType | str,
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
    config: ServerConfig | None = None,
) -> None:
    """
    Create and run an application with uvicorn.

    With ``reload`` the app is re-created by the ASGI factory in each worker
    process, so *services* must be importable by name and *config* comes
    from the environment.
    """
    import uvicorn

    if reload:
        name = services if isinstance(services, str) else services.__name__
        os.environ[SERVICES_ENV] = name
        uvicorn.run(
            "appservice_api.runtime.app_factory:create_app_factory",
            factory=True,
            host=host,
            port=port,
            reload=True,
        )
        return

    uvicorn.run(create_app(services, config), host=host, port=port)
