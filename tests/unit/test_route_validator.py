"""Tests for route conflict detection."""

from __future__ import annotations

import logging
from typing import Any

import pytest
from fastapi import FastAPI

from appservice_api.core import AppService, CancellationToken, RegistrationError, operation
from appservice_api.runtime.app_factory import create_app
from appservice_api.runtime.config import ServerConfig
from appservice_api.runtime.container import ServiceContainer
from appservice_api.runtime.route_generator import AppServiceRouteGenerator
from appservice_api.runtime.route_validator import validate_routes


class ClashAppService(AppService):
    async def get_all_async(self, ct: CancellationToken) -> list[str]:
        return []

    @operation("GET", path="get_all")
    async def list_async(self, ct: CancellationToken) -> list[str]:
        return []


class SingleAppService(AppService):
    async def get_all_async(self, ct: CancellationToken) -> list[str]:
        return []


def _app_with_duplicate() -> FastAPI:
    app = FastAPI()

    @app.get("/items", name="first")
    async def first() -> dict[str, Any]:
        return {}

    @app.get("/items", name="second")
    async def second() -> dict[str, Any]:
        return {}

    @app.post("/items", name="create")
    async def create() -> dict[str, Any]:
        return {}

    return app


class TestValidateRoutes:
    def test_reports_conflicts(self) -> None:
        conflicts = validate_routes(_app_with_duplicate())
        assert conflicts == ["GET /items registered 2 times: first, second"]

    def test_strict_raises(self) -> None:
        with pytest.raises(RegistrationError, match="route conflicts detected"):
            validate_routes(_app_with_duplicate(), strict=True)

    def test_clean_app(self) -> None:
        app = FastAPI()

        @app.get("/a")
        async def a() -> dict[str, Any]:
            return {}

        assert validate_routes(app, strict=True) == []


class TestGeneratedConflicts:
    def test_declared_path_clash_fails_startup(self) -> None:
        with pytest.raises(RegistrationError, match="GET /api/clash/get_all"):
            create_app(
                [ClashAppService],
                config=ServerConfig(require_auth=False),
                container=ServiceContainer(),
                configure_logging=False,
            )

    def test_lenient_routes_only_log(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="appservice_api.routes"):
            app = create_app(
                [ClashAppService],
                config=ServerConfig(require_auth=False, strict_routes=False),
                container=ServiceContainer(),
                configure_logging=False,
            )
        assert app.state.route_generator.conflicts == [
            "GET /api/clash/get_all is mapped by both "
            "ClashAppService.get_all_async and ClashAppService.list_async"
        ]
        assert "Route conflict" in caplog.text

    def test_clash_leaves_router_untouched(self) -> None:
        generator = AppServiceRouteGenerator(config=ServerConfig(require_auth=False))
        with pytest.raises(RegistrationError, match="mapped by both"):
            generator.add_service(ClashAppService)
        assert generator.mapped_routes == []
        assert generator.router.routes == []
        generator.add_service(SingleAppService)

    def test_group_collision_in_batch_adds_nothing(self) -> None:
        class Single(AppService):
            async def get_all_async(self, ct: CancellationToken) -> list[str]:
                return []

        generator = AppServiceRouteGenerator(config=ServerConfig(require_auth=False))
        with pytest.raises(RegistrationError, match="route group 'single'"):
            generator.add_services([SingleAppService, Single])
        assert generator.mapped_routes == []

    def test_same_service_twice(self) -> None:
        generator = AppServiceRouteGenerator(config=ServerConfig(require_auth=False))
        generator.add_service(SingleAppService)
        with pytest.raises(RegistrationError, match="already used by SingleAppService"):
            generator.add_service(SingleAppService)

    def test_mapped_routes(self) -> None:
        generator = AppServiceRouteGenerator(config=ServerConfig(require_auth=False))
        (mapped,) = generator.add_service(SingleAppService)
        assert mapped.full_path == "/api/single/get_all"
        assert mapped.policy is None
        assert generator.mapped_routes == [mapped]
