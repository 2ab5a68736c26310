"""Tests for ServerConfig and the logging setup."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from appservice_api.runtime.config import ServerConfig
from appservice_api.runtime.logging import (
    ConsoleFormatter,
    JSONLFormatter,
    get_logger,
    log_with_context,
    setup_logging,
)


class TestServerConfig:
    def test_defaults(self) -> None:
        config = ServerConfig.from_env({})
        assert config.api_prefix == "/api"
        assert config.require_auth is True
        assert config.auth_cookie_name == "access_token"
        assert config.strict_shapes is True
        assert config.jwt_leeway_seconds == 120

    def test_environment_overrides(self) -> None:
        config = ServerConfig.from_env(
            {
                "APPSERVICE_REQUIRE_AUTH": "false",
                "APPSERVICE_JWT_SECRET": "s3cret",
                "APPSERVICE_JWT_LEEWAY_SECONDS": "30",
                "APPSERVICE_LOG_DIR": "/var/log/appservice",
                "APPSERVICE_JWT_ISSUER": "",
                "UNRELATED": "x",
            }
        )
        assert config.require_auth is False
        assert config.jwt_secret == "s3cret"
        assert config.jwt_leeway_seconds == 30
        assert config.log_dir == Path("/var/log/appservice")
        assert config.jwt_issuer is None

    def test_keyword_overrides_win(self) -> None:
        config = ServerConfig.from_env({"APPSERVICE_API_PREFIX": "/v2"}, api_prefix="/v3")
        assert config.api_prefix == "/v3"

    def test_invalid_boolean(self) -> None:
        with pytest.raises(ValueError, match="APPSERVICE_STRICT_ROUTES"):
            ServerConfig.from_env({"APPSERVICE_STRICT_ROUTES": "maybe"})

    def test_invalid_integer(self) -> None:
        with pytest.raises(ValueError, match="must be an integer"):
            ServerConfig.from_env({"APPSERVICE_JWT_LEEWAY_SECONDS": "soon"})

    def test_with_overrides(self) -> None:
        config = ServerConfig().with_overrides(title="Shop")
        assert config.title == "Shop"


def _record(message: str = "Mapped 5 routes", level: int = logging.INFO, **context: object) -> logging.LogRecord:
    record = logging.LogRecord("appservice_api.routes", level, __file__, 10, message, None, None)
    if context:
        record.context = context
    return record


class TestFormatters:
    def test_jsonl_entry(self) -> None:
        entry = json.loads(JSONLFormatter().format(_record(service="ProductAppService")))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "appservice_api.routes"
        assert entry["message"] == "Mapped 5 routes"
        assert entry["context"] == {"service": "ProductAppService"}
        assert entry["timestamp"].endswith("Z")
        assert "source" not in entry

    def test_jsonl_warning_has_source(self) -> None:
        entry = json.loads(JSONLFormatter().format(_record(level=logging.WARNING)))
        assert entry["source"]["line"] == 10

    def test_console_includes_component_and_context(self) -> None:
        line = ConsoleFormatter().format(_record(count=5))
        assert "routes" in line
        assert "Mapped 5 routes" in line
        assert "count=5" in line


class TestSetupLogging:
    def test_file_handler_writes_jsonl(self, tmp_path: Path) -> None:
        logger = setup_logging("DEBUG", log_dir=tmp_path)
        assert logger.name == "appservice_api"
        assert logger.level == logging.DEBUG

        log_with_context(get_logger("routes"), logging.INFO, "hello", context={"a": 1}, b=2)
        for handler in logger.handlers:
            handler.flush()

        lines = (tmp_path / "appservice.log").read_text().strip().splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "hello"
        assert entry["context"] == {"a": 1, "b": 2}

    def test_unknown_level_falls_back_to_info(self) -> None:
        assert setup_logging("chatty").level == logging.INFO

    def test_get_logger_namespace(self) -> None:
        assert get_logger("Route Generator").name == "appservice_api.route_generator"
