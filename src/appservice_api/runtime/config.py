"""
Server configuration.

``ServerConfig`` groups every option of the generated application. Values
can be overridden from environment variables prefixed ``APPSERVICE_``
(e.g. ``APPSERVICE_JWT_SECRET``, ``APPSERVICE_REQUIRE_AUTH=false``).
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

ENV_PREFIX = "APPSERVICE_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class ServerConfig:
    """
    Configuration for the generated API application.

    Groups all initialization options into a single object for cleaner APIs.
    """

    # Routing
    api_prefix: str = "/api"
    strict_shapes: bool = True  # unsupported method signatures fail at startup
    strict_routes: bool = True  # duplicate method+path fails at startup

    # Authentication
    require_auth: bool = True
    auth_cookie_name: str = "access_token"
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_issuer: str | None = None
    jwt_audience: str | None = None
    jwt_leeway_seconds: int = 120

    # Documentation
    title: str = "AppService API"
    version: str = "v1"
    description: str = "Application services exposed automatically as HTTP endpoints."

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_dir: Path | None = None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> ServerConfig:
        """Build a config from ``APPSERVICE_*`` variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is not None:
                values[f.name] = _coerce(f.name, f.type, raw)
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **changes: Any) -> ServerConfig:
        return dataclasses.replace(self, **changes)


def _coerce(name: str, type_name: Any, raw: str) -> Any:
    type_str = str(type_name)
    if type_str.startswith("bool"):
        value = raw.strip().lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a boolean, got '{raw}'")
    if type_str.startswith("int"):
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}{name.upper()} must be an integer, got '{raw}'")
    if type_str.startswith("Path"):
        return Path(raw) if raw else None
    if "None" in type_str and raw == "":
        return None
    return raw
