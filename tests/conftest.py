"""Shared pytest fixtures for appservice-api tests."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

import jwt
import pytest

JWT_SECRET = "unit-test-secret-key-0123456789abcdef"


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo setup_logging so caplog sees records and handlers do not leak."""
    yield
    logger = logging.getLogger("appservice_api")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def jwt_secret() -> str:
    return JWT_SECRET


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Factory for signed test tokens."""

    def _make(
        sub: str = "user-1",
        permissions: list[str] | None = None,
        roles: list[str] | None = None,
        expires_in: int = 3600,
        secret: str = JWT_SECRET,
        **claims: Any,
    ) -> str:
        payload: dict[str, Any] = {"sub": sub, "exp": int(time.time()) + expires_in, **claims}
        if permissions is not None:
            payload["permissions"] = permissions
        if roles is not None:
            payload["roles"] = roles
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_header(make_token: Callable[..., str]) -> Callable[..., dict[str, str]]:
    """Authorization header carrying a token with the given permissions."""

    def _header(*permissions: str, **kwargs: Any) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(permissions=list(permissions), **kwargs)}"}

    return _header
