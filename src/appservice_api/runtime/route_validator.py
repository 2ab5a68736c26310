"""
Duplicate route detection.

FastAPI dispatches to the first route matching a method and path and
silently shadows the rest. ``validate_routes`` runs once the application is
assembled and reports such collisions among the routes registered on the
app itself. Generated service routes are checked earlier, by
``AppServiceRouteGenerator``, since newer FastAPI releases keep an included
router as a single entry of ``app.routes``.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

from starlette.routing import BaseRoute, Mount

from appservice_api.core.errors import RegistrationError

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger("appservice_api.routes")


def _route_name(route: BaseRoute) -> str:
    name = getattr(route, "name", None)
    return name or repr(getattr(route, "endpoint", route))


def validate_routes(app: FastAPI, *, strict: bool = False) -> list[str]:
    """
    Find method+path pairs registered more than once.

    Mounted sub-applications and routes without HTTP methods (websockets)
    are skipped.

    Args:
        app: Application to inspect
        strict: Raise ``RegistrationError`` instead of only logging

    Returns:
        One line per conflict, e.g. ``GET /items registered 2 times: first, second``
    """
    counts: Counter[tuple[str, str]] = Counter()
    names: dict[tuple[str, str], list[str]] = {}

    for route in app.routes:
        if isinstance(route, Mount):
            continue
        path = getattr(route, "path", "")
        for method in getattr(route, "methods", None) or ():
            key = (path, method)
            counts[key] += 1
            names.setdefault(key, []).append(_route_name(route))

    conflicts = [
        f"{method} {path} registered {count} times: {', '.join(names[(path, method)])}"
        for (path, method), count in sorted(counts.items())
        if path and count > 1
    ]

    for conflict in conflicts:
        logger.warning("Route conflict: %s", conflict)
    if strict and conflicts:
        raise RegistrationError(
            f"route conflicts detected ({len(conflicts)}):\n" + "\n".join(conflicts)
        )
    return conflicts
