"""
Markers that make a class and its methods eligible for endpoint generation.

- ``AppService``: base class (capability marker) for application services.
  Abstract subclasses act as capability interfaces; concrete subclasses are
  discovered and mapped.
- ``@requires_permission(name)``: permission required to call the method.
- ``@operation(...)``: explicit routing metadata; anything not declared is
  derived from the method name.

Example:
    class ProductService(AppService, ABC):
        @abstractmethod
        async def get_async(self, id: UUID, ct: CancellationToken) -> ProductDto | None: ...

    class ProductAppService(ProductService):
        @requires_permission("Products.Read")
        async def get_async(self, id: UUID, ct: CancellationToken) -> ProductDto | None:
            ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from appservice_api.specs.descriptors import HandlerShape, HttpMethod, OperationDeclaration

OPERATION_ATTR = "__appservice_operation__"

F = TypeVar("F", bound=Callable[..., Any])


class AppService:
    """Capability marker for classes whose public methods become endpoints."""

    __slots__ = ()


def is_app_service_type(obj: Any) -> bool:
    """True for classes deriving from AppService (the marker itself excluded)."""
    return isinstance(obj, type) and issubclass(obj, AppService) and obj is not AppService


def get_declaration(func: Any) -> OperationDeclaration:
    """Return the declaration attached to *func*, or an empty one."""
    declaration = getattr(func, OPERATION_ATTR, None)
    if isinstance(declaration, OperationDeclaration):
        return declaration
    return OperationDeclaration()


def _merge(func: Any, **changes: Any) -> None:
    current = get_declaration(func)
    updates = {k: v for k, v in changes.items() if v is not None}
    if "tags" in updates:
        updates["tags"] = [*current.tags, *updates["tags"]]
    setattr(func, OPERATION_ATTR, current.model_copy(update=updates))


def operation(
    method: HttpMethod | str | None = None,
    *,
    path: str | None = None,
    permission: str | None = None,
    shape: HandlerShape | None = None,
    tags: list[str] | None = None,
    summary: str | None = None,
) -> Callable[[F], F]:
    """Decorator attaching explicit routing metadata to a service method.

    Args:
        method: HTTP verb; inferred from the method name when omitted.
        path: Path segment; derived from the method name when omitted.
        permission: Permission name required to call the endpoint.
        shape: Expected handler shape; checked against the signature at startup.
        tags: Additional OpenAPI tags.
        summary: OpenAPI summary.
    """
    verb = HttpMethod(method.upper()) if isinstance(method, str) else method
    # Validated and normalised at import time
    path = OperationDeclaration(path=path).path

    def decorator(func: F) -> F:
        _merge(
            func,
            method=verb,
            path=path,
            permission=permission,
            shape=shape,
            tags=tags,
            summary=summary,
        )
        return func

    return decorator


def requires_permission(name: str) -> Callable[[F], F]:
    """Decorator declaring the permission a caller needs to invoke the method."""

    def decorator(func: F) -> F:
        _merge(func, permission=name)
        return func

    return decorator
