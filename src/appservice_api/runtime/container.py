"""
Minimal service container and service-instance resolution.

The container answers "give me an instance of type T". Registrations are
made once at startup; lookups happen concurrently from request handlers.

Lifetimes:
- instance: a pre-built object, shared by everyone
- singleton: built by a factory on first use, then shared
- scoped: built once per ``container.scope()`` (one scope per request)
- transient: built on every lookup
"""

from __future__ import annotations

import contextlib
import inspect
import threading
import typing
from collections.abc import Callable, Iterator
from contextvars import ContextVar
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeVar

from appservice_api.core.errors import ServiceResolutionError
from appservice_api.core.markers import is_app_service_type

T = TypeVar("T")

Factory = Callable[["ServiceContainer"], Any]

_current_scope: ContextVar[dict[type, Any] | None] = ContextVar("appservice_scope", default=None)


class Lifetime(StrEnum):
    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


@dataclass
class _Registration:
    factory: Factory
    lifetime: Lifetime


class ServiceContainer:
    """Type-keyed registry of instances and factories."""

    def __init__(self) -> None:
        self._instances: dict[type, Any] = {}
        self._registrations: dict[type, _Registration] = {}
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_instance(self, service_type: type[T], instance: T) -> None:
        self._instances[service_type] = instance

    def register_factory(
        self,
        service_type: type,
        factory: Factory,
        lifetime: Lifetime | str = Lifetime.SINGLETON,
    ) -> None:
        self._registrations[service_type] = _Registration(factory, Lifetime(lifetime))

    def register_type(
        self,
        service_type: type,
        implementation: type | None = None,
        lifetime: Lifetime | str = Lifetime.SCOPED,
    ) -> None:
        """Register *implementation* (default: *service_type*) built via constructor injection."""
        impl = implementation or service_type
        self.register_factory(service_type, lambda c: c.create_instance(impl), lifetime)

    def is_registered(self, service_type: type) -> bool:
        return service_type in self._instances or service_type in self._registrations

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, service_type: type[T]) -> T | None:
        """Return the registered instance for *service_type*, or None."""
        if service_type in self._instances:
            return typing.cast(T, self._instances[service_type])

        registration = self._registrations.get(service_type)
        if registration is None:
            return None

        if registration.lifetime == Lifetime.TRANSIENT:
            return typing.cast(T, registration.factory(self))

        if registration.lifetime == Lifetime.SCOPED:
            scope = _current_scope.get()
            if scope is None:
                raise ServiceResolutionError(service_type, "scoped service requested outside a scope")
            if service_type not in scope:
                scope[service_type] = registration.factory(self)
            return typing.cast(T, scope[service_type])

        with self._lock:
            if service_type not in self._instances:
                self._instances[service_type] = registration.factory(self)
            return typing.cast(T, self._instances[service_type])

    def require(self, service_type: type[T]) -> T:
        instance = self.get(service_type)
        if instance is None:
            raise ServiceResolutionError(service_type, "not registered")
        return instance

    def create_instance(self, service_type: type[T]) -> T:
        """Construct *service_type*, filling constructor parameters from the container.

        Parameters without a registered type fall back to their default value;
        a parameter with neither is a ServiceResolutionError.
        """
        if service_type.__init__ is object.__init__:
            return service_type()
        try:
            hints = typing.get_type_hints(service_type.__init__)
        except Exception as e:
            raise ServiceResolutionError(service_type, f"cannot read constructor hints: {e}") from e

        kwargs: dict[str, Any] = {}
        signature = inspect.signature(service_type.__init__)
        for param in list(signature.parameters.values())[1:]:
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            annotation = hints.get(param.name)
            dependency = self.get(annotation) if isinstance(annotation, type) else None
            if dependency is not None:
                kwargs[param.name] = dependency
            elif param.default is not param.empty:
                continue
            else:
                raise ServiceResolutionError(
                    service_type,
                    f"no registration for constructor parameter '{param.name}' ({annotation!r})",
                )
        return service_type(**kwargs)

    # -------------------------------------------------------------------------
    # Scopes
    # -------------------------------------------------------------------------

    @contextlib.contextmanager
    def scope(self) -> Iterator[dict[type, Any]]:
        """Open a resolution scope; scoped services live until it closes."""
        items: dict[type, Any] = {}
        token = _current_scope.set(items)
        try:
            yield items
        finally:
            _current_scope.reset(token)


def capability_interfaces(service_type: type) -> list[type]:
    """AppService-derived bases of *service_type*, nearest first (marker excluded)."""
    return [base for base in service_type.__mro__[1:] if is_app_service_type(base)]


def resolve_service(container: ServiceContainer, service_type: type[T]) -> T:
    """Get an instance of *service_type*.

    Lookup order: the concrete type, then each capability interface it
    implements, then construction with container-provided dependencies.
    """
    instance = container.get(service_type)
    if instance is not None:
        return instance

    for interface in capability_interfaces(service_type):
        candidate = container.get(interface)
        if candidate is not None:
            return typing.cast(T, candidate)

    return container.create_instance(service_type)
