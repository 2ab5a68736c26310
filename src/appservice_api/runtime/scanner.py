"""
Service registry scanner.

Finds concrete AppService classes in a module or package and reflects over
their own public methods to build MethodDescriptors. This runs once at
startup; the resulting descriptors are never re-evaluated per request.
"""

from __future__ import annotations

import collections.abc
import importlib
import inspect
import logging
import pkgutil
import types
import typing
from collections.abc import Iterable
from types import ModuleType
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from appservice_api.core.cancellation import CancellationToken
from appservice_api.core.errors import RegistrationError
from appservice_api.core.markers import get_declaration, is_app_service_type
from appservice_api.runtime.conventions import route_group_name
from appservice_api.specs.descriptors import (
    HandlerShape,
    MethodDescriptor,
    ParameterKind,
    ParameterSpec,
    ReturnShape,
    ServiceDescriptor,
)

logger = logging.getLogger(__name__)

_COLLECTION_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.Set,
    collections.abc.Iterable,
    collections.abc.Collection,
)

# Parameter kinds (cancellation stripped) -> shape
_SHAPES: dict[tuple[ParameterKind, ...], HandlerShape] = {
    (): HandlerShape.NO_ARGS,
    (ParameterKind.IDENTIFIER,): HandlerShape.ID_ONLY,
    (ParameterKind.PAYLOAD,): HandlerShape.BODY_ONLY,
    (ParameterKind.IDENTIFIER, ParameterKind.PAYLOAD): HandlerShape.ID_AND_BODY,
}


# =============================================================================
# Discovery
# =============================================================================


def _load(target: ModuleType | str) -> ModuleType:
    if isinstance(target, str):
        return importlib.import_module(target)
    return target


def _iter_modules(module: ModuleType) -> Iterable[ModuleType]:
    yield module
    if not hasattr(module, "__path__"):
        return
    for info in pkgutil.walk_packages(module.__path__, prefix=f"{module.__name__}."):
        if info.name.rsplit(".", 1)[-1].startswith("_"):
            continue
        yield importlib.import_module(info.name)


def _exported(module: ModuleType) -> Iterable[Any]:
    names = getattr(module, "__all__", None)
    if names is None:
        names = [n for n in vars(module) if not n.startswith("_")]
    for name in names:
        obj = getattr(module, name, None)
        if obj is not None:
            yield obj


def discover_service_types(target: ModuleType | str) -> list[type]:
    """Return the exported, concrete AppService classes of a module or package.

    Args:
        target: Module object or dotted module name. Packages are walked
            recursively; private submodules (leading underscore) are skipped.

    Returns:
        Classes sorted by (module, qualified name), without duplicates.
    """
    found: dict[str, type] = {}
    for module in _iter_modules(_load(target)):
        for obj in _exported(module):
            if not is_app_service_type(obj) or inspect.isabstract(obj):
                continue
            found[f"{obj.__module__}.{obj.__qualname__}"] = obj
    return [found[key] for key in sorted(found)]


def describe_service(service_type: type) -> ServiceDescriptor:
    group = route_group_name(service_type.__name__)
    if not group:
        raise RegistrationError("route group name is empty", service=service_type.__name__)
    return ServiceDescriptor(service_type=service_type, route_group=group)


def describe_services(service_types: Iterable[type]) -> list[ServiceDescriptor]:
    """Describe every service type; a repeated route group is a RegistrationError."""
    seen: dict[str, ServiceDescriptor] = {}
    for service_type in service_types:
        descriptor = describe_service(service_type)
        previous = seen.get(descriptor.route_group)
        if previous is not None and previous.service_type is not service_type:
            raise RegistrationError(
                f"route group '{descriptor.route_group}' is already used by {previous.name}",
                service=descriptor.name,
            )
        seen[descriptor.route_group] = descriptor
    return list(seen.values())


# =============================================================================
# Classification
# =============================================================================


def classify_parameter(annotation: Any) -> ParameterKind:
    if isinstance(annotation, type) and typing.get_origin(annotation) is None:
        if issubclass(annotation, CancellationToken):
            return ParameterKind.CANCELLATION
        if issubclass(annotation, UUID):
            return ParameterKind.IDENTIFIER
        if issubclass(annotation, BaseModel):
            return ParameterKind.PAYLOAD
    return ParameterKind.UNSUPPORTED


def _is_none(tp: Any) -> bool:
    return tp is None or tp is type(None)


def classify_return(annotation: Any) -> tuple[ReturnShape, Any]:
    """Classify a return annotation into (shape, type for documentation)."""
    if annotation is inspect.Signature.empty:
        return ReturnShape.VALUE, None
    if _is_none(annotation):
        return ReturnShape.NONE, None

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if not _is_none(a)]
        if len(args) < len(typing.get_args(annotation)):
            inner: Any = args[0] if len(args) == 1 else typing.Union[tuple(args)]
            return ReturnShape.OPTIONAL, inner
        return ReturnShape.VALUE, annotation

    if annotation is UUID:
        return ReturnShape.IDENTIFIER, UUID
    if origin in _COLLECTION_ORIGINS or annotation in (list, tuple, set, frozenset):
        return ReturnShape.COLLECTION, annotation
    return ReturnShape.VALUE, annotation


def select_shape(parameters: Iterable[ParameterSpec]) -> HandlerShape | None:
    """Match the ordered parameter kinds against the recognised shapes.

    A cancellation parameter is optional but must come last. Returns None
    when nothing matches.
    """
    kinds = [p.kind for p in parameters]
    if kinds and kinds[-1] == ParameterKind.CANCELLATION:
        kinds.pop()
    return _SHAPES.get(tuple(kinds))


# =============================================================================
# Method reflection
# =============================================================================


def _own_public_methods(service_type: type) -> Iterable[tuple[str, Any]]:
    for name, value in vars(service_type).items():
        if name.startswith("_"):
            continue
        if inspect.isfunction(value):
            yield name, value


def describe_method(
    service_type: type,
    name: str,
    func: Any,
    *,
    strict: bool = True,
) -> MethodDescriptor:
    """Reflect over one method and select its handler shape."""
    try:
        hints = typing.get_type_hints(func)
    except Exception as e:
        raise RegistrationError(
            f"cannot resolve type hints: {e}", service=service_type.__name__, method=name
        ) from e

    signature = inspect.signature(func)
    parameters: list[ParameterSpec] = []
    for param in list(signature.parameters.values())[1:]:
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            kind = ParameterKind.UNSUPPORTED
            annotation = None
        else:
            annotation = hints.get(param.name)
            kind = classify_parameter(annotation)
        parameters.append(ParameterSpec(name=param.name, kind=kind, annotation=annotation))

    return_annotation = hints.get("return", inspect.Signature.empty)
    return_shape, return_type = classify_return(return_annotation)

    declaration = get_declaration(func)
    detected = select_shape(parameters)
    shape = _resolve_shape(service_type, name, detected, declaration.shape, parameters, strict)

    permission = (declaration.permission or "").strip() or None

    return MethodDescriptor(
        name=name,
        function=func,
        parameters=tuple(parameters),
        return_shape=return_shape,
        return_type=return_type,
        shape=shape,
        permission=permission,
        declaration=declaration,
    )


def _resolve_shape(
    service_type: type,
    name: str,
    detected: HandlerShape | None,
    declared: HandlerShape | None,
    parameters: list[ParameterSpec],
    strict: bool,
) -> HandlerShape:
    if declared == HandlerShape.FALLBACK:
        return HandlerShape.FALLBACK
    if declared is not None and detected is not None and declared != detected:
        raise RegistrationError(
            f"declared shape {declared.value} does not match signature ({detected.value})",
            service=service_type.__name__,
            method=name,
        )
    if detected is not None:
        return detected

    signature = ", ".join(f"{p.name}: {p.kind.value}" for p in parameters)
    if strict:
        raise RegistrationError(
            f"unsupported signature ({signature}); expected one of "
            "(ct), (id, ct), (payload, ct), (id, payload, ct)",
            service=service_type.__name__,
            method=name,
        )
    logger.warning(
        "%s.%s has an unsupported signature (%s); mapped with the fallback handler, "
        "only the cancellation token is passed",
        service_type.__name__,
        name,
        signature,
    )
    return HandlerShape.FALLBACK


def describe_methods(service_type: type, *, strict: bool = True) -> list[MethodDescriptor]:
    """Describe the public methods declared directly on *service_type*."""
    return [
        describe_method(service_type, name, func, strict=strict)
        for name, func in _own_public_methods(service_type)
    ]
