"""
Verb and route inference from naming conventions.

All functions here are pure: the same input always produces the same
route, and none of them can fail.
"""

from __future__ import annotations

from appservice_api.specs.descriptors import (
    HttpMethod,
    MethodDescriptor,
    RouteDescriptor,
    ServiceDescriptor,
)

SERVICE_SUFFIX = "AppService"
ASYNC_SUFFIXES = ("_async", "Async")

# Checked in order; the first bucket with a matching prefix wins
VERB_PREFIXES: tuple[tuple[HttpMethod, tuple[str, ...]], ...] = (
    (HttpMethod.GET, ("get", "list", "find")),
    (HttpMethod.POST, ("create", "add", "post")),
    (HttpMethod.PUT, ("update", "put")),
    (HttpMethod.DELETE, ("delete", "remove")),
)


def trim_suffix(value: str, suffix: str) -> str:
    """Remove *suffix* from the end of *value*, ignoring case."""
    if suffix and value.lower().endswith(suffix.lower()):
        return value[: -len(suffix)]
    return value


def infer_http_method(method_name: str) -> HttpMethod:
    """Map a method name to an HTTP verb by its leading token (default POST)."""
    lowered = method_name.lower()
    for verb, prefixes in VERB_PREFIXES:
        if lowered.startswith(prefixes):
            return verb
    return HttpMethod.POST


def path_segment(method_name: str) -> str:
    """Strip the async suffix (if any) and lowercase, e.g. GetAllAsync -> getall."""
    for suffix in ASYNC_SUFFIXES:
        trimmed = trim_suffix(method_name, suffix)
        if trimmed != method_name and trimmed:
            return trimmed.lower()
    return method_name.lower()


def route_group_name(type_name: str) -> str:
    """Strip the service suffix and lowercase, e.g. ProductAppService -> product."""
    return trim_suffix(type_name, SERVICE_SUFFIX).lower()


def build_route(service: ServiceDescriptor, method: MethodDescriptor) -> RouteDescriptor:
    """Derive the route for *method*; explicit declarations win over conventions."""
    declaration = method.declaration
    verb = declaration.method or infer_http_method(method.name)
    segment = (declaration.path or path_segment(method.name)).lower()
    group = service.route_group

    tags = [service.tag]
    for tag in declaration.tags:
        if tag not in tags:
            tags.append(tag)

    description = f"Calls {service.name}.{method.name}"
    if method.permission:
        description += f"\n\n**Required Permission:** `{method.permission}`"

    return RouteDescriptor(
        method=verb,
        group=group,
        segment=segment,
        tags=tuple(tags),
        operation_id=f"{group}_{segment}",
        summary=declaration.summary or f"{segment} operation for {group}",
        description=description,
    )
