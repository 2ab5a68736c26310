"""
Descriptor models.

Frozen Pydantic models describing discovered services, their methods and
the routes generated for them.
"""

from appservice_api.specs.descriptors import (
    HandlerShape,
    HttpMethod,
    MethodDescriptor,
    OperationDeclaration,
    ParameterKind,
    ParameterSpec,
    ReturnShape,
    RouteDescriptor,
    ServiceDescriptor,
)

__all__ = [
    "HandlerShape",
    "HttpMethod",
    "MethodDescriptor",
    "OperationDeclaration",
    "ParameterKind",
    "ParameterSpec",
    "ReturnShape",
    "RouteDescriptor",
    "ServiceDescriptor",
]
