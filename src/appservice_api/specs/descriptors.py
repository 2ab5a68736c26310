"""
Descriptor types for generated endpoints.

Descriptors are computed once at startup from the service classes and are
shared read-only by every request afterwards.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Enums
# =============================================================================


class HttpMethod(StrEnum):
    """HTTP methods a generated route can use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class ParameterKind(StrEnum):
    """Semantic kind of a service method parameter."""

    CANCELLATION = "cancellation"
    IDENTIFIER = "identifier"
    PAYLOAD = "payload"
    UNSUPPORTED = "unsupported"


class ReturnShape(StrEnum):
    """Shape of what a service method returns."""

    NONE = "none"
    VALUE = "value"
    OPTIONAL = "optional"
    COLLECTION = "collection"
    IDENTIFIER = "identifier"


class HandlerShape(StrEnum):
    """Invocation pattern binding a method signature to handler behaviour."""

    NO_ARGS = "no_args"
    ID_ONLY = "id_only"
    BODY_ONLY = "body_only"
    ID_AND_BODY = "id_and_body"
    FALLBACK = "fallback"


# =============================================================================
# Declarations
# =============================================================================


class OperationDeclaration(BaseModel):
    """
    Explicit routing metadata attached to a service method.

    Every field is optional; whatever is left unset is filled in from the
    naming conventions.

    Example:
        OperationDeclaration(method=HttpMethod.GET, path="all", permission="Products.Read")
    """

    model_config = ConfigDict(frozen=True)

    method: HttpMethod | None = Field(default=None, description="HTTP verb override")
    path: str | None = Field(default=None, description="Path segment override")
    permission: str | None = Field(default=None, description="Required permission name")
    shape: HandlerShape | None = Field(default=None, description="Declared handler shape")
    tags: list[str] = Field(default_factory=list, description="Extra OpenAPI tags")
    summary: str | None = Field(default=None, description="OpenAPI summary override")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str | None) -> str | None:
        """Path overrides are single segments; nested resource paths are not supported."""
        if v is None:
            return v
        v = v.strip("/")
        if not v or "/" in v or "{" in v:
            raise ValueError(f"Path '{v}' must be a single segment without templates")
        return v


# =============================================================================
# Descriptors
# =============================================================================


class ServiceDescriptor(BaseModel):
    """A discovered application service type and its route group."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    service_type: type = Field(description="Concrete service class")
    route_group: str = Field(description="Lower-case group name, e.g. 'product'")

    @property
    def name(self) -> str:
        return self.service_type.__name__

    @property
    def tag(self) -> str:
        """OpenAPI tag: the route group with its first letter upper-cased."""
        return self.route_group[:1].upper() + self.route_group[1:]


class ParameterSpec(BaseModel):
    """One declared parameter of a service method."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    kind: ParameterKind
    annotation: Any = None


class MethodDescriptor(BaseModel):
    """A public operation of a service type."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    function: Callable[..., Any]
    parameters: tuple[ParameterSpec, ...] = ()
    return_shape: ReturnShape = ReturnShape.NONE
    return_type: Any = None
    shape: HandlerShape
    permission: str | None = None
    declaration: OperationDeclaration = Field(default_factory=OperationDeclaration)

    def parameter(self, kind: ParameterKind) -> ParameterSpec | None:
        """First parameter of the given kind, if any."""
        for param in self.parameters:
            if param.kind == kind:
                return param
        return None

    @property
    def payload_type(self) -> type[BaseModel] | None:
        param = self.parameter(ParameterKind.PAYLOAD)
        return param.annotation if param else None


class RouteDescriptor(BaseModel):
    """Routing metadata for one generated endpoint."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    group: str
    segment: str
    tags: tuple[str, ...] = ()
    operation_id: str
    summary: str
    description: str

    @property
    def path(self) -> str:
        """Path relative to the API prefix, e.g. ``/product/getall``."""
        return f"/{self.group}/{self.segment}"

    @property
    def full_path(self) -> str:
        """Method and path, e.g. ``GET /product/getall``."""
        return f"{self.method.value} {self.path}"
