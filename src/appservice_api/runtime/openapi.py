"""
Response/metadata describer for the generated endpoints.

Documentation only: everything here feeds FastAPI's OpenAPI generation and
never changes what a handler returns. Status codes come from the same
``ResponsePlan`` the handlers use.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from appservice_api.runtime.responses import ResponsePlan
from appservice_api.specs.descriptors import (
    HandlerShape,
    MethodDescriptor,
    ReturnShape,
    RouteDescriptor,
)

if TYPE_CHECKING:
    from fastapi import FastAPI

SCHEMA_REF_TEMPLATE = "#/components/schemas/{model}"

STATUS_DESCRIPTIONS: dict[int, str] = {
    200: "Success",
    201: "Created",
    204: "No Content",
    400: "Malformed request body",
    401: "Not authenticated",
    403: "Missing permission",
    404: "Not found",
    500: "Server error",
}


class CreatedResponse(BaseModel):
    """Body of a 201 response for a newly created resource."""

    id: UUID = Field(description="Identifier of the created resource")


class ErrorResponse(BaseModel):
    """Structured error body produced by the exception handlers."""

    detail: Any = Field(description="Human-readable message or validation details")
    type: str | None = Field(default=None, description="Error category")


def response_model_for(method: MethodDescriptor, plan: ResponsePlan) -> Any:
    """Type documented as the success body (None for empty bodies)."""
    if plan.empty_body:
        return None
    if plan.created:
        return CreatedResponse
    if method.return_shape == ReturnShape.IDENTIFIER:
        return UUID
    return method.return_type


class EndpointDescriber:
    """Builds OpenAPI route metadata and collects payload schemas."""

    def __init__(self) -> None:
        self.schemas: dict[str, Any] = {}

    def request_body(self, payload_type: type[BaseModel]) -> dict[str, Any]:
        """OpenAPI requestBody referencing *payload_type* in components."""
        schema = payload_type.model_json_schema(ref_template=SCHEMA_REF_TEMPLATE)
        for name, definition in schema.pop("$defs", {}).items():
            self.schemas.setdefault(name, definition)
        self.schemas.setdefault(payload_type.__name__, schema)
        return {
            "required": True,
            "content": {
                "application/json": {
                    "schema": {"$ref": SCHEMA_REF_TEMPLATE.format(model=payload_type.__name__)}
                }
            },
        }

    def describe(
        self,
        method: MethodDescriptor,
        route: RouteDescriptor,
        plan: ResponsePlan,
    ) -> dict[str, Any]:
        """Keyword arguments for ``APIRouter.add_api_route`` (documentation only)."""
        responses: dict[int | str, dict[str, Any]] = {
            status: {"model": ErrorResponse, "description": STATUS_DESCRIPTIONS.get(status, "Error")}
            for status in plan.error_statuses
        }
        if plan.created:
            responses[plan.status_code] = {
                "description": STATUS_DESCRIPTIONS[201],
                "headers": {
                    "Location": {
                        "description": "URL of the created resource",
                        "schema": {"type": "string"},
                    }
                },
            }

        extra: dict[str, Any] = {"x-handler-shape": method.shape.value}
        if plan.reads_body and method.payload_type is not None:
            extra["requestBody"] = self.request_body(method.payload_type)
        if method.permission:
            extra["x-required-permission"] = method.permission
        if method.shape == HandlerShape.FALLBACK:
            extra["x-parameters-dropped"] = [
                p.name for p in method.parameters if p.kind.value != "cancellation"
            ]

        return {
            "status_code": plan.status_code,
            "response_model": response_model_for(method, plan),
            "responses": responses,
            "summary": route.summary,
            "description": route.description,
            "operation_id": route.operation_id,
            "name": route.operation_id,
            "tags": list(route.tags),
            "openapi_extra": extra,
        }


def install_openapi(
    app: FastAPI,
    *,
    title: str,
    version: str,
    description: str,
    extra_schemas: dict[str, Any] | None = None,
    bearer_auth: bool = True,
) -> None:
    """Replace ``app.openapi`` with a generator adding schemas and the Bearer scheme."""

    def build_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=title,
            version=version,
            description=description,
            routes=app.routes,
        )
        components = schema.setdefault("components", {})
        schemas = components.setdefault("schemas", {})
        for name, definition in (extra_schemas or {}).items():
            schemas.setdefault(name, definition)
        if bearer_auth:
            components.setdefault("securitySchemes", {})["Bearer"] = {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Enter 'Bearer {token}'",
            }
            schema["security"] = [{"Bearer": []}]
        app.openapi_schema = schema
        return schema

    app.openapi = build_openapi  # type: ignore[method-assign]
