"""Tests for the generated OpenAPI document."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from appservice_api.core import AppService, CancellationToken, requires_permission
from appservice_api.runtime.app_factory import create_app
from appservice_api.runtime.config import ServerConfig
from appservice_api.runtime.container import ServiceContainer


class Dimensions(BaseModel):
    width: float
    height: float


class ParcelDto(BaseModel):
    id: UUID
    label: str


class CreateParcel(BaseModel):
    label: str
    dimensions: Dimensions


class ParcelAppService(AppService):
    @requires_permission("Parcels.Read")
    async def get_all_async(self, ct: CancellationToken) -> list[ParcelDto]:
        return []

    async def get_async(self, id: UUID, ct: CancellationToken) -> ParcelDto | None:
        return None

    async def create_async(self, dto: CreateParcel, ct: CancellationToken) -> UUID:
        raise NotImplementedError

    @requires_permission("Parcels.Delete")
    async def delete_async(self, id: UUID, ct: CancellationToken) -> None:
        return None


@pytest.fixture(scope="module")
def schema() -> dict[str, Any]:
    app = create_app(
        [ParcelAppService],
        config=ServerConfig(jwt_secret="openapi-test-secret-0123456789abcdef", title="Parcels"),
        container=ServiceContainer(),
        configure_logging=False,
    )
    return TestClient(app).get("/openapi.json").json()


def _op(schema: dict[str, Any], path: str, method: str) -> dict[str, Any]:
    return schema["paths"][path][method]


class TestOperations:
    def test_paths(self, schema: dict[str, Any]) -> None:
        assert set(schema["paths"]) == {
            "/api/parcel/get_all",
            "/api/parcel/get",
            "/api/parcel/create",
            "/api/parcel/delete",
        }

    def test_operation_metadata(self, schema: dict[str, Any]) -> None:
        op = _op(schema, "/api/parcel/get_all", "get")
        assert op["operationId"] == "parcel_get_all"
        assert op["tags"] == ["Parcel"]
        assert op["summary"] == "get_all operation for parcel"
        assert op["x-handler-shape"] == "no_args"
        assert op["x-required-permission"] == "Parcels.Read"
        assert "Required Permission" in op["description"]

    def test_collection_response(self, schema: dict[str, Any]) -> None:
        op = _op(schema, "/api/parcel/get_all", "get")
        ok = op["responses"]["200"]["content"]["application/json"]["schema"]
        assert ok["type"] == "array"
        assert ok["items"]["$ref"] == "#/components/schemas/ParcelDto"
        assert {"401", "403", "500"} <= set(op["responses"])

    def test_id_only_documents_not_found(self, schema: dict[str, Any]) -> None:
        op = _op(schema, "/api/parcel/get", "get")
        assert "404" in op["responses"]
        assert "403" not in op["responses"]
        assert op["parameters"][0]["name"] == "id"
        assert op["parameters"][0]["in"] == "query"

    def test_created_response(self, schema: dict[str, Any]) -> None:
        op = _op(schema, "/api/parcel/create", "post")
        created = op["responses"]["201"]
        assert "Location" in created["headers"]
        assert created["content"]["application/json"]["schema"]["$ref"] == (
            "#/components/schemas/CreatedResponse"
        )
        assert "400" in op["responses"]

    def test_request_body(self, schema: dict[str, Any]) -> None:
        op = _op(schema, "/api/parcel/create", "post")
        body = op["requestBody"]["content"]["application/json"]["schema"]
        assert body == {"$ref": "#/components/schemas/CreateParcel"}
        components = schema["components"]["schemas"]
        assert "CreateParcel" in components
        assert "Dimensions" in components
        assert components["CreateParcel"]["properties"]["dimensions"]["$ref"] == (
            "#/components/schemas/Dimensions"
        )

    def test_delete_no_content(self, schema: dict[str, Any]) -> None:
        op = _op(schema, "/api/parcel/delete", "delete")
        assert "204" in op["responses"]
        assert "200" not in op["responses"]


class TestDocument:
    def test_info(self, schema: dict[str, Any]) -> None:
        assert schema["info"]["title"] == "Parcels"
        assert schema["info"]["version"] == "v1"

    def test_bearer_security(self, schema: dict[str, Any]) -> None:
        assert schema["components"]["securitySchemes"]["Bearer"]["scheme"] == "bearer"
        assert schema["security"] == [{"Bearer": []}]

    def test_health_hidden(self, schema: dict[str, Any]) -> None:
        assert "/health" not in schema["paths"]
