"""
Request and response models of the demo services.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

STATUS_BADGES = {
    "active": "badge bg-green",
    "completed": "badge bg-blue",
    "on hold": "badge bg-yellow",
    "cancelled": "badge bg-red",
}


class ProductDto(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    price: float


class CreateProductRequest(BaseModel):
    """Payload for creating a product."""

    name: str = Field(description="Unique product name")
    price: Decimal = Field(description="Unit price")


class UpdateProductRequest(BaseModel):
    """Payload for renaming and repricing a product."""

    name: str
    price: Decimal


class ProjectListDto(BaseModel):
    """Row of the project list."""

    id: int
    name: str = ""
    code: str = ""
    reference: str = ""
    manager: str = ""
    status: str = ""
    type: str = ""
    last_control: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ref_display(self) -> str:
        return f"{self.code} | {self.reference}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def last_control_display(self) -> str:
        return self.last_control.strftime("%d/%m/%Y") if self.last_control else "-"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status_badge_class(self) -> str:
        return STATUS_BADGES.get(self.status.lower(), "badge bg-secondary")


class ExpenseListDto(BaseModel):
    id: int
    doc_no: int
