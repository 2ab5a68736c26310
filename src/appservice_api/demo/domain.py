"""
Demo domain entities.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Product:
    """A sellable product. Name must be non-blank, price non-negative."""

    def __init__(self, name: str, price: Decimal, id: UUID | None = None):
        self.id = id or uuid.uuid4()
        self.name = _require_name(name)
        self.price = _require_price(price)

    def rename(self, name: str) -> None:
        self.name = _require_name(name)

    def reprice(self, price: Decimal) -> None:
        self.price = _require_price(price)

    def __repr__(self) -> str:
        return f"Product(id={self.id!s}, name={self.name!r}, price={self.price})"


def _require_name(name: str) -> str:
    if not name or not name.strip():
        raise ValueError("Name is required")
    return name.strip()


def _require_price(price: Decimal) -> Decimal:
    if price < 0:
        raise ValueError("Price must not be negative")
    return price


@dataclass
class Project:
    id: int
    name: str
    code: str = ""
    reference: str = ""
    manager: str = ""
    status: str = "Active"
    type: str = ""
    last_control: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class Expense:
    id: int
    doc_no: int
    created_at: datetime = field(default_factory=_utcnow)
