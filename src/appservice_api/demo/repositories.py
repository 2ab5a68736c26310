"""
In-memory repositories for the demo services.

Each repository guards its storage with an asyncio lock; they are
registered as singletons in the service container.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Generic, Protocol, TypeVar
from uuid import UUID

from appservice_api.demo.domain import Expense, Product, Project


class _Keyed(Protocol):
    id: object


E = TypeVar("E", bound=_Keyed)


class InMemoryRepository(Generic[E]):
    """Insertion-ordered entity store keyed by ``entity.id``."""

    def __init__(self, items: Iterable[E] = ()):
        self._items: dict[object, E] = {item.id: item for item in items}
        self._lock = asyncio.Lock()

    async def get_by_id(self, id: object) -> E | None:
        return self._items.get(id)

    async def list_all(self, limit: int | None = None) -> list[E]:
        async with self._lock:
            items = list(self._items.values())
        return items if limit is None else items[:limit]

    async def add(self, entity: E) -> E:
        async with self._lock:
            self._items[entity.id] = entity
        return entity

    async def update(self, entity: E) -> None:
        async with self._lock:
            if entity.id not in self._items:
                raise KeyError(entity.id)
            self._items[entity.id] = entity

    async def delete(self, entity: E) -> None:
        async with self._lock:
            self._items.pop(entity.id, None)

    async def count(self) -> int:
        return len(self._items)


class ProductRepository(InMemoryRepository[Product]):
    async def get_by_id(self, id: UUID) -> Product | None:  # type: ignore[override]
        return self._items.get(id)

    async def exists_by_name(self, name: str) -> bool:
        wanted = name.strip().casefold()
        return any(p.name.casefold() == wanted for p in self._items.values())


class ProjectRepository(InMemoryRepository[Project]):
    pass


class ExpenseRepository(InMemoryRepository[Expense]):
    pass
