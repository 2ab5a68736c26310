"""
Demo application services.

``ProductAppService`` is a CRUD service guarded by ``Products.*``
permissions; projects and expenses are list-only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from uuid import UUID

from appservice_api.core import (
    AppService,
    BusinessRuleError,
    CancellationToken,
    NotFoundError,
    requires_permission,
)
from appservice_api.demo.domain import Product
from appservice_api.demo.dtos import (
    CreateProductRequest,
    ExpenseListDto,
    ProductDto,
    ProjectListDto,
    UpdateProductRequest,
)
from appservice_api.demo.repositories import (
    ExpenseRepository,
    ProductRepository,
    ProjectRepository,
)

LIST_LIMIT = 100


def _to_dto(product: Product) -> ProductDto:
    return ProductDto(id=product.id, name=product.name, price=float(product.price))


class ProductService(AppService, ABC):
    """Capability interface for product operations."""

    @abstractmethod
    async def get_all_async(self, ct: CancellationToken) -> list[ProductDto]: ...

    @abstractmethod
    async def get_async(self, id: UUID, ct: CancellationToken) -> ProductDto | None: ...

    @abstractmethod
    async def create_async(self, dto: CreateProductRequest, ct: CancellationToken) -> UUID: ...

    @abstractmethod
    async def update_async(
        self, id: UUID, dto: UpdateProductRequest, ct: CancellationToken
    ) -> None: ...

    @abstractmethod
    async def delete_async(self, id: UUID, ct: CancellationToken) -> None: ...


class ProductAppService(ProductService):
    def __init__(self, repo: ProductRepository):
        self.repo = repo

    @requires_permission("Products.Read")
    async def get_all_async(self, ct: CancellationToken) -> list[ProductDto]:
        return [_to_dto(p) for p in await self.repo.list_all()]

    @requires_permission("Products.Read")
    async def get_async(self, id: UUID, ct: CancellationToken) -> ProductDto | None:
        product = await self.repo.get_by_id(id)
        return _to_dto(product) if product else None

    @requires_permission("Products.Create")
    async def create_async(self, dto: CreateProductRequest, ct: CancellationToken) -> UUID:
        if await self.repo.exists_by_name(dto.name):
            raise BusinessRuleError("Product name must be unique")
        product = Product(dto.name, dto.price)
        await self.repo.add(product)
        return product.id

    @requires_permission("Products.Update")
    async def update_async(
        self, id: UUID, dto: UpdateProductRequest, ct: CancellationToken
    ) -> None:
        product = await self.repo.get_by_id(id)
        if product is None:
            raise NotFoundError("Product not found")
        product.rename(dto.name)
        product.reprice(dto.price)
        await self.repo.update(product)

    @requires_permission("Products.Delete")
    async def delete_async(self, id: UUID, ct: CancellationToken) -> None:
        product = await self.repo.get_by_id(id)
        if product is None:
            raise NotFoundError("Product not found")
        await self.repo.delete(product)


class ProjectAppService(AppService):
    def __init__(self, projects: ProjectRepository):
        self.projects = projects

    async def get_all_async(self, ct: CancellationToken) -> list[ProjectListDto]:
        return [
            ProjectListDto(
                id=p.id,
                name=p.name,
                code=p.code,
                reference=p.reference,
                manager=p.manager,
                status=p.status,
                type=p.type,
                last_control=p.last_control,
            )
            for p in await self.projects.list_all(limit=LIST_LIMIT)
        ]


class ExpenseAppService(AppService):
    def __init__(self, expenses: ExpenseRepository):
        self.expenses = expenses

    async def get_all_async(self, ct: CancellationToken) -> list[ExpenseListDto]:
        return [
            ExpenseListDto(id=e.id, doc_no=e.doc_no)
            for e in await self.expenses.list_all(limit=LIST_LIMIT)
        ]
