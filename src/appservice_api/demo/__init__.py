"""
Demo services: products (CRUD with permissions), projects and expenses.

    appservice-api serve appservice_api.demo
"""

from __future__ import annotations

from datetime import UTC, datetime

from appservice_api.demo.domain import Expense, Project
from appservice_api.demo.repositories import (
    ExpenseRepository,
    ProductRepository,
    ProjectRepository,
)
from appservice_api.demo.services import (
    ExpenseAppService,
    ProductAppService,
    ProductService,
    ProjectAppService,
)
from appservice_api.runtime.container import Lifetime, ServiceContainer

__all__ = [
    "ExpenseAppService",
    "ProductAppService",
    "ProjectAppService",
    "configure_services",
]

SAMPLE_PROJECTS = [
    Project(1, "Harbour Bridge Survey", "HBS", "2024-001", "A. Moreau", "Active", "Survey"),
    Project(2, "North Depot Fit-out", "NDF", "2024-014", "K. Osei", "On Hold", "Construction"),
    Project(
        3,
        "Riverside Inspection",
        "RVI",
        "2023-087",
        "L. Chen",
        "Completed",
        "Inspection",
        last_control=datetime(2024, 3, 12, tzinfo=UTC),
    ),
]


def configure_services(container: ServiceContainer, *, seed: bool = True) -> None:
    """Register the demo repositories and the product service interface."""
    projects = [Project(**vars(p)) for p in SAMPLE_PROJECTS] if seed else []
    expenses = [Expense(id=n, doc_no=1000 + n) for n in range(1, 151)] if seed else []

    container.register_instance(ProductRepository, ProductRepository())
    container.register_instance(ProjectRepository, ProjectRepository(projects))
    container.register_instance(ExpenseRepository, ExpenseRepository(expenses))
    container.register_type(ProductService, ProductAppService, lifetime=Lifetime.SCOPED)
