"""Concrete repository implementations using SQLModel."""

from .assignment import SQLModelAssignmentRepository
from .budget import SQLModelBudgetRepository
from .plan import SQLModelGeneratedPlanRepository
from .store import SQLModelPlanStore

__all__ = [
    "SQLModelAssignmentRepository",
    "SQLModelBudgetRepository",
    "SQLModelGeneratedPlanRepository",
    "SQLModelPlanStore",
]
