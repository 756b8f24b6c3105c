"""Repository protocol definitions for domain layer."""

from .assignment import AssignmentRepository
from .budget import BudgetRepository
from .plan import GeneratedPlanRepository
from .store import PlanStore

__all__ = [
    "AssignmentRepository",
    "BudgetRepository",
    "GeneratedPlanRepository",
    "PlanStore",
]
