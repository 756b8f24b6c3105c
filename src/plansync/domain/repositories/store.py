"""Aggregate store protocol used by the engine services."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from .assignment import AssignmentRepository
from .budget import BudgetRepository
from .plan import GeneratedPlanRepository


class PlanStore(Protocol):
    """Budgets, assignments and plans behind one transactional boundary."""

    budgets: BudgetRepository
    assignments: AssignmentRepository
    plans: GeneratedPlanRepository

    def transaction(self) -> AbstractContextManager["PlanStore"]:
        """Yield a store whose writes commit together or not at all."""
        ...
