"""SQLModel-backed plan store with a shared-session transaction scope."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from ..database import SessionFactory, bind_session
from .assignment import SQLModelAssignmentRepository
from .budget import SQLModelBudgetRepository
from .plan import SQLModelGeneratedPlanRepository


class SQLModelPlanStore:
    """Bundles the budget, assignment and plan repositories.

    Outside :meth:`transaction` every repository call runs in its own
    session and commits on return. Inside it, all calls share one session
    that commits once on exit or rolls back on any exception.
    """

    def __init__(self, session_factory: SessionFactory, *, in_transaction: bool = False):
        self.session_factory = session_factory
        self.in_transaction = in_transaction
        self.budgets = SQLModelBudgetRepository(session_factory)
        self.assignments = SQLModelAssignmentRepository(session_factory)
        self.plans = SQLModelGeneratedPlanRepository(session_factory)

    @contextmanager
    def transaction(self) -> Iterator["SQLModelPlanStore"]:
        """Yield a store whose writes commit together or not at all.

        Nested calls join the enclosing transaction.
        """
        if self.in_transaction:
            yield self
            return
        with self.session_factory() as session:
            yield SQLModelPlanStore(bind_session(session), in_transaction=True)
