"""SQLModel implementation of Budget repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import or_
from sqlmodel import select

from ...models.budget import Budget
from ..database import SessionFactory


class SQLModelBudgetRepository:
    """SQLModel-based budget repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, budget_id: int) -> Optional[Budget]:
        """Retrieve a budget by ID."""
        with self.session_factory() as session:
            budget = session.get(Budget, budget_id)
            if budget is not None:
                session.expunge(budget)
            return budget

    def list_visible(self, *, owner_id: int) -> list[Budget]:
        """Public budgets plus the caller's own private ones."""
        with self.session_factory() as session:
            statement = (
                select(Budget)
                .where(or_(Budget.is_public == True, Budget.owner_id == owner_id))  # noqa: E712
                .order_by(Budget.name, Budget.id)  # type: ignore[arg-type]
            )
            budgets = list(session.exec(statement).all())
            for budget in budgets:
                session.expunge(budget)
            return budgets

    def list_forks(self, source_budget_id: int) -> list[Budget]:
        with self.session_factory() as session:
            statement = (
                select(Budget)
                .where(Budget.forked_from_id == source_budget_id)
                .order_by(Budget.id)  # type: ignore[arg-type]
            )
            budgets = list(session.exec(statement).all())
            for budget in budgets:
                session.expunge(budget)
            return budgets

    def create(self, budget: Budget) -> Budget:
        """Create a new budget."""
        with self.session_factory() as session:
            session.add(budget)
            session.flush()
            session.refresh(budget)
            session.expunge(budget)
            return budget

    def update(self, budget: Budget) -> Budget:
        """Update an existing budget."""
        with self.session_factory() as session:
            merged = session.merge(budget)
            session.flush()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def delete(self, budget_id: int) -> None:
        """Delete a budget by ID."""
        with self.session_factory() as session:
            budget = session.get(Budget, budget_id)
            if budget:
                session.delete(budget)
                session.flush()
