"""SQLModel implementation of the budget assignment repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlmodel import select

from ...models.budget import BudgetAssignment
from ..database import SessionFactory


class SQLModelAssignmentRepository:
    """SQLModel-based assignment repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get_by_id(self, assignment_id: int) -> Optional[BudgetAssignment]:
        with self.session_factory() as session:
            assignment = session.get(BudgetAssignment, assignment_id)
            if assignment is not None:
                session.expunge(assignment)
            return assignment

    def list_by_budget(self, budget_id: int) -> list[BudgetAssignment]:
        with self.session_factory() as session:
            statement = (
                select(BudgetAssignment)
                .where(BudgetAssignment.budget_id == budget_id)
                .order_by(BudgetAssignment.id)  # type: ignore[arg-type]
            )
            assignments = list(session.exec(statement).all())
            for assignment in assignments:
                session.expunge(assignment)
            return assignments

    def list_by_subscriber(self, subscriber_id: int) -> list[BudgetAssignment]:
        with self.session_factory() as session:
            statement = (
                select(BudgetAssignment)
                .where(BudgetAssignment.subscriber_id == subscriber_id)
                .order_by(BudgetAssignment.assigned_at.desc())  # type: ignore[attr-defined]
            )
            assignments = list(session.exec(statement).all())
            for assignment in assignments:
                session.expunge(assignment)
            return assignments

    def count_by_budget(
        self, budget_id: int, *, exclude_id: Optional[int] = None, active_only: bool = False
    ) -> int:
        """Count assignments referencing a budget, optionally skipping one."""
        with self.session_factory() as session:
            statement = (
                select(func.count())
                .select_from(BudgetAssignment)
                .where(BudgetAssignment.budget_id == budget_id)
            )
            if exclude_id is not None:
                statement = statement.where(BudgetAssignment.id != exclude_id)
            if active_only:
                statement = statement.where(BudgetAssignment.is_active == True)  # noqa: E712
            return int(session.exec(statement).one())

    def deactivate_for_subscriber(self, subscriber_id: int) -> list[int]:
        """Mark the subscriber's active assignments inactive; returns their ids."""
        with self.session_factory() as session:
            statement = (
                select(BudgetAssignment)
                .where(BudgetAssignment.subscriber_id == subscriber_id)
                .where(BudgetAssignment.is_active == True)  # noqa: E712
            )
            assignments = list(session.exec(statement).all())
            for assignment in assignments:
                assignment.is_active = False
                session.add(assignment)
            session.flush()
            return [assignment.id for assignment in assignments]

    def create(self, assignment: BudgetAssignment) -> BudgetAssignment:
        with self.session_factory() as session:
            session.add(assignment)
            session.flush()
            session.refresh(assignment)
            session.expunge(assignment)
            return assignment

    def update(self, assignment: BudgetAssignment) -> BudgetAssignment:
        with self.session_factory() as session:
            merged = session.merge(assignment)
            session.flush()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def delete(self, assignment_id: int) -> None:
        with self.session_factory() as session:
            assignment = session.get(BudgetAssignment, assignment_id)
            if assignment:
                session.delete(assignment)
                session.flush()
