"""SQLModel implementation of the generated plan repository."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ...models.plan import GeneratedPlan, PlanKind
from ..database import SessionFactory


def _newest_first(statement):
    return statement.order_by(
        GeneratedPlan.start_date.desc(),  # type: ignore[attr-defined]
        GeneratedPlan.id.desc(),  # type: ignore[union-attr]
    )


class SQLModelGeneratedPlanRepository:
    """SQLModel-based generated plan repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def _detached(self, session: Session, statement) -> list[GeneratedPlan]:
        plans = list(session.exec(statement).all())
        for plan in plans:
            session.expunge(plan)
        return plans

    def _by_budget(self, budget_id: int, subscriber_id: Optional[int]):
        statement = select(GeneratedPlan).where(GeneratedPlan.budget_id == budget_id)
        if subscriber_id is not None:
            statement = statement.where(GeneratedPlan.subscriber_id == subscriber_id)
        return statement

    def get_by_id(self, plan_id: int) -> Optional[GeneratedPlan]:
        with self.session_factory() as session:
            plan = session.get(GeneratedPlan, plan_id)
            if plan is not None:
                session.expunge(plan)
            return plan

    def list_active(self, subscriber_id: int, kind: PlanKind) -> list[GeneratedPlan]:
        """Active plans of one kind, newest start date first."""
        with self.session_factory() as session:
            statement = _newest_first(
                select(GeneratedPlan)
                .where(GeneratedPlan.subscriber_id == subscriber_id)
                .where(GeneratedPlan.kind == kind)
                .where(GeneratedPlan.is_active == True)  # noqa: E712
            )
            return self._detached(session, statement)

    def list_for_subscriber(
        self, subscriber_id: int, *, kind: Optional[PlanKind] = None
    ) -> list[GeneratedPlan]:
        with self.session_factory() as session:
            statement = select(GeneratedPlan).where(GeneratedPlan.subscriber_id == subscriber_id)
            if kind is not None:
                statement = statement.where(GeneratedPlan.kind == kind)
            return self._detached(session, _newest_first(statement))

    def list_by_budget(
        self, budget_id: int, *, subscriber_id: Optional[int] = None
    ) -> list[GeneratedPlan]:
        with self.session_factory() as session:
            return self._detached(session, _newest_first(self._by_budget(budget_id, subscriber_id)))

    def list_all_active(self) -> list[GeneratedPlan]:
        with self.session_factory() as session:
            statement = (
                select(GeneratedPlan)
                .where(GeneratedPlan.is_active == True)  # noqa: E712
                .order_by(
                    GeneratedPlan.subscriber_id,  # type: ignore[arg-type]
                    GeneratedPlan.kind,  # type: ignore[arg-type]
                    GeneratedPlan.id,  # type: ignore[arg-type]
                )
            )
            return self._detached(session, statement)

    def count_by_budget(self, budget_id: int, *, subscriber_id: Optional[int] = None) -> int:
        with self.session_factory() as session:
            statement = (
                select(func.count())
                .select_from(GeneratedPlan)
                .where(GeneratedPlan.budget_id == budget_id)
            )
            if subscriber_id is not None:
                statement = statement.where(GeneratedPlan.subscriber_id == subscriber_id)
            return int(session.exec(statement).one())

    def create(self, plan: GeneratedPlan) -> GeneratedPlan:
        with self.session_factory() as session:
            session.add(plan)
            session.flush()
            session.refresh(plan)
            session.expunge(plan)
            return plan

    def retire(self, plan_id: int, *, ended_at: datetime) -> GeneratedPlan:
        """Mark a plan inactive and stamp its end date."""
        with self.session_factory() as session:
            plan = session.get(GeneratedPlan, plan_id)
            if plan is None:
                raise LookupError(f"generated plan {plan_id} does not exist")
            plan.is_active = False
            plan.end_date = ended_at
            session.add(plan)
            session.flush()
            session.refresh(plan)
            session.expunge(plan)
            return plan

    def detach_from_budget(self, budget_id: int, *, subscriber_id: Optional[int] = None) -> int:
        """Clear ``budget_id`` on matching plans; returns the row count."""
        with self.session_factory() as session:
            plans = list(session.exec(self._by_budget(budget_id, subscriber_id)).all())
            for plan in plans:
                plan.budget_id = None
                session.add(plan)
            session.flush()
            for plan in plans:
                session.expunge(plan)
            return len(plans)

    def delete_by_budget(self, budget_id: int, *, subscriber_id: Optional[int] = None) -> int:
        """Hard-delete matching plans; returns the row count."""
        with self.session_factory() as session:
            plans = list(session.exec(self._by_budget(budget_id, subscriber_id)).all())
            for plan in plans:
                session.delete(plan)
            session.flush()
            return len(plans)

    def delete(self, plan_id: int) -> None:
        with self.session_factory() as session:
            plan = session.get(GeneratedPlan, plan_id)
            if plan:
                session.delete(plan)
                session.flush()
