"""Creating and removing budget assignments."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from ..domain.repositories import PlanStore
from ..errors import NotFound
from ..logging_config import get_logger
from ..models.budget import Budget, BudgetAssignment
from ..models.plan import PlanKind
from .budget_editing import validate_changes
from .context import RequestContext
from .plan_sync import PlanSynchronizer, SyncResult

logger = get_logger(__name__)


@dataclass(slots=True)
class AssignmentResult:
    assignment: BudgetAssignment
    sync: SyncResult


@dataclass(slots=True)
class UnassignImpact:
    """Plans an unassignment would delete or detach."""

    assignment_id: int
    budget_id: int
    subscriber_id: int
    counts_by_kind: dict[PlanKind, int] = field(default_factory=dict)

    @property
    def plan_count(self) -> int:
        return sum(self.counts_by_kind.values())


@dataclass(slots=True)
class UnassignResult:
    assignment_id: int
    budget_id: int
    subscriber_id: int
    plans_deleted: int = 0
    plans_detached: int = 0


class AssignmentManager:
    """Links budgets to subscribers and cleans up when the link is removed.

    Destructive calls act immediately; callers that want a confirmation step
    should show :meth:`preview_unassign` first.
    """

    def __init__(self, store: PlanStore):
        self.store = store

    def assign(self, ctx: RequestContext, subscriber_id: int, budget_id: int) -> AssignmentResult:
        """Assign a budget and generate the subscriber's plans from it.

        The subscriber's previously active assignments are deactivated, so
        later edits of their old budgets no longer re-sync this subscriber.
        The assignment and the generated plans commit together.
        """
        with self.store.transaction() as tx:
            if tx.budgets.get_by_id(budget_id) is None:
                raise NotFound("budget", budget_id)
            replaced = tx.assignments.deactivate_for_subscriber(subscriber_id)
            assignment = tx.assignments.create(
                BudgetAssignment(
                    budget_id=budget_id,
                    subscriber_id=subscriber_id,
                    assigned_at=ctx.clock(),
                    is_active=True,
                )
            )
            sync = PlanSynchronizer(tx).generate(ctx, subscriber_id, budget_id)

        logger.info(
            "Budget assigned",
            extra={
                "assignment_id": assignment.id,
                "budget_id": budget_id,
                "subscriber_id": subscriber_id,
                "replaced_assignments": replaced,
            },
        )
        return AssignmentResult(assignment=assignment, sync=sync)

    def create_private_budget(
        self,
        ctx: RequestContext,
        subscriber_id: int,
        *,
        name: str,
        **fields: Any,
    ) -> AssignmentResult:
        """Create a budget visible only through this subscriber and assign it."""

        values = validate_changes({"name": name, **fields})
        with self.store.transaction() as tx:
            budget = tx.budgets.create(
                Budget(
                    **values,
                    is_public=False,
                    owner_id=ctx.actor_id,
                    created_at=ctx.clock(),
                )
            )
            return AssignmentManager(tx).assign(ctx, subscriber_id, budget.id)

    def preview_unassign(self, assignment_id: int) -> UnassignImpact:
        """Count the generated plans an unassignment would touch."""

        assignment = self.store.assignments.get_by_id(assignment_id)
        if assignment is None:
            raise NotFound("assignment", assignment_id)
        plans = self.store.plans.list_by_budget(
            assignment.budget_id, subscriber_id=assignment.subscriber_id
        )
        return UnassignImpact(
            assignment_id=assignment_id,
            budget_id=assignment.budget_id,
            subscriber_id=assignment.subscriber_id,
            counts_by_kind=dict(Counter(plan.kind for plan in plans)),
        )

    def unassign(
        self, ctx: RequestContext, assignment_id: int, *, delete_generated_plans: bool
    ) -> UnassignResult:
        """Remove an assignment, deleting or detaching the plans it produced.

        With ``delete_generated_plans`` the subscriber's plans for that budget
        are hard-deleted; otherwise their ``budget_id`` is cleared and they stay
        in history. The assignment row is deleted either way.
        """
        with self.store.transaction() as tx:
            assignment = tx.assignments.get_by_id(assignment_id)
            if assignment is None:
                raise NotFound("assignment", assignment_id)

            result = UnassignResult(
                assignment_id=assignment_id,
                budget_id=assignment.budget_id,
                subscriber_id=assignment.subscriber_id,
            )
            if delete_generated_plans:
                result.plans_deleted = tx.plans.delete_by_budget(
                    assignment.budget_id, subscriber_id=assignment.subscriber_id
                )
            else:
                result.plans_detached = tx.plans.detach_from_budget(
                    assignment.budget_id, subscriber_id=assignment.subscriber_id
                )
            tx.assignments.delete(assignment_id)

        logger.info(
            "Budget unassigned",
            extra={
                "actor_id": ctx.actor_id,
                "assignment_id": assignment_id,
                "budget_id": result.budget_id,
                "subscriber_id": result.subscriber_id,
                "plans_deleted": result.plans_deleted,
                "plans_detached": result.plans_detached,
            },
        )
        return result

    def delete_budget(
        self, ctx: RequestContext, budget_id: int, *, delete_generated_plans: bool
    ) -> int:
        """Delete an unassigned budget and delete or detach its plans.

        Returns the number of plans deleted or detached.
        """
        with self.store.transaction() as tx:
            if tx.budgets.get_by_id(budget_id) is None:
                raise NotFound("budget", budget_id)
            remaining = tx.assignments.count_by_budget(budget_id)
            if remaining:
                raise ValueError(
                    f"Budget {budget_id} is still assigned to {remaining} subscriber(s)"
                )
            if delete_generated_plans:
                touched = tx.plans.delete_by_budget(budget_id)
            else:
                touched = tx.plans.detach_from_budget(budget_id)
            tx.budgets.delete(budget_id)

        logger.info(
            "Budget deleted",
            extra={
                "actor_id": ctx.actor_id,
                "budget_id": budget_id,
                "plans_touched": touched,
                "delete_plans": delete_generated_plans,
            },
        )
        return touched
