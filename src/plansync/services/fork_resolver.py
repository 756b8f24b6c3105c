"""Copy-on-write handling for budgets edited from one subscriber's page."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..domain.repositories import PlanStore
from ..errors import ForkRepointFailed, NotFound
from ..logging_config import get_logger
from ..models.budget import Budget, BudgetAssignment
from .context import RequestContext

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class EditTarget:
    """Which budget an edit made through ``assignment_id`` must be applied to."""

    assignment_id: Optional[int]
    budget_id: int
    forked: bool
    source_budget_id: int


def clone_budget(budget: Budget, *, owner_id: int, created_at: datetime) -> Budget:
    """Private deep copy of ``budget`` owned by ``owner_id``."""

    return Budget(
        **budget.content(),
        is_public=False,
        owner_id=owner_id,
        forked_from_id=budget.id,
        created_at=created_at,
    )


class ForkOnWriteResolver:
    """Decides whether an edit may touch a budget in place or needs a fork.

    A budget referenced by other assignments is never edited in place: it is
    cloned into a private budget and only the editing assignment is moved to
    the clone. The clone is committed before the assignment is repointed, so
    a failed repoint leaves a reusable fork (see :meth:`complete_fork`).
    """

    def __init__(self, store: PlanStore):
        self.store = store

    def resolve_edit_target(self, ctx: RequestContext, assignment_id: int) -> EditTarget:
        """Return the budget to edit for ``assignment_id``, forking if shared.

        Raises:
            NotFound: the assignment or its budget does not exist.
            ForkRepointFailed: the fork exists but the assignment still points
                at the shared budget.
        """
        with self.store.transaction() as tx:
            assignment = self._require_assignment(tx, assignment_id)
            budget = tx.budgets.get_by_id(assignment.budget_id)
            if budget is None:
                raise NotFound("budget", assignment.budget_id)

            others = tx.assignments.count_by_budget(
                budget.id, exclude_id=assignment.id, active_only=True
            )
            if others == 0:
                logger.debug(
                    "Budget held exclusively; editing in place",
                    extra={"assignment_id": assignment_id, "budget_id": budget.id},
                )
                return EditTarget(
                    assignment_id=assignment_id,
                    budget_id=budget.id,
                    forked=False,
                    source_budget_id=budget.id,
                )

            fork = tx.budgets.create(
                clone_budget(budget, owner_id=ctx.actor_id, created_at=ctx.clock())
            )

        logger.info(
            "Shared budget forked",
            extra={
                "assignment_id": assignment_id,
                "budget_id": budget.id,
                "fork_budget_id": fork.id,
                "other_assignments": others,
            },
        )
        self._repoint(assignment_id, fork_budget_id=fork.id, source_budget_id=budget.id)
        return EditTarget(
            assignment_id=assignment_id,
            budget_id=fork.id,
            forked=True,
            source_budget_id=budget.id,
        )

    def complete_fork(
        self, ctx: RequestContext, assignment_id: int, fork_budget_id: int
    ) -> EditTarget:
        """Retry the repoint of a fork left behind by :class:`ForkRepointFailed`.

        Safe to call again once the assignment already points at the fork.
        """
        fork = self.store.budgets.get_by_id(fork_budget_id)
        if fork is None:
            raise NotFound("budget", fork_budget_id)
        source_budget_id = fork.forked_from_id or fork.id
        self._repoint(assignment_id, fork_budget_id=fork.id, source_budget_id=source_budget_id)
        logger.info(
            "Fork repoint completed",
            extra={
                "actor_id": ctx.actor_id,
                "assignment_id": assignment_id,
                "fork_budget_id": fork.id,
            },
        )
        return EditTarget(
            assignment_id=assignment_id,
            budget_id=fork.id,
            forked=True,
            source_budget_id=source_budget_id,
        )

    def _repoint(self, assignment_id: int, *, fork_budget_id: int, source_budget_id: int) -> None:
        try:
            with self.store.transaction() as tx:
                assignment = self._require_assignment(tx, assignment_id)
                if assignment.budget_id == fork_budget_id:
                    return
                assignment.budget_id = fork_budget_id
                tx.assignments.update(assignment)
        except (SQLAlchemyError, NotFound) as exc:
            logger.exception(
                "Repoint to fork failed; fork left in place",
                extra={
                    "assignment_id": assignment_id,
                    "fork_budget_id": fork_budget_id,
                    "budget_id": source_budget_id,
                },
            )
            raise ForkRepointFailed(assignment_id, fork_budget_id, source_budget_id) from exc

    @staticmethod
    def _require_assignment(tx: PlanStore, assignment_id: int) -> BudgetAssignment:
        assignment = tx.assignments.get_by_id(assignment_id)
        if assignment is None:
            raise NotFound("assignment", assignment_id)
        return assignment

