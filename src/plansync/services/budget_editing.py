"""Edit a budget and push the change to every subscriber still on it."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..domain.repositories import PlanStore
from ..errors import NotFound
from ..logging_config import get_logger
from ..models.budget import BUDGET_CONTENT_FIELDS, Budget
from .context import RequestContext
from .fork_resolver import EditTarget, ForkOnWriteResolver
from .plan_sync import PlanSynchronizer, SyncResult

logger = get_logger(__name__)


@dataclass(slots=True)
class EditOutcome:
    target: EditTarget
    budget: Budget
    syncs: list[SyncResult] = field(default_factory=list)


def validate_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Reject unknown fields and impossible values; return a private copy."""

    unknown = set(changes) - set(BUDGET_CONTENT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown budget fields: {sorted(unknown)}")
    if "name" in changes and not (changes["name"] or "").strip():
        raise ValueError("Budget name cannot be empty")
    steps_goal = changes.get("steps_goal")
    if steps_goal is not None and steps_goal < 0:
        raise ValueError("steps_goal cannot be negative")
    if "supplements" in changes and changes["supplements"] is None:
        changes = {**changes, "supplements": []}
    return copy.deepcopy(dict(changes))


class BudgetEditor:
    """Applies budget edits without leaking them to other subscribers."""

    def __init__(self, store: PlanStore):
        self.store = store
        self.resolver = ForkOnWriteResolver(store)
        self.synchronizer = PlanSynchronizer(store)

    def edit_from_assignment(
        self, ctx: RequestContext, assignment_id: int, changes: Mapping[str, Any]
    ) -> EditOutcome:
        """Edit the budget behind ``assignment_id`` as seen from that subscriber.

        Shared budgets are forked first; afterwards every subscriber still on
        the edited budget is re-synced.
        """
        values = validate_changes(changes)
        target = self.resolver.resolve_edit_target(ctx, assignment_id)
        budget = self._persist(target.budget_id, values)
        syncs = self.resync_budget(ctx, target.budget_id)
        logger.info(
            "Budget edited from assignment",
            extra={
                "assignment_id": assignment_id,
                "budget_id": target.budget_id,
                "forked": target.forked,
                "fields": sorted(values),
                "resynced_subscribers": [sync.subscriber_id for sync in syncs],
            },
        )
        return EditOutcome(target=target, budget=budget, syncs=syncs)

    def edit_template(
        self, ctx: RequestContext, budget_id: int, changes: Mapping[str, Any]
    ) -> EditOutcome:
        """Edit a budget directly; only allowed while at most one active assignment uses it."""

        values = validate_changes(changes)
        users = self.store.assignments.count_by_budget(budget_id, active_only=True)
        if users > 1:
            raise ValueError(
                f"Budget {budget_id} is shared by {users} active assignments; "
                "edit it from a subscriber's assignment instead"
            )
        budget = self._persist(budget_id, values)
        syncs = self.resync_budget(ctx, budget_id)
        target = EditTarget(
            assignment_id=None, budget_id=budget_id, forked=False, source_budget_id=budget_id
        )
        return EditOutcome(target=target, budget=budget, syncs=syncs)

    def resync_budget(self, ctx: RequestContext, budget_id: int) -> list[SyncResult]:
        """Run generate() for each subscriber whose assignment points at ``budget_id``."""

        syncs: list[SyncResult] = []
        seen: set[int] = set()
        for assignment in self.store.assignments.list_by_budget(budget_id):
            if not assignment.is_active or assignment.subscriber_id in seen:
                continue
            seen.add(assignment.subscriber_id)
            syncs.append(self.synchronizer.generate(ctx, assignment.subscriber_id, budget_id))
        return syncs

    def _persist(self, budget_id: int, values: dict[str, Any]) -> Budget:
        with self.store.transaction() as tx:
            budget = tx.budgets.get_by_id(budget_id)
            if budget is None:
                raise NotFound("budget", budget_id)
            for name, value in values.items():
                setattr(budget, name, value)
            return tx.budgets.update(budget)
