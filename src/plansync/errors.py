"""Exceptions raised by the plan engine."""

from __future__ import annotations

from typing import Optional


class PlanSyncError(Exception):
    """Base class for engine errors."""


class NotFound(PlanSyncError):
    """A referenced budget, assignment or generated plan does not exist."""

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ForkRepointFailed(PlanSyncError):
    """The private fork was created but the assignment could not be repointed.

    ``fork_budget_id`` names the committed fork so a retry can reuse it.
    """

    def __init__(self, assignment_id: int, fork_budget_id: int, source_budget_id: int):
        super().__init__(
            f"assignment {assignment_id}: fork {fork_budget_id} of budget "
            f"{source_budget_id} created but repoint failed"
        )
        self.assignment_id = assignment_id
        self.fork_budget_id = fork_budget_id
        self.source_budget_id = source_budget_id


class SyncPartialFailure(PlanSyncError):
    """A kind upsert inside a generate batch failed; the batch was rolled back."""

    def __init__(self, subscriber_id: int, budget_id: int, kind: Optional[str] = None):
        detail = f" (kind={kind})" if kind else ""
        super().__init__(
            f"plan sync failed for subscriber {subscriber_id} / budget {budget_id}{detail}; "
            "no plans were changed"
        )
        self.subscriber_id = subscriber_id
        self.budget_id = budget_id
        self.kind = kind
