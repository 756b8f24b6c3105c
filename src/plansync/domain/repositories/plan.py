"""Generated plan repository protocol."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ...models.plan import GeneratedPlan, PlanKind


class GeneratedPlanRepository(Protocol):
    """Repository for versioned subscriber plans."""

    def get_by_id(self, plan_id: int) -> Optional[GeneratedPlan]:
        ...

    def list_active(self, subscriber_id: int, kind: PlanKind) -> list[GeneratedPlan]:
        """Active plans of one kind, newest start date first."""
        ...

    def list_for_subscriber(
        self, subscriber_id: int, *, kind: Optional[PlanKind] = None
    ) -> list[GeneratedPlan]:
        """All plans of a subscriber, newest start date first."""
        ...

    def list_by_budget(
        self, budget_id: int, *, subscriber_id: Optional[int] = None
    ) -> list[GeneratedPlan]:
        ...

    def list_all_active(self) -> list[GeneratedPlan]:
        ...

    def count_by_budget(self, budget_id: int, *, subscriber_id: Optional[int] = None) -> int:
        ...

    def create(self, plan: GeneratedPlan) -> GeneratedPlan:
        ...

    def retire(self, plan_id: int, *, ended_at: datetime) -> GeneratedPlan:
        """Mark a plan inactive and stamp its end date."""
        ...

    def detach_from_budget(self, budget_id: int, *, subscriber_id: Optional[int] = None) -> int:
        """Clear ``budget_id`` on matching plans; returns the row count."""
        ...

    def delete_by_budget(self, budget_id: int, *, subscriber_id: Optional[int] = None) -> int:
        """Hard-delete matching plans; returns the row count."""
        ...

    def delete(self, plan_id: int) -> None:
        ...
