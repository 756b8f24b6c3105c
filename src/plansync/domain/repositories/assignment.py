"""Budget assignment repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.budget import BudgetAssignment


class AssignmentRepository(Protocol):
    """Repository for budget-to-subscriber links."""

    def get_by_id(self, assignment_id: int) -> Optional[BudgetAssignment]:
        ...

    def list_by_budget(self, budget_id: int) -> list[BudgetAssignment]:
        ...

    def list_by_subscriber(self, subscriber_id: int) -> list[BudgetAssignment]:
        ...

    def count_by_budget(
        self, budget_id: int, *, exclude_id: Optional[int] = None, active_only: bool = False
    ) -> int:
        """Count assignments referencing a budget, optionally skipping one."""
        ...

    def deactivate_for_subscriber(self, subscriber_id: int) -> list[int]:
        """Mark every active assignment of the subscriber inactive."""
        ...

    def create(self, assignment: BudgetAssignment) -> BudgetAssignment:
        ...

    def update(self, assignment: BudgetAssignment) -> BudgetAssignment:
        ...

    def delete(self, assignment_id: int) -> None:
        ...
