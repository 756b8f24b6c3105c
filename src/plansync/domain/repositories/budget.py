"""Budget repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.budget import Budget


class BudgetRepository(Protocol):
    """Repository for managing budget templates."""

    def get_by_id(self, budget_id: int) -> Optional[Budget]:
        """Retrieve a budget by ID."""
        ...

    def list_visible(self, *, owner_id: int) -> list[Budget]:
        """Public budgets plus those owned by ``owner_id``."""
        ...

    def list_forks(self, source_budget_id: int) -> list[Budget]:
        """Private copies made from a budget."""
        ...

    def create(self, budget: Budget) -> Budget:
        """Create a new budget."""
        ...

    def update(self, budget: Budget) -> Budget:
        """Update an existing budget."""
        ...

    def delete(self, budget_id: int) -> None:
        """Delete a budget by ID."""
        ...
