"""Budget templates and their subscriber assignments."""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from .clock import utcnow

# Fields copied verbatim when a budget is forked.
BUDGET_CONTENT_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "workout_template_id",
    "nutrition_template_id",
    "nutrition_targets",
    "steps_goal",
    "steps_instructions",
    "supplements",
    "eating_order",
    "eating_rules",
)


class Budget(SQLModel, table=True):
    """A shared prescription template (workout, nutrition, supplements, steps)."""

    __tablename__: ClassVar[str] = "budget"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, max_length=120)
    description: Optional[str] = Field(default=None, max_length=1000)
    workout_template_id: Optional[int] = Field(default=None)
    nutrition_template_id: Optional[int] = Field(default=None)
    nutrition_targets: Optional[dict[str, Any]] = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    steps_goal: Optional[int] = Field(default=None)
    steps_instructions: Optional[str] = Field(default=None, max_length=1000)
    supplements: list[Any] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False, default=list)
    )
    eating_order: Optional[str] = Field(default=None, max_length=1000)
    eating_rules: Optional[str] = Field(default=None, max_length=1000)
    is_public: bool = Field(default=True, nullable=False, index=True)
    owner_id: int = Field(nullable=False, index=True)
    # Set on private forks; points at the budget the fork was copied from.
    forked_from_id: Optional[int] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    def content(self) -> dict[str, Any]:
        """Return a deep copy of the prescription fields."""

        return copy.deepcopy(self.model_dump(include=set(BUDGET_CONTENT_FIELDS)))


class BudgetAssignment(SQLModel, table=True):
    """Links one budget to one subscriber (lead or customer)."""

    __tablename__: ClassVar[str] = "budget_assignment"

    id: Optional[int] = Field(default=None, primary_key=True)
    budget_id: int = Field(foreign_key="budget.id", nullable=False, index=True)
    subscriber_id: int = Field(nullable=False, index=True)
    assigned_at: datetime = Field(default_factory=utcnow, nullable=False)
    is_active: bool = Field(default=True, nullable=False)
