"""Generated plan rows materialized from budgets."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from .clock import utcnow

if TYPE_CHECKING:  # pragma: no cover
    from .payloads import PlanPayload


class PlanKind(str, Enum):
    """The four plan families a budget can prescribe."""

    WORKOUT = "workout"
    NUTRITION = "nutrition"
    SUPPLEMENT = "supplement"
    STEPS = "steps"


class GeneratedPlan(SQLModel, table=True):
    """A versioned, subscriber-specific plan of one kind.

    Rows are never rewritten in place: retiring a plan sets ``is_active`` to
    false and stamps ``end_date``. A plan whose ``budget_id`` is null was
    written by an operator (or detached from its budget) and is not replaced
    by synchronization.
    """

    __tablename__: ClassVar[str] = "generated_plan"

    id: Optional[int] = Field(default=None, primary_key=True)
    subscriber_id: int = Field(nullable=False, index=True)
    kind: PlanKind = Field(nullable=False, index=True)
    budget_id: Optional[int] = Field(default=None, foreign_key="budget.id", index=True)
    description: str = Field(default="", max_length=255)
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    start_date: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    end_date: Optional[datetime] = Field(default=None)
    is_active: bool = Field(default=True, nullable=False, index=True)
    created_by: Optional[int] = Field(default=None)

    @property
    def is_manual(self) -> bool:
        return self.budget_id is None

    def typed_payload(self) -> "PlanPayload":
        from .payloads import payload_from_dict

        return payload_from_dict(self.kind, self.payload)
