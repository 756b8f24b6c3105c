"""SQLModel table exports."""

from .budget import Budget, BudgetAssignment
from .payloads import (
    NutritionPayload,
    PlanPayload,
    StepsPayload,
    SupplementPayload,
    WorkoutPayload,
    payload_from_dict,
)
from .plan import GeneratedPlan, PlanKind

__all__ = [
    "Budget",
    "BudgetAssignment",
    "GeneratedPlan",
    "PlanKind",
    "PlanPayload",
    "WorkoutPayload",
    "NutritionPayload",
    "SupplementPayload",
    "StepsPayload",
    "payload_from_dict",
]
