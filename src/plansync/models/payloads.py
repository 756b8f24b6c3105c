"""Kind-specific payloads carried by generated plans."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Union

from .plan import PlanKind

DEFAULT_NUTRITION_TARGETS: dict[str, int] = {
    "calories": 2000,
    "protein": 150,
    "carbs": 200,
    "fat": 65,
    "fiber": 30,
}


@dataclass(slots=True)
class WorkoutPayload:
    """Workout prescription referencing a workout template."""

    template_id: int

    kind = PlanKind.WORKOUT


@dataclass(slots=True)
class NutritionPayload:
    """Macro targets plus eating guidance."""

    template_id: Optional[int] = None
    targets: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_NUTRITION_TARGETS))
    eating_order: Optional[str] = None
    eating_rules: Optional[str] = None

    kind = PlanKind.NUTRITION


@dataclass(slots=True)
class SupplementPayload:
    supplements: list[Any] = field(default_factory=list)

    kind = PlanKind.SUPPLEMENT


@dataclass(slots=True)
class StepsPayload:
    """Daily steps goal."""

    goal: int
    instructions: Optional[str] = None

    kind = PlanKind.STEPS


PlanPayload = Union[WorkoutPayload, NutritionPayload, SupplementPayload, StepsPayload]


def payload_to_dict(payload: PlanPayload) -> dict[str, Any]:
    return asdict(payload)


def payload_from_dict(kind: PlanKind | str, data: dict[str, Any]) -> PlanPayload:
    """Rebuild the typed payload for a stored plan row."""

    kind = PlanKind(kind)
    if kind is PlanKind.WORKOUT:
        return WorkoutPayload(template_id=data["template_id"])
    if kind is PlanKind.NUTRITION:
        return NutritionPayload(
            template_id=data.get("template_id"),
            targets=dict(data.get("targets") or DEFAULT_NUTRITION_TARGETS),
            eating_order=data.get("eating_order"),
            eating_rules=data.get("eating_rules"),
        )
    if kind is PlanKind.SUPPLEMENT:
        return SupplementPayload(supplements=list(data.get("supplements") or []))
    if kind is PlanKind.STEPS:
        return StepsPayload(goal=int(data["goal"]), instructions=data.get("instructions"))
    raise ValueError(f"Unsupported plan kind: {kind!r}")
