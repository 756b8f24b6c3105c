"""Store-level check of the single-active-plan invariant."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from ..domain.repositories import PlanStore
from ..logging_config import get_logger
from ..models.plan import PlanKind

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ActiveConflict:
    """More than one active plan for the same subscriber and kind."""

    subscriber_id: int
    kind: PlanKind
    plan_ids: tuple[int, ...]


def find_active_conflicts(store: PlanStore) -> list[ActiveConflict]:
    """Scan all active plans and report every (subscriber, kind) with duplicates."""

    groups: dict[tuple[int, PlanKind], list[int]] = defaultdict(list)
    for plan in store.plans.list_all_active():
        groups[(plan.subscriber_id, PlanKind(plan.kind))].append(plan.id)

    conflicts = [
        ActiveConflict(subscriber_id=subscriber_id, kind=kind, plan_ids=tuple(plan_ids))
        for (subscriber_id, kind), plan_ids in sorted(
            groups.items(), key=lambda item: (item[0][0], item[0][1].value)
        )
        if len(plan_ids) > 1
    ]
    for conflict in conflicts:
        logger.warning(
            "Multiple active plans",
            extra={
                "subscriber_id": conflict.subscriber_id,
                "kind": conflict.kind.value,
                "plan_ids": list(conflict.plan_ids),
            },
        )
    return conflicts
