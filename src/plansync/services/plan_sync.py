"""Materialize budget templates into per-subscriber generated plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..domain.repositories import PlanStore
from ..errors import NotFound, SyncPartialFailure
from ..logging_config import get_logger
from ..models.budget import Budget
from ..models.payloads import (
    NutritionPayload,
    PlanPayload,
    StepsPayload,
    SupplementPayload,
    WorkoutPayload,
    payload_to_dict,
)
from ..models.plan import GeneratedPlan, PlanKind
from .context import RequestContext

logger = get_logger(__name__)

_KIND_LABELS = {
    PlanKind.WORKOUT: "Workout plan",
    PlanKind.NUTRITION: "Nutrition plan",
    PlanKind.SUPPLEMENT: "Supplement plan",
    PlanKind.STEPS: "Steps plan",
}

_START_DATE_STEP = timedelta(microseconds=1)


@dataclass(frozen=True, slots=True)
class ManualOverrideSkipped:
    """A kind left untouched because the active plan was written by hand."""

    subscriber_id: int
    kind: PlanKind
    plan_id: int


@dataclass(slots=True)
class SyncResult:
    """Outcome of one generate() batch."""

    subscriber_id: int
    budget_id: int
    created: dict[PlanKind, int] = field(default_factory=dict)
    retired: list[int] = field(default_factory=list)
    skipped: list[ManualOverrideSkipped] = field(default_factory=list)

    @property
    def skipped_kinds(self) -> list[PlanKind]:
        return [item.kind for item in self.skipped]


def build_payload(kind: PlanKind, budget: Budget) -> Optional[PlanPayload]:
    """Return the payload ``budget`` prescribes for ``kind``, or None if absent."""

    if kind is PlanKind.WORKOUT:
        if budget.workout_template_id is None:
            return None
        return WorkoutPayload(template_id=budget.workout_template_id)
    if kind is PlanKind.NUTRITION:
        if budget.nutrition_template_id is None and not budget.nutrition_targets:
            return None
        payload = NutritionPayload(
            template_id=budget.nutrition_template_id,
            eating_order=budget.eating_order,
            eating_rules=budget.eating_rules,
        )
        if budget.nutrition_targets:
            payload.targets = dict(budget.nutrition_targets)
        return payload
    if kind is PlanKind.SUPPLEMENT:
        if not budget.supplements:
            return None
        return SupplementPayload(supplements=list(budget.supplements))
    if kind is PlanKind.STEPS:
        if not budget.steps_goal or budget.steps_goal <= 0:
            return None
        return StepsPayload(goal=budget.steps_goal, instructions=budget.steps_instructions)
    raise ValueError(f"Unsupported plan kind: {kind!r}")


def build_payloads(budget: Budget) -> dict[PlanKind, PlanPayload]:
    """All payloads a budget prescribes, in PlanKind order."""

    payloads: dict[PlanKind, PlanPayload] = {}
    for kind in PlanKind:
        payload = build_payload(kind, budget)
        if payload is not None:
            payloads[kind] = payload
    return payloads


def next_start_date(now: datetime, active: list[GeneratedPlan]) -> datetime:
    """Start instant strictly after every active plan's start date."""

    start = now
    for plan in active:
        if plan.start_date >= start:
            start = plan.start_date + _START_DATE_STEP
    return start


def keep_newest_active(tx: PlanStore, subscriber_id: int, kind: PlanKind) -> list[int]:
    """Retire every active plan of one kind except the newest; return retired ids.

    Newest means latest ``start_date``, then highest id. Run after an insert in
    the same transaction: a writer that raced past another sees the committed
    competitor here and only one plan stays active.
    """
    active = tx.plans.list_active(subscriber_id, kind)
    if len(active) < 2:
        return []
    newest, stale = active[0], active[1:]
    for plan in stale:
        tx.plans.retire(plan.id, ended_at=newest.start_date)
    logger.warning(
        "Concurrent active plans settled",
        extra={
            "subscriber_id": subscriber_id,
            "kind": kind.value,
            "plan_id": newest.id,
            "retired_plans": [plan.id for plan in stale],
        },
    )
    return [plan.id for plan in stale]


class PlanSynchronizer:
    """Derives generated plans from a budget for one subscriber.

    Prior synced plans are retired (never rewritten) and replaced by a new
    active version. Plans with no ``budget_id`` are manual overrides and are
    left alone. All kinds in one call commit together.
    """

    def __init__(self, store: PlanStore):
        self.store = store

    def generate(self, ctx: RequestContext, subscriber_id: int, budget_id: int) -> SyncResult:
        """Sync every kind the budget prescribes into the subscriber's plans.

        Raises:
            NotFound: the budget does not exist.
            SyncPartialFailure: a kind could not be written; nothing was changed.
        """
        with self.store.transaction() as tx:
            budget = tx.budgets.get_by_id(budget_id)
            if budget is None:
                raise NotFound("budget", budget_id)

            result = SyncResult(subscriber_id=subscriber_id, budget_id=budget_id)
            now = ctx.clock()
            for kind, payload in build_payloads(budget).items():
                try:
                    self._sync_kind(tx, ctx, budget, subscriber_id, kind, payload, now, result)
                except (SQLAlchemyError, LookupError) as exc:
                    logger.exception(
                        "Plan sync failed; rolling back batch",
                        extra={
                            "subscriber_id": subscriber_id,
                            "budget_id": budget_id,
                            "kind": kind.value,
                        },
                    )
                    raise SyncPartialFailure(subscriber_id, budget_id, kind.value) from exc

        logger.info(
            "Plans synced from budget",
            extra={
                "subscriber_id": subscriber_id,
                "budget_id": budget_id,
                "created_plans": {kind.value: plan_id for kind, plan_id in result.created.items()},
                "retired_plans": result.retired,
                "skipped_kinds": [kind.value for kind in result.skipped_kinds],
            },
        )
        return result

    def _sync_kind(
        self,
        tx: PlanStore,
        ctx: RequestContext,
        budget: Budget,
        subscriber_id: int,
        kind: PlanKind,
        payload: PlanPayload,
        now: datetime,
        result: SyncResult,
    ) -> None:
        active = tx.plans.list_active(subscriber_id, kind)
        manual = next((plan for plan in active if plan.is_manual), None)
        if manual is not None:
            result.skipped.append(
                ManualOverrideSkipped(subscriber_id=subscriber_id, kind=kind, plan_id=manual.id)
            )
            logger.info(
                "Manual plan preserved",
                extra={"subscriber_id": subscriber_id, "kind": kind.value, "plan_id": manual.id},
            )
            return

        start = next_start_date(now, active)
        for plan in active:
            tx.plans.retire(plan.id, ended_at=start)
            result.retired.append(plan.id)

        created = tx.plans.create(
            GeneratedPlan(
                subscriber_id=subscriber_id,
                kind=kind,
                budget_id=budget.id,
                description=f"{_KIND_LABELS[kind]} from budget: {budget.name}",
                payload=payload_to_dict(payload),
                start_date=start,
                is_active=True,
                created_by=ctx.actor_id,
            )
        )
        result.created[kind] = created.id
        result.retired.extend(keep_newest_active(tx, subscriber_id, kind))

    def record_manual_plan(
        self,
        ctx: RequestContext,
        subscriber_id: int,
        payload: PlanPayload,
        *,
        description: str = "",
    ) -> GeneratedPlan:
        """Write an operator-authored plan that later syncs will not replace.

        Every active plan of the payload's kind is retired first, synced or not.
        """
        kind = payload.kind
        with self.store.transaction() as tx:
            active = tx.plans.list_active(subscriber_id, kind)
            start = next_start_date(ctx.clock(), active)
            for plan in active:
                tx.plans.retire(plan.id, ended_at=start)
            created = tx.plans.create(
                GeneratedPlan(
                    subscriber_id=subscriber_id,
                    kind=kind,
                    budget_id=None,
                    description=description or f"{_KIND_LABELS[kind]} (manual)",
                    payload=payload_to_dict(payload),
                    start_date=start,
                    is_active=True,
                    created_by=ctx.actor_id,
                )
            )
            keep_newest_active(tx, subscriber_id, kind)

        logger.info(
            "Manual plan recorded",
            extra={"subscriber_id": subscriber_id, "kind": kind.value, "plan_id": created.id},
        )
        return created
