"""Engine facade exposed to UI and CLI collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .domain.repositories import PlanStore
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import SQLModelPlanStore
from .logging_config import get_logger
from .models.budget import Budget
from .models.payloads import PlanPayload
from .models.plan import GeneratedPlan, PlanKind
from .services.assignments import (
    AssignmentManager,
    AssignmentResult,
    UnassignImpact,
    UnassignResult,
)
from .services.budget_editing import BudgetEditor, EditOutcome, validate_changes
from .services.context import RequestContext
from .services.fork_resolver import EditTarget, ForkOnWriteResolver
from .services.history import ConsolidatedHistory, HistoryViewEntry, consolidate_report
from .services.integrity import ActiveConflict, find_active_conflicts
from .services.plan_sync import PlanSynchronizer, SyncResult

logger = get_logger(__name__)


@dataclass
class PlanEngine:
    """Single entry point wiring the store to the engine services."""

    store: PlanStore
    config: Optional[BaseConfig] = None
    db_engine: Optional[Engine] = None

    def __post_init__(self) -> None:
        self.assignments = AssignmentManager(self.store)
        self.resolver = ForkOnWriteResolver(self.store)
        self.synchronizer = PlanSynchronizer(self.store)
        self.editor = BudgetEditor(self.store)

    def create_budget(
        self, ctx: RequestContext, *, name: str, is_public: bool = True, **fields: Any
    ) -> Budget:
        values = validate_changes({"name": name, **fields})
        budget = Budget(
            **values, is_public=is_public, owner_id=ctx.actor_id, created_at=ctx.clock()
        )
        return self.store.budgets.create(budget)

    def visible_budgets(self, ctx: RequestContext) -> list[Budget]:
        return self.store.budgets.list_visible(owner_id=ctx.actor_id)

    def assign(self, ctx: RequestContext, subscriber_id: int, budget_id: int) -> AssignmentResult:
        return self.assignments.assign(ctx, subscriber_id, budget_id)

    def preview_unassign(self, assignment_id: int) -> UnassignImpact:
        return self.assignments.preview_unassign(assignment_id)

    def unassign(
        self, ctx: RequestContext, assignment_id: int, *, delete_generated_plans: bool
    ) -> UnassignResult:
        return self.assignments.unassign(
            ctx, assignment_id, delete_generated_plans=delete_generated_plans
        )

    def resolve_edit_target(self, ctx: RequestContext, assignment_id: int) -> EditTarget:
        return self.resolver.resolve_edit_target(ctx, assignment_id)

    def complete_fork(
        self, ctx: RequestContext, assignment_id: int, fork_budget_id: int
    ) -> EditTarget:
        return self.resolver.complete_fork(ctx, assignment_id, fork_budget_id)

    def edit_budget(
        self, ctx: RequestContext, assignment_id: int, changes: Mapping[str, Any]
    ) -> EditOutcome:
        return self.editor.edit_from_assignment(ctx, assignment_id, changes)

    def generate(self, ctx: RequestContext, subscriber_id: int, budget_id: int) -> SyncResult:
        return self.synchronizer.generate(ctx, subscriber_id, budget_id)

    def record_manual_plan(
        self, ctx: RequestContext, subscriber_id: int, payload: PlanPayload, *, description: str = ""
    ) -> GeneratedPlan:
        return self.synchronizer.record_manual_plan(
            ctx, subscriber_id, payload, description=description
        )

    def consolidate_history(self, entries: Iterable[HistoryViewEntry]) -> ConsolidatedHistory:
        report = consolidate_report(entries)
        for entry in report.integrity_violations:
            logger.warning(
                "Second active plan in history",
                extra={"kind": entry.kind.value, "plan_id": entry.id, "budget_id": entry.budget_id},
            )
        return report

    def subscriber_history(
        self, subscriber_id: int, *, kind: Optional[PlanKind] = None
    ) -> ConsolidatedHistory:
        plans = self.store.plans.list_for_subscriber(subscriber_id, kind=kind)
        return self.consolidate_history(HistoryViewEntry.from_plan(plan) for plan in plans)

    def check_integrity(self) -> list[ActiveConflict]:
        return find_active_conflicts(self.store)


def create_plan_engine(config: Optional[BaseConfig] = None) -> PlanEngine:
    """Create the database, schema and services from configuration."""

    if config is None:
        config = BaseConfig()
    engine = create_db_engine(config)
    init_database(engine)
    store = SQLModelPlanStore(create_session_factory(engine))
    logger.debug("Plan engine ready", extra={"database_url": config.DATABASE_URL})
    return PlanEngine(store=store, config=config, db_engine=engine)
