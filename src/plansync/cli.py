"""Command line interface for PlanSync."""

from __future__ import annotations

from typing import Optional

import click

from .config import BaseConfig
from .engine import PlanEngine, create_plan_engine
from .errors import ForkRepointFailed, PlanSyncError
from .logging_config import setup_logging
from .models.plan import PlanKind
from .services.context import RequestContext
from .services.plan_sync import SyncResult

KIND_CHOICE = click.Choice([kind.value for kind in PlanKind])


class CliState:
    """Lazily built engine shared by the commands of one invocation."""

    def __init__(self, actor_id: int, database_url: Optional[str]):
        self.actor_id = actor_id
        self.database_url = database_url
        self._engine: Optional[PlanEngine] = None

    @property
    def engine(self) -> PlanEngine:
        if self._engine is None:
            config = BaseConfig()
            if self.database_url:
                config.DATABASE_URL = self.database_url
            setup_logging(config)
            self._engine = create_plan_engine(config)
        return self._engine

    def request(self) -> RequestContext:
        return RequestContext(actor_id=self.actor_id)


pass_state = click.make_pass_decorator(CliState)


def _fail(exc: PlanSyncError) -> click.ClickException:
    return click.ClickException(str(exc))


@click.group()
@click.option("--actor", "actor_id", type=int, envvar="PLANSYNC_ACTOR_ID", default=1, show_default=True,
              help="Operator id recorded on writes.")
@click.option("--database-url", envvar="PLANSYNC_DATABASE_URL", default=None,
              help="SQLAlchemy URL; defaults to the SQLite file in the data dir.")
@click.pass_context
def main(ctx: click.Context, actor_id: int, database_url: Optional[str]) -> None:
    """Budget template propagation and plan history tools."""

    ctx.obj = CliState(actor_id=actor_id, database_url=database_url)


@main.command("init-db")
@pass_state
def init_db(state: CliState) -> None:
    """Create the database schema."""

    engine = state.engine
    click.echo(f"Database ready: {engine.config.DATABASE_URL if engine.config else ''}")


@main.command("create-budget")
@click.option("--name", required=True)
@click.option("--steps-goal", type=int, default=None)
@click.option("--steps-instructions", default=None)
@click.option("--workout-template", "workout_template_id", type=int, default=None)
@click.option("--nutrition-template", "nutrition_template_id", type=int, default=None)
@click.option("--supplement", "supplements", multiple=True, help="Repeat for each supplement.")
@click.option("--private", is_flag=True, default=False, help="Hide from shared listings.")
@pass_state
def create_budget(
    state: CliState,
    name: str,
    steps_goal: Optional[int],
    steps_instructions: Optional[str],
    workout_template_id: Optional[int],
    nutrition_template_id: Optional[int],
    supplements: tuple[str, ...],
    private: bool,
) -> None:
    """Create a budget template."""

    try:
        budget = state.engine.create_budget(
            state.request(),
            name=name,
            is_public=not private,
            steps_goal=steps_goal,
            steps_instructions=steps_instructions,
            workout_template_id=workout_template_id,
            nutrition_template_id=nutrition_template_id,
            supplements=list(supplements),
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    click.echo(f"Budget {budget.id} created: {budget.name}")


@main.command()
@click.argument("subscriber_id", type=int)
@click.argument("budget_id", type=int)
@pass_state
def assign(state: CliState, subscriber_id: int, budget_id: int) -> None:
    """Assign BUDGET_ID to SUBSCRIBER_ID and generate plans."""

    try:
        result = state.engine.assign(state.request(), subscriber_id, budget_id)
    except PlanSyncError as exc:
        raise _fail(exc) from exc
    click.echo(f"Assignment {result.assignment.id} created")
    _echo_sync(result.sync)


@main.command()
@click.argument("subscriber_id", type=int)
@click.argument("budget_id", type=int)
@pass_state
def sync(state: CliState, subscriber_id: int, budget_id: int) -> None:
    """Regenerate SUBSCRIBER_ID's plans from BUDGET_ID."""

    try:
        result = state.engine.generate(state.request(), subscriber_id, budget_id)
    except PlanSyncError as exc:
        raise _fail(exc) from exc
    _echo_sync(result)


@main.command("preview-unassign")
@click.argument("assignment_id", type=int)
@pass_state
def preview_unassign(state: CliState, assignment_id: int) -> None:
    """Show how many plans an unassignment would touch."""

    try:
        impact = state.engine.preview_unassign(assignment_id)
    except PlanSyncError as exc:
        raise _fail(exc) from exc
    click.echo(f"{impact.plan_count} plan(s) linked to budget {impact.budget_id}")
    for kind, count in sorted(impact.counts_by_kind.items(), key=lambda item: item[0].value):
        click.echo(f"  {kind.value}: {count}")


@main.command()
@click.argument("assignment_id", type=int)
@click.option("--delete-plans/--detach-plans", "delete_plans", required=True,
              help="Delete the generated plans or keep them without a budget.")
@click.option("--yes", is_flag=True, default=False, help="Skip the confirmation prompt.")
@pass_state
def unassign(state: CliState, assignment_id: int, delete_plans: bool, yes: bool) -> None:
    """Remove an assignment."""

    engine = state.engine
    try:
        impact = engine.preview_unassign(assignment_id)
        if delete_plans and impact.plan_count and not yes:
            click.confirm(f"Delete {impact.plan_count} generated plan(s)?", abort=True)
        result = engine.unassign(
            state.request(), assignment_id, delete_generated_plans=delete_plans
        )
    except PlanSyncError as exc:
        raise _fail(exc) from exc
    click.echo(
        f"Assignment {result.assignment_id} removed "
        f"(deleted={result.plans_deleted}, detached={result.plans_detached})"
    )


@main.command("edit-budget")
@click.argument("assignment_id", type=int)
@click.option("--name", default=None)
@click.option("--steps-goal", type=int, default=None)
@click.option("--steps-instructions", default=None)
@click.option("--fork-id", type=int, default=None, help="Finish a fork whose repoint failed.")
@pass_state
def edit_budget(
    state: CliState,
    assignment_id: int,
    name: Optional[str],
    steps_goal: Optional[int],
    steps_instructions: Optional[str],
    fork_id: Optional[int],
) -> None:
    """Edit the budget behind ASSIGNMENT_ID without affecting other subscribers."""

    changes = {
        key: value
        for key, value in {
            "name": name,
            "steps_goal": steps_goal,
            "steps_instructions": steps_instructions,
        }.items()
        if value is not None
    }
    if not changes:
        raise click.UsageError("Nothing to change.")
    engine = state.engine
    request = state.request()
    try:
        if fork_id is not None:
            engine.complete_fork(request, assignment_id, fork_id)
        outcome = engine.edit_budget(request, assignment_id, changes)
    except ForkRepointFailed as exc:
        raise click.ClickException(
            f"{exc}. Retry with --fork-id {exc.fork_budget_id}"
        ) from exc
    except PlanSyncError as exc:
        raise _fail(exc) from exc
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    verb = "Forked into" if outcome.target.forked else "Updated"
    click.echo(f"{verb} budget {outcome.target.budget_id}")
    for result in outcome.syncs:
        _echo_sync(result)


@main.command()
@click.argument("subscriber_id", type=int)
@click.option("--kind", type=KIND_CHOICE, default=None)
@pass_state
def history(state: CliState, subscriber_id: int, kind: Optional[str]) -> None:
    """Print a subscriber's consolidated plan history."""

    report = state.engine.subscriber_history(
        subscriber_id, kind=PlanKind(kind) if kind else None
    )
    if not report.entries:
        click.echo("No plans.")
        return
    for entry in report.entries:
        marker = "*" if entry.is_current else " "
        started = entry.start_date.isoformat() if entry.start_date else "-"
        ended = entry.end_date.isoformat() if entry.end_date else "-"
        click.echo(
            f"{marker} {entry.kind.value:<10} #{entry.id} budget={entry.budget_id} "
            f"{started}..{ended} {entry.description}"
        )
    for entry in report.integrity_violations:
        click.echo(f"! extra active {entry.kind.value} plan #{entry.id}", err=True)


@main.command("check-integrity")
@pass_state
def check_integrity(state: CliState) -> None:
    """Exit non-zero if any subscriber has two active plans of one kind."""

    conflicts = state.engine.check_integrity()
    if not conflicts:
        click.echo("OK")
        return
    for conflict in conflicts:
        ids = ", ".join(str(plan_id) for plan_id in conflict.plan_ids)
        click.echo(f"subscriber {conflict.subscriber_id} {conflict.kind.value}: {ids}")
    raise SystemExit(1)


def _echo_sync(result: SyncResult) -> None:
    for kind, plan_id in result.created.items():
        click.echo(f"  {kind.value}: plan {plan_id}")
    for skipped in result.skipped:
        click.echo(f"  {skipped.kind.value}: kept manual plan {skipped.plan_id}")


if __name__ == "__main__":  # pragma: no cover
    main()
