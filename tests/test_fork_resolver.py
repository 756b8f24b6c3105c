"""Tests for copy-on-write budget edits."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from plansync.errors import ForkRepointFailed, NotFound
from plansync.infra.repositories import SQLModelAssignmentRepository
from plansync.services.fork_resolver import ForkOnWriteResolver


def test_exclusive_budget_is_edited_in_place(engine, ctx, budget_factory):
    budget = budget_factory()
    assignment = engine.assign(ctx, 10, budget.id).assignment

    target = ForkOnWriteResolver(engine.store).resolve_edit_target(ctx, assignment.id)

    assert target.forked is False
    assert target.budget_id == budget.id
    assert target.source_budget_id == budget.id
    assert engine.store.budgets.list_forks(budget.id) == []


def test_shared_budget_is_forked_and_assignment_repointed(engine, ctx, budget_factory):
    budget = budget_factory(supplements=[{"name": "Vitamin D", "dose": "2000IU"}])
    mine = engine.assign(ctx, 10, budget.id).assignment
    theirs = engine.assign(ctx, 20, budget.id).assignment

    target = ForkOnWriteResolver(engine.store).resolve_edit_target(ctx, mine.id)

    assert target.forked is True
    assert target.budget_id != budget.id
    assert target.source_budget_id == budget.id
    fork = engine.store.budgets.get_by_id(target.budget_id)
    assert fork.is_public is False
    assert fork.forked_from_id == budget.id
    assert fork.owner_id == ctx.actor_id
    assert fork.content() == budget.content()
    assert engine.store.assignments.get_by_id(mine.id).budget_id == fork.id
    assert engine.store.assignments.get_by_id(theirs.id).budget_id == budget.id


def test_fork_is_hidden_from_other_coaches(engine, ctx, budget_factory):
    budget = budget_factory()
    mine = engine.assign(ctx, 10, budget.id).assignment
    engine.assign(ctx, 20, budget.id)

    target = engine.resolve_edit_target(ctx, mine.id)

    other_coach = {b.id for b in engine.store.budgets.list_visible(owner_id=99)}
    own = {b.id for b in engine.store.budgets.list_visible(owner_id=ctx.actor_id)}
    assert budget.id in other_coach
    assert target.budget_id not in other_coach
    assert target.budget_id in own


def test_missing_assignment_raises_not_found(engine, ctx):
    with pytest.raises(NotFound) as excinfo:
        engine.resolve_edit_target(ctx, 404)

    assert excinfo.value.entity == "assignment"


def test_failed_repoint_reports_fork_and_retry_reuses_it(engine, ctx, budget_factory, monkeypatch):
    budget = budget_factory()
    mine = engine.assign(ctx, 10, budget.id).assignment
    engine.assign(ctx, 20, budget.id)

    original_update = SQLModelAssignmentRepository.update

    def failing_update(self, assignment):
        raise OperationalError("UPDATE budget_assignment", {}, Exception("database is locked"))

    monkeypatch.setattr(SQLModelAssignmentRepository, "update", failing_update)
    with pytest.raises(ForkRepointFailed) as excinfo:
        engine.resolve_edit_target(ctx, mine.id)

    error = excinfo.value
    assert error.assignment_id == mine.id
    assert error.source_budget_id == budget.id
    # The fork survived; the assignment did not move.
    assert engine.store.budgets.get_by_id(error.fork_budget_id) is not None
    assert engine.store.assignments.get_by_id(mine.id).budget_id == budget.id

    monkeypatch.setattr(SQLModelAssignmentRepository, "update", original_update)
    target = engine.complete_fork(ctx, mine.id, error.fork_budget_id)
    again = engine.complete_fork(ctx, mine.id, error.fork_budget_id)

    assert target == again
    assert target.budget_id == error.fork_budget_id
    assert target.source_budget_id == budget.id
    assert engine.store.assignments.get_by_id(mine.id).budget_id == error.fork_budget_id
    assert len(engine.store.budgets.list_forks(budget.id)) == 1


def test_forked_assignment_is_exclusive_afterwards(engine, ctx, budget_factory):
    budget = budget_factory()
    mine = engine.assign(ctx, 10, budget.id).assignment
    engine.assign(ctx, 20, budget.id)

    first = engine.resolve_edit_target(ctx, mine.id)
    second = engine.resolve_edit_target(ctx, mine.id)

    assert first.forked is True
    assert second.forked is False
    assert second.budget_id == first.budget_id


def test_inactive_assignment_does_not_force_a_fork(engine, ctx, budget_factory):
    old = budget_factory("Old")
    new = budget_factory("New")
    engine.assign(ctx, 10, old.id)
    engine.assign(ctx, 10, new.id)
    theirs = engine.assign(ctx, 20, old.id).assignment

    target = engine.resolve_edit_target(ctx, theirs.id)

    assert target.forked is False
    assert target.budget_id == old.id
