"""Unit tests for repository implementations."""

from __future__ import annotations

from datetime import datetime

import pytest

from plansync.models import Budget, BudgetAssignment, GeneratedPlan, PlanKind


def test_budget_repository_crud(store):
    repo = store.budgets

    created = repo.create(Budget(name="Bulk", owner_id=1, supplements=["Creatine"]))
    assert created.id is not None

    fetched = repo.get_by_id(created.id)
    assert fetched.name == "Bulk"
    assert fetched.supplements == ["Creatine"]

    fetched.nutrition_targets = {"calories": 3000}
    updated = repo.update(fetched)
    assert repo.get_by_id(created.id).nutrition_targets == {"calories": 3000}
    assert updated.id == created.id

    repo.delete(created.id)
    assert repo.get_by_id(created.id) is None


def test_list_visible_filters_private_budgets(store):
    public = store.budgets.create(Budget(name="A", owner_id=1))
    mine = store.budgets.create(Budget(name="B", owner_id=2, is_public=False))
    store.budgets.create(Budget(name="C", owner_id=3, is_public=False))

    assert [b.id for b in store.budgets.list_visible(owner_id=2)] == [public.id, mine.id]


def test_assignment_count_and_deactivation(store):
    budget = store.budgets.create(Budget(name="Shared", owner_id=1))
    a = store.assignments.create(BudgetAssignment(budget_id=budget.id, subscriber_id=1))
    store.assignments.create(BudgetAssignment(budget_id=budget.id, subscriber_id=2))

    assert store.assignments.count_by_budget(budget.id) == 2
    assert store.assignments.count_by_budget(budget.id, exclude_id=a.id) == 1

    assert store.assignments.deactivate_for_subscriber(1) == [a.id]
    assert store.assignments.get_by_id(a.id).is_active is False
    assert store.assignments.count_by_budget(budget.id) == 2
    assert store.assignments.count_by_budget(budget.id, active_only=True) == 1


def test_plan_repository_retire_and_detach(store):
    budget = store.budgets.create(Budget(name="Steps", owner_id=1, steps_goal=5000))
    plan = store.plans.create(
        GeneratedPlan(subscriber_id=7, kind=PlanKind.STEPS, budget_id=budget.id, payload={"goal": 5000})
    )

    ended = datetime(2026, 4, 1)
    retired = store.plans.retire(plan.id, ended_at=ended)
    assert retired.is_active is False
    assert retired.end_date == ended

    assert store.plans.detach_from_budget(budget.id, subscriber_id=7) == 1
    assert store.plans.get_by_id(plan.id).budget_id is None
    assert store.plans.count_by_budget(budget.id) == 0

    with pytest.raises(LookupError):
        store.plans.retire(999, ended_at=ended)


def test_transaction_rolls_back_all_writes(store):
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            budget = tx.budgets.create(Budget(name="Temp", owner_id=1))
            tx.assignments.create(BudgetAssignment(budget_id=budget.id, subscriber_id=1))
            raise RuntimeError("abort")

    assert store.budgets.list_visible(owner_id=1) == []
    assert store.assignments.list_by_subscriber(1) == []


def test_transaction_rolls_back_on_interrupt(store):
    with pytest.raises(KeyboardInterrupt):
        with store.transaction() as tx:
            tx.budgets.create(Budget(name="Abandoned", owner_id=1))
            raise KeyboardInterrupt

    assert store.budgets.list_visible(owner_id=1) == []


def test_nested_transaction_joins_outer(store):
    with store.transaction() as outer:
        with outer.transaction() as inner:
            assert inner is outer
            inner.budgets.create(Budget(name="Joined", owner_id=1))

    assert [b.name for b in store.budgets.list_visible(owner_id=1)] == ["Joined"]
