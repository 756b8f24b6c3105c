"""Tests for history consolidation."""

from __future__ import annotations

import logging
from datetime import date

from plansync.models import PlanKind
from plansync.services.history import (
    HistoryViewEntry,
    consolidate,
    consolidate_report,
    history_key,
)


def _entry(**kwargs) -> HistoryViewEntry:
    kwargs.setdefault("kind", PlanKind.WORKOUT)
    return HistoryViewEntry(**kwargs)


def test_active_duplicate_wins_regardless_of_order():
    inactive = _entry(id=1, is_active=False, description="old")
    active = _entry(id=1, is_active=True, description="new")

    for entries in ([inactive, active], [active, inactive]):
        result = consolidate(entries)
        assert len(result) == 1
        assert result[0].is_active is True
        assert result[0].description == "new"


def test_first_seen_wins_between_equal_status():
    first = _entry(id=5, is_active=False, description="first")
    second = _entry(id=5, is_active=False, description="second")

    assert [e.description for e in consolidate([first, second])] == ["first"]


def test_order_of_first_insertion_is_preserved():
    entries = [
        _entry(id=3, start_date=date(2026, 1, 3)),
        _entry(id=1, start_date=date(2026, 1, 1)),
        _entry(id=3, start_date=date(2026, 1, 3), is_active=True),
        _entry(id=2, start_date=date(2026, 1, 2)),
    ]

    assert [e.id for e in consolidate(entries)] == [3, 1, 2]


def test_fallback_key_uses_budget_and_date():
    a = _entry(budget_id=4, start_date=date(2026, 2, 1))
    b = _entry(budget_id=4, start_date=date(2026, 2, 1), is_active=True)
    c = _entry(start_date=None)

    assert history_key(a) == "4-2026-02-01"
    assert history_key(c) == "no-budget-no-date"
    result = consolidate([a, b, c])
    assert len(result) == 2
    assert result[0].is_active is True


def test_steps_fallback_key_keeps_distinct_targets():
    morning = _entry(kind=PlanKind.STEPS, budget_id=4, start_date=date(2026, 2, 1), target=7000)
    evening = _entry(kind=PlanKind.STEPS, budget_id=4, start_date=date(2026, 2, 1), target=8000)

    assert history_key(morning) == "4-2026-02-01-7000"
    assert len(consolidate([morning, evening])) == 2


def test_only_first_active_is_current_and_extras_are_reported():
    entries = [
        _entry(id=1, is_active=False),
        _entry(id=2, is_active=True),
        _entry(id=3, is_active=True),
        _entry(kind=PlanKind.STEPS, id=4, is_active=True, target=9000),
    ]

    report = consolidate_report(entries)

    assert [(e.id, e.is_current) for e in report.entries] == [
        (1, False),
        (2, True),
        (3, False),
        (4, True),
    ]
    # Data-active rows keep is_active even when not current.
    assert report.entries[2].is_active is True
    assert [e.id for e in report.integrity_violations] == [3]
    assert report.current(PlanKind.STEPS).id == 4


def test_consolidate_is_idempotent():
    entries = [
        _entry(id=1, is_active=False),
        _entry(id=1, is_active=True),
        _entry(budget_id=9, start_date=date(2026, 1, 1)),
        _entry(id=2, is_active=True),
        _entry(kind=PlanKind.STEPS, budget_id=9, start_date=date(2026, 1, 1), target=5000),
        _entry(kind=PlanKind.STEPS, budget_id=9, start_date=date(2026, 1, 1), target=5000,
               is_active=True),
    ]

    once = consolidate(entries)

    assert consolidate(once) == once


def test_consolidate_empty():
    assert consolidate([]) == []


def test_subscriber_history_reads_store_and_logs_violations(
    engine, ctx, budget_factory, plan_factory, caplog
):
    budget = budget_factory(steps_goal=7000)
    engine.assign(ctx, 10, budget.id)
    engine.generate(ctx, 10, budget.id)
    stray = plan_factory(10, PlanKind.STEPS, budget_id=budget.id, payload={"goal": 1})

    with caplog.at_level(logging.WARNING, logger="plansync"):
        report = engine.subscriber_history(10, kind=PlanKind.STEPS)

    assert len(report.entries) == 3
    current = report.current(PlanKind.STEPS)
    assert current.target == 7000
    assert current.start_date == ctx.now.date()
    assert [e.id for e in report.integrity_violations] == [stray.id]
    assert "Second active plan in history" in caplog.text
