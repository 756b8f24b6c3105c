"""Read-side deduplication and repair of plan history for display.

Nothing here touches the store. Entries are grouped per plan kind, so a mixed
list behaves like one consolidation per kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Iterable, Optional

from ..models.plan import GeneratedPlan, PlanKind


@dataclass(slots=True)
class HistoryViewEntry:
    """One row of a subscriber's plan history as rendered.

    ``id`` is absent for legacy rows that were never stored as plans.
    ``is_current`` is derived by :func:`consolidate`.
    """

    kind: PlanKind
    id: Optional[int] = None
    budget_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = False
    target: Optional[int] = None
    description: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    is_current: bool = False

    @classmethod
    def from_plan(cls, plan: GeneratedPlan) -> "HistoryViewEntry":
        target = plan.payload.get("goal") if plan.kind is PlanKind.STEPS else None
        return cls(
            kind=PlanKind(plan.kind),
            id=plan.id,
            budget_id=plan.budget_id,
            start_date=plan.start_date.date() if plan.start_date else None,
            end_date=plan.end_date.date() if plan.end_date else None,
            is_active=plan.is_active,
            target=target,
            description=plan.description,
            payload=dict(plan.payload),
        )


@dataclass(slots=True)
class ConsolidatedHistory:
    entries: list[HistoryViewEntry]
    # Active rows that lost the "current" slot to an earlier active row.
    integrity_violations: list[HistoryViewEntry] = field(default_factory=list)

    def current(self, kind: PlanKind) -> Optional[HistoryViewEntry]:
        return next(
            (entry for entry in self.entries if entry.kind is kind and entry.is_current), None
        )


def history_key(entry: HistoryViewEntry) -> str:
    """Dedup key: the plan id, else budget + start date (+ target for steps)."""

    if entry.id is not None:
        return str(entry.id)
    budget_part = entry.budget_id if entry.budget_id is not None else "no-budget"
    date_part = entry.start_date.isoformat() if entry.start_date else "no-date"
    key = f"{budget_part}-{date_part}"
    if entry.kind is PlanKind.STEPS:
        # Two goal changes on one day without ids differ only by target.
        key = f"{key}-{entry.target if entry.target is not None else 0}"
    return key


def _deduplicate(entries: Iterable[HistoryViewEntry]) -> list[HistoryViewEntry]:
    kept: dict[tuple[PlanKind, str], HistoryViewEntry] = {}
    for entry in entries:
        slot = (entry.kind, history_key(entry))
        existing = kept.get(slot)
        # Active beats inactive; otherwise first seen wins. Reassigning an
        # existing dict key keeps its original position.
        if existing is None or (entry.is_active and not existing.is_active):
            kept[slot] = entry
    return list(kept.values())


def consolidate(entries: Iterable[HistoryViewEntry]) -> list[HistoryViewEntry]:
    """Deduplicate history rows and mark the first active row per kind as current.

    Output keeps the order in which each key was first seen.
    """
    return consolidate_report(entries).entries


def consolidate_report(entries: Iterable[HistoryViewEntry]) -> ConsolidatedHistory:
    """Like :func:`consolidate`, also returning extra active rows it demoted."""

    result: list[HistoryViewEntry] = []
    violations: list[HistoryViewEntry] = []
    current_kinds: set[PlanKind] = set()
    for entry in _deduplicate(entries):
        is_current = entry.is_active and entry.kind not in current_kinds
        if is_current:
            current_kinds.add(entry.kind)
        elif entry.is_active:
            violations.append(entry)
        result.append(replace(entry, is_current=is_current))
    return ConsolidatedHistory(
        entries=result,
        integrity_violations=[replace(entry, is_current=False) for entry in violations],
    )
