"""Service module exports."""

from . import assignments, budget_editing, fork_resolver, history, integrity, plan_sync
from .context import RequestContext

__all__ = [
    "RequestContext",
    "assignments",
    "budget_editing",
    "fork_resolver",
    "history",
    "integrity",
    "plan_sync",
]
