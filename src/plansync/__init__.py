"""PlanSync: budget template propagation and plan history engine."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .engine import PlanEngine, create_plan_engine
from .services.context import RequestContext

__all__ = ["BaseConfig", "DevConfig", "PlanEngine", "RequestContext", "create_plan_engine"]
