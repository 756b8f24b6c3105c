"""Pytest configuration and shared fixtures for PlanSync tests.

Every test gets an isolated temporary SQLite database, a transactional
store over it, and factories for budgets and plans.
"""

from __future__ import annotations

import logging
import tempfile
from datetime import datetime
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

from plansync.engine import PlanEngine
from plansync.infra.database import create_session_factory
from plansync.infra.repositories import SQLModelPlanStore
from plansync.logging_config import ROOT_LOGGER_NAME
from plansync.models import Budget, GeneratedPlan, PlanKind
from plansync.services.context import RequestContext

COACH_ID = 1
FIXED_NOW = datetime(2026, 3, 1, 9, 0, 0)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching the one used in production wiring."""
    return create_session_factory(db_engine)


@pytest.fixture
def store(session_factory) -> SQLModelPlanStore:
    return SQLModelPlanStore(session_factory)


@pytest.fixture
def engine(store) -> PlanEngine:
    return PlanEngine(store=store)


@pytest.fixture
def ctx() -> RequestContext:
    """Request context with a pinned clock."""
    return RequestContext(actor_id=COACH_ID, now=FIXED_NOW)


@pytest.fixture(autouse=True)
def _reset_plansync_logger():
    """Drop handlers installed by setup_logging so streams don't leak between tests."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def budget_factory(store):
    """Factory for persisted budgets.

    Returns:
        Callable: Function that creates and persists Budget instances
    """

    def _create_budget(
        name: str = "Cut phase",
        *,
        steps_goal: int | None = 7000,
        workout_template_id: int | None = None,
        nutrition_template_id: int | None = None,
        nutrition_targets: dict | None = None,
        supplements: list | None = None,
        is_public: bool = True,
        owner_id: int = COACH_ID,
        **extra,
    ) -> Budget:
        budget = Budget(
            name=name,
            steps_goal=steps_goal,
            workout_template_id=workout_template_id,
            nutrition_template_id=nutrition_template_id,
            nutrition_targets=nutrition_targets,
            supplements=supplements or [],
            is_public=is_public,
            owner_id=owner_id,
            **extra,
        )
        return store.budgets.create(budget)

    return _create_budget


@pytest.fixture
def plan_factory(store):
    """Factory for plan rows written directly, bypassing synchronization."""

    def _create_plan(
        subscriber_id: int,
        kind: PlanKind = PlanKind.STEPS,
        *,
        budget_id: int | None = None,
        payload: dict | None = None,
        is_active: bool = True,
        start_date: datetime = datetime(2026, 1, 1),
    ) -> GeneratedPlan:
        plan = GeneratedPlan(
            subscriber_id=subscriber_id,
            kind=kind,
            budget_id=budget_id,
            payload=payload if payload is not None else {"goal": 5000, "instructions": None},
            is_active=is_active,
            start_date=start_date,
        )
        return store.plans.create(plan)

    return _create_plan


@pytest.fixture
def active_plan(store):
    """Return the single active plan, failing loudly if the invariant is broken."""

    def _active(subscriber_id: int, kind: PlanKind) -> GeneratedPlan:
        plans = store.plans.list_active(subscriber_id, kind)
        assert len(plans) == 1, f"expected one active {kind.value} plan, got {len(plans)}"
        return plans[0]

    return _active
