"""Tests for the click command line interface."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from plansync.cli import main


@pytest.fixture
def cli(tmp_path, monkeypatch):
    monkeypatch.setenv("PLANSYNC_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PLANSYNC_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("PLANSYNC_DEV_MODE", "false")
    runner = CliRunner()

    def invoke(*args, **kwargs):
        return runner.invoke(main, list(args), catch_exceptions=False, **kwargs)

    return invoke


def test_assign_edit_and_history_flow(cli):
    assert cli("init-db").exit_code == 0
    assert "Budget 1 created" in cli("create-budget", "--name", "Base", "--steps-goal", "7000").output
    assert "Assignment 1 created" in cli("assign", "10", "1").output
    assert "Assignment 2 created" in cli("assign", "20", "1").output

    edited = cli("edit-budget", "1", "--steps-goal", "8000")
    assert edited.exit_code == 0
    assert "Forked into budget 2" in edited.output

    history = cli("history", "10", "--kind", "steps")
    assert history.exit_code == 0
    lines = [line for line in history.output.splitlines() if "steps" in line]
    assert len(lines) == 2
    assert lines[0].startswith("*")
    assert "budget=2" in lines[0]

    assert cli("check-integrity").output.strip().endswith("OK")


def test_unassign_preview_and_delete(cli):
    cli("create-budget", "--name", "Base", "--steps-goal", "7000", "--supplement", "Iron")
    cli("assign", "10", "1")

    preview = cli("preview-unassign", "1")
    assert "2 plan(s) linked to budget 1" in preview.output

    aborted = cli("unassign", "1", "--delete-plans", input="n\n")
    assert aborted.exit_code == 1

    removed = cli("unassign", "1", "--delete-plans", "--yes")
    assert removed.exit_code == 0
    assert "deleted=2" in removed.output


def test_unknown_assignment_is_reported(cli):
    result = cli("unassign", "99", "--detach-plans")

    assert result.exit_code == 1
    assert "assignment 99 not found" in result.output
