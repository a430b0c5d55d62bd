from decimal import Decimal

import pytest

from app.tasks import async_tasks


@pytest.fixture(autouse=True)
def task_sessions(monkeypatch, session_factory):
    monkeypatch.setattr(async_tasks, "SessionLocal", session_factory)


def test_resync_task_returns_summary(make_grid, make_policy):
    make_grid(category="motor", rate="10")
    make_policy()
    bad = make_policy(category="Life")

    summary = async_tasks.resync_tenant_commissions(1)

    assert summary["succeeded"] == 1
    assert summary["failed"] == 1
    assert summary["failures"][0]["policy_id"] == bad.id
    assert summary["failures"][0]["reason"] == "no_applicable_grid"


def test_calculate_task(make_grid, make_policy):
    make_grid(category="motor", rate="10")
    policy = make_policy(premium="100000")

    result = async_tasks.calculate_policy_commission(1, policy.id)

    assert result["status"] == "calculated"
    assert Decimal(result["insurer_commission"]) == Decimal("10000.00")


def test_calculate_task_reports_failure(make_policy):
    policy = make_policy()

    result = async_tasks.calculate_policy_commission(1, policy.id)

    assert result["status"] == "failed"
    assert result["error"] == "no_applicable_grid"
