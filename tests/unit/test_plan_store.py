"""Plan Record Store behaviour, run against both backends."""

from __future__ import annotations

import datetime as dt
import sqlite3

import pytest

from fieldplan.adapters.sources.sample import sample_jobs, sample_preferences
from fieldplan.domain.enums import ErrorKind, PlanStatus, PlanStep
from fieldplan.domain.exceptions import PlanConflict, PlanNotFound, StaleAttempt
from fieldplan.domain.models import ErrorState, UserModifications
from fieldplan.domain.planning.dispatch import build_dispatch
from fieldplan.persistence.repository import InMemoryPlanStore, get_plan_store
from fieldplan.persistence.sqlite_repository import SQLitePlanStore

DAY = dt.date(2026, 3, 2)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryPlanStore()
    return SQLitePlanStore(tmp_path / "plans.sqlite3")


def _error(stage: PlanStep = PlanStep.ROUTE, retry: bool = True) -> ErrorState:
    return ErrorState(stage=stage, kind=ErrorKind.CAPABILITY_FAILURE, message="solver down", retry_suggested=retry)


def test_create_and_get_roundtrip(store):
    plan = store.create("tech-1", DAY, ["a", "b"])
    assert plan.status == PlanStatus.PENDING
    assert plan.current_step == PlanStep.DISPATCH
    assert plan.attempt == 1
    assert store.get(plan.id) == plan


def test_stage_output_survives_roundtrip(store):
    plan = store.create("tech-1", DAY, [j.id for j in sample_jobs()])
    output = build_dispatch(sample_jobs(), sample_preferences(), DAY)
    updated = store.update(
        plan.id,
        {"dispatch_output": output, "status": PlanStatus.DISPATCH_COMPLETE, "current_step": PlanStep.ROUTE},
    )
    reloaded = store.get(plan.id)
    assert reloaded == updated
    assert reloaded.dispatch_output == output
    assert reloaded.dispatch_output.model_dump_json() == output.model_dump_json()


def test_missing_plan(store):
    with pytest.raises(PlanNotFound):
        store.get("nope")
    with pytest.raises(PlanNotFound):
        store.update("nope", {"status": PlanStatus.ERROR})


def test_one_active_plan_per_user_and_date(store):
    first = store.create("tech-1", DAY, ["a"])
    with pytest.raises(PlanConflict) as exc_info:
        store.create("tech-1", DAY, ["b"])
    assert exc_info.value.existing_id == first.id

    # Other users and other days are independent.
    store.create("tech-2", DAY, ["a"])
    store.create("tech-1", DAY + dt.timedelta(days=1), ["a"])

    store.update(first.id, {"status": PlanStatus.ERROR, "error_state": _error()})
    second = store.create("tech-1", DAY, ["b"])
    assert store.get_active("tech-1", DAY).id == second.id


def test_reactivating_a_plan_respects_the_active_rule(store):
    first = store.create("tech-1", DAY, ["a"])
    store.update(first.id, {"status": PlanStatus.ERROR, "error_state": _error(PlanStep.DISPATCH)})
    store.create("tech-1", DAY, ["b"])
    with pytest.raises(PlanConflict):
        store.update(first.id, {"status": PlanStatus.PENDING, "error_state": None})


def test_update_replaces_fields_wholesale_and_keeps_others(store):
    plan = store.create("tech-1", DAY, ["a"])
    mods = UserModifications()
    mods.route_changes.removed_job_ids.append("a")
    store.update(plan.id, {"user_modifications": mods})
    updated = store.update(plan.id, {"status": PlanStatus.ERROR, "error_state": _error()})

    assert updated.user_modifications.route_changes.removed_job_ids == ["a"]
    assert updated.updated_at >= plan.updated_at
    assert updated.created_at == plan.created_at


def test_immutable_fields_cannot_be_patched(store):
    plan = store.create("tech-1", DAY, ["a"])
    for field in ("id", "user_id", "planned_date", "job_ids", "created_at"):
        with pytest.raises(ValueError):
            store.update(plan.id, {field: "x"})
    with pytest.raises(ValueError):
        store.update(plan.id, {"not_a_field": 1})
    assert store.get(plan.id).job_ids == ["a"]


def test_expected_attempt_guards_writes(store):
    plan = store.create("tech-1", DAY, ["a"])
    store.update(plan.id, {"attempt": 2})
    with pytest.raises(StaleAttempt):
        store.update(plan.id, {"status": PlanStatus.ERROR, "error_state": _error()}, expected_attempt=1)
    assert store.get(plan.id).status == PlanStatus.PENDING
    assert store.update(plan.id, {"current_step": PlanStep.DISPATCH}, expected_attempt=2).attempt == 2


def test_list_plans_in_range(store):
    for offset in range(4):
        store.create("tech-1", DAY + dt.timedelta(days=offset), ["a"])
    store.create("tech-2", DAY, ["a"])
    found = store.list_plans("tech-1", DAY + dt.timedelta(days=1), DAY + dt.timedelta(days=2))
    assert [p.planned_date for p in found] == [DAY + dt.timedelta(days=1), DAY + dt.timedelta(days=2)]


def test_list_retryable(store):
    retryable = store.create("tech-1", DAY, ["a"])
    store.update(retryable.id, {"status": PlanStatus.ERROR, "error_state": _error()})
    final = store.create("tech-1", DAY + dt.timedelta(days=1), ["a"])
    store.update(final.id, {"status": PlanStatus.ERROR, "error_state": _error(retry=False)})
    store.create("tech-1", DAY + dt.timedelta(days=2), ["a"])

    assert [p.id for p in store.list_retryable("tech-1")] == [retryable.id]


def test_list_stale(store):
    plan = store.create("tech-1", DAY, ["a"])
    later = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=1)
    earlier = dt.datetime.now(dt.timezone.utc) - dt.timedelta(minutes=30)
    assert [p.id for p in store.list_stale([PlanStatus.PENDING], later)] == [plan.id]
    assert store.list_stale([PlanStatus.PENDING], earlier) == []
    assert store.list_stale([PlanStatus.AWAITING_CONFIRMATION], later) == []


def test_sqlite_stores_one_column_per_field(tmp_path):
    path = tmp_path / "plans.sqlite3"
    store = SQLitePlanStore(path)
    plan = store.create("tech-1", DAY, ["a", "b"])
    with sqlite3.connect(path) as conn:
        row = conn.execute(
            "SELECT status, current_step, job_ids, dispatch_output FROM daily_plans WHERE id = ?", (plan.id,)
        ).fetchone()
    assert row == ("pending", "dispatch", '["a","b"]', None)


def test_sqlite_survives_reopen(tmp_path):
    path = tmp_path / "plans.sqlite3"
    plan = SQLitePlanStore(path).create("tech-1", DAY, ["a"])
    assert SQLitePlanStore(path).get(plan.id) == plan


def test_factory_picks_backend(monkeypatch, tmp_path):
    assert get_plan_store().backend == "memory"
    monkeypatch.setenv("FIELDPLAN_STORE", "sqlite")
    monkeypatch.setenv("FIELDPLAN_DB", str(tmp_path / "x.sqlite3"))
    assert get_plan_store().backend == "sqlite"
