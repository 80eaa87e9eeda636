"""Plan Record Store interface, in-memory backend and factory."""

from __future__ import annotations

import copy
import datetime as dt
import threading
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Protocol

from fieldplan.config.settings import WorkflowSettings, load_settings
from fieldplan.domain.enums import PlanStatus
from fieldplan.domain.exceptions import PlanConflict, PlanNotFound
from fieldplan.domain.models import DailyPlan
from fieldplan.domain.workflow import is_active
from fieldplan.persistence.records import apply_patch, check_attempt, check_patch
from fieldplan.persistence.sqlite_repository import SQLitePlanStore


class PlanRecordStore(Protocol):
    backend: str

    def create(self, user_id: str, planned_date: dt.date, job_ids: list[str]) -> DailyPlan: ...

    def get(self, plan_id: str) -> DailyPlan: ...

    def get_active(self, user_id: str, planned_date: dt.date) -> Optional[DailyPlan]: ...

    def update(
        self,
        plan_id: str,
        patch: Mapping[str, Any],
        *,
        expected_attempt: Optional[int] = None,
    ) -> DailyPlan: ...

    def list_plans(self, user_id: str, date_from: dt.date, date_to: dt.date) -> list[DailyPlan]: ...

    def list_retryable(self, user_id: str) -> list[DailyPlan]: ...

    def list_stale(self, statuses: Iterable[PlanStatus], updated_before: dt.datetime) -> list[DailyPlan]: ...


class InMemoryPlanStore:
    """Lock-guarded dict of plans; readers always get copies."""

    backend = "memory"

    def __init__(self) -> None:
        self._plans: dict[str, DailyPlan] = {}
        self._lock = threading.Lock()

    def _active_for(self, user_id: str, planned_date: dt.date, *, exclude: str = "") -> Optional[DailyPlan]:
        for plan in self._plans.values():
            if plan.id != exclude and plan.user_id == user_id and plan.planned_date == planned_date and is_active(plan):
                return plan
        return None

    def create(self, user_id: str, planned_date: dt.date, job_ids: list[str]) -> DailyPlan:
        with self._lock:
            existing = self._active_for(user_id, planned_date)
            if existing is not None:
                raise PlanConflict(user_id, planned_date, existing.id)
            plan = DailyPlan(user_id=user_id, planned_date=planned_date, job_ids=list(job_ids))
            self._plans[plan.id] = plan
            return plan.model_copy(deep=True)

    def get(self, plan_id: str) -> DailyPlan:
        with self._lock:
            plan = self._plans.get(plan_id)
            if plan is None:
                raise PlanNotFound(plan_id)
            return plan.model_copy(deep=True)

    def get_active(self, user_id: str, planned_date: dt.date) -> Optional[DailyPlan]:
        with self._lock:
            plan = self._active_for(user_id, planned_date)
            return plan.model_copy(deep=True) if plan else None

    def update(
        self,
        plan_id: str,
        patch: Mapping[str, Any],
        *,
        expected_attempt: Optional[int] = None,
    ) -> DailyPlan:
        check_patch(patch)
        with self._lock:
            current = self._plans.get(plan_id)
            if current is None:
                raise PlanNotFound(plan_id)
            check_attempt(current, expected_attempt)
            updated = apply_patch(current, copy.deepcopy(dict(patch)))
            if is_active(updated) and not is_active(current):
                other = self._active_for(updated.user_id, updated.planned_date, exclude=plan_id)
                if other is not None:
                    raise PlanConflict(updated.user_id, updated.planned_date, other.id)
            self._plans[plan_id] = updated
            return updated.model_copy(deep=True)

    def list_plans(self, user_id: str, date_from: dt.date, date_to: dt.date) -> list[DailyPlan]:
        with self._lock:
            found = [
                p for p in self._plans.values()
                if p.user_id == user_id and date_from <= p.planned_date <= date_to
            ]
            found.sort(key=lambda p: (p.planned_date, p.created_at))
            return [p.model_copy(deep=True) for p in found]

    def list_retryable(self, user_id: str) -> list[DailyPlan]:
        with self._lock:
            found = [
                p for p in self._plans.values()
                if p.user_id == user_id
                and p.status == PlanStatus.ERROR
                and p.error_state is not None
                and p.error_state.retry_suggested
            ]
            found.sort(key=lambda p: p.updated_at, reverse=True)
            return [p.model_copy(deep=True) for p in found]

    def list_stale(self, statuses: Iterable[PlanStatus], updated_before: dt.datetime) -> list[DailyPlan]:
        wanted = set(statuses)
        with self._lock:
            found = [p for p in self._plans.values() if p.status in wanted and p.updated_at < updated_before]
            found.sort(key=lambda p: p.updated_at)
            return [p.model_copy(deep=True) for p in found]


def get_plan_store(settings: Optional[WorkflowSettings] = None) -> PlanRecordStore:
    cfg = settings or load_settings()
    if cfg.store_backend == "sqlite":
        return SQLitePlanStore(Path(cfg.db_path))
    return InMemoryPlanStore()


__all__ = [
    "InMemoryPlanStore",
    "PlanRecordStore",
    "get_plan_store",
]
