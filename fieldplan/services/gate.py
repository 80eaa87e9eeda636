"""Confirmation Gate: the single surface the presentation layer calls.

Every mutating call re-checks the persisted status against the shared
operation table before delegating, so a stale screen gets a
PreconditionFailed instead of a silent no-op.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Callable, Mapping, Optional, Union

from fieldplan.application.events import PlanEvent
from fieldplan.application.orchestrator import WorkflowOrchestrator
from fieldplan.domain.models import DailyPlan, ModificationPatch
from fieldplan.domain.workflow import ensure_consistent, require_status
from fieldplan.persistence.repository import PlanRecordStore


class ConfirmationGate:
    def __init__(self, orchestrator: WorkflowOrchestrator, store: PlanRecordStore):
        self._orchestrator = orchestrator
        self._store = store

    def _checked(self, plan_id: str, operation: str) -> DailyPlan:
        plan = self._store.get(plan_id)
        ensure_consistent(plan)
        require_status(plan, operation)
        return plan

    async def start(self, user_id: str, planned_date: dt.date, job_ids: list[str]) -> DailyPlan:
        return await self._orchestrator.start(user_id, planned_date, job_ids)

    async def confirm_dispatch(self, plan_id: str) -> DailyPlan:
        self._checked(plan_id, "confirm_dispatch")
        return await self._orchestrator.confirm_dispatch(plan_id)

    async def confirm_route(self, plan_id: str) -> DailyPlan:
        self._checked(plan_id, "confirm_route")
        return await self._orchestrator.confirm_route(plan_id)

    async def confirm_inventory(self, plan_id: str) -> DailyPlan:
        self._checked(plan_id, "confirm_inventory")
        return await self._orchestrator.confirm_inventory(plan_id)

    async def approve_plan(self, plan_id: str) -> DailyPlan:
        return await self.confirm_inventory(plan_id)

    async def save_user_modifications(
        self,
        plan_id: str,
        patch: Union[ModificationPatch, Mapping[str, Any]],
    ) -> DailyPlan:
        self._checked(plan_id, "save_user_modifications")
        return await self._orchestrator.save_user_modifications(plan_id, patch)

    async def retry_planning(self, plan_id: str) -> DailyPlan:
        self._checked(plan_id, "retry_planning")
        return await self._orchestrator.retry_planning(plan_id)

    async def reset_plan(self, plan_id: str) -> DailyPlan:
        # Valid in every status, including corrupt ones.
        self._store.get(plan_id)
        return await self._orchestrator.reset_plan(plan_id)

    def get_plan(self, plan_id: str) -> DailyPlan:
        plan = self._store.get(plan_id)
        ensure_consistent(plan)
        return plan

    def get_active_plan(self, user_id: str, planned_date: dt.date) -> Optional[DailyPlan]:
        plan = self._store.get_active(user_id, planned_date)
        if plan is not None:
            ensure_consistent(plan)
        return plan

    def list_plans(self, user_id: str, date_from: dt.date, date_to: dt.date) -> list[DailyPlan]:
        return self._store.list_plans(user_id, date_from, date_to)

    def list_retryable(self, user_id: str) -> list[DailyPlan]:
        return self._store.list_retryable(user_id)

    def subscribe(self, callback: Callable[[PlanEvent], None], plan_id: Optional[str] = None) -> Callable[[], None]:
        return self._orchestrator.events.subscribe(callback, plan_id=plan_id)


__all__ = ["ConfirmationGate"]
