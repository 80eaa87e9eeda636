"""Workflow orchestrator: drives a DailyPlan through its stages.

Each transition re-reads the persisted plan, checks it against the state
table in ``fieldplan.domain.workflow`` and commits through the plan store.
Stage results are committed with the attempt number they started under, so
a reset that lands mid-flight makes the late result bounce off as stale.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Union

from pydantic import ValidationError

from fieldplan.application.events import PlanEvent, PlanEventBus
from fieldplan.application.modifications import (
    build_execution_summary,
    effective_dispatch,
    effective_route_order,
    merge_modifications,
    validate_patch,
)
from fieldplan.application.stages import DispatchStage, InventoryStage, RouteStage
from fieldplan.config.settings import WorkflowSettings
from fieldplan.domain.enums import ErrorKind, PlanEventType, PlanStatus, PlanStep
from fieldplan.domain.exceptions import (
    InputError,
    InvalidModification,
    InvalidPreferences,
    NoJobs,
    PlanBusy,
    PlanConflict,
    RoutingError,
    StaleAttempt,
)
from fieldplan.domain.models import (
    DailyPlan,
    ErrorState,
    Job,
    ModificationPatch,
    UserModifications,
    UserPreferences,
    utc_now,
)
from fieldplan.domain.planning.dispatch import retime_schedule
from fieldplan.domain.workflow import STAGE_COMPLETION, ensure_consistent, require_status
from fieldplan.infrastructure.logging import StructuredLogger, get_logger
from fieldplan.persistence.repository import PlanRecordStore
from fieldplan.shared.exceptions import ToolError
from fieldplan.tools.interfaces import (
    JobSource,
    PreferencesSource,
    ReasoningProvider,
    RoutingSolver,
    StockSource,
    SupplierLookup,
)

_logger = logging.getLogger("fieldplan.orchestrator")

_OUTPUT_FIELD = {
    PlanStep.DISPATCH: "dispatch_output",
    PlanStep.ROUTE: "route_output",
    PlanStep.INVENTORY: "inventory_output",
}
_STALE_STATUSES = (PlanStatus.PENDING, PlanStatus.AWAITING_CONFIRMATION)


class WorkflowOrchestrator:
    def __init__(
        self,
        store: PlanRecordStore,
        jobs: JobSource,
        preferences: PreferencesSource,
        stock: StockSource,
        reasoning: Optional[ReasoningProvider],
        router: RoutingSolver,
        supplier: SupplierLookup,
        settings: Optional[WorkflowSettings] = None,
        events: Optional[PlanEventBus] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self._store = store
        self._jobs = jobs
        self._preferences = preferences
        self._stock = stock
        self._settings = settings or WorkflowSettings()
        self._events = events or PlanEventBus()
        self._logger = logger or get_logger()
        self._dispatch = DispatchStage(
            reasoning, timeout_seconds=self._settings.reasoning_timeout_seconds, logger=self._logger
        )
        self._route = RouteStage(
            router, timeout_seconds=self._settings.routing_timeout_seconds, logger=self._logger
        )
        self._inventory = InventoryStage(
            supplier, timeout_seconds=self._settings.supplier_timeout_seconds, logger=self._logger
        )
        self._inflight: set[str] = set()
        self._guard = threading.Lock()

    @property
    def events(self) -> PlanEventBus:
        return self._events

    # ── plumbing ──────────────────────────────────────

    def is_in_flight(self, plan_id: str) -> bool:
        with self._guard:
            return plan_id in self._inflight

    @contextmanager
    def _flight(self, plan: DailyPlan, operation: str) -> Iterator[None]:
        with self._guard:
            if plan.id in self._inflight:
                raise PlanBusy(operation, plan.status)
            self._inflight.add(plan.id)
        try:
            yield
        finally:
            with self._guard:
                self._inflight.discard(plan.id)

    def _load(self, plan_id: str) -> DailyPlan:
        plan = self._store.get(plan_id)
        ensure_consistent(plan)
        return plan

    def _commit(
        self,
        plan_id: str,
        patch: Mapping[str, Any],
        *,
        expected_attempt: Optional[int] = None,
        event: Optional[PlanEventType] = None,
    ) -> DailyPlan:
        plan = self._store.update(plan_id, patch, expected_attempt=expected_attempt)
        self._logger.transition(plan.id, plan.status.value, plan.current_step.value, attempt=plan.attempt)
        if event is not None:
            self._events.publish(PlanEvent.from_plan(plan, event))
        return plan

    async def _load_preferences(self, user_id: str) -> UserPreferences:
        try:
            return await self._preferences.get_preferences(user_id)
        except (ValidationError, ValueError) as exc:
            raise InvalidPreferences(str(exc)) from None

    async def _jobs_by_id(self, user_id: str, job_ids: list[str]) -> dict[str, Job]:
        return {job.id: job for job in await self._jobs.get_jobs(user_id, job_ids)}

    # ── stage execution ───────────────────────────────

    async def _run_step(self, plan: DailyPlan, step: PlanStep) -> Any:
        preferences = await self._load_preferences(plan.user_id)
        mods = plan.user_modifications

        if step == PlanStep.DISPATCH:
            jobs = await self._jobs.get_jobs(plan.user_id, plan.job_ids)
            return await self._dispatch.run(jobs, preferences, plan.planned_date)

        if step == PlanStep.ROUTE:
            scheduled = effective_dispatch(plan.dispatch_output, mods.dispatch_changes)
            jobs = await self._jobs_by_id(plan.user_id, [item.job_id for item in scheduled])
            scheduled = retime_schedule(scheduled, jobs, preferences, plan.planned_date)
            return await self._route.run(scheduled, jobs, preferences, plan.planned_date)

        if step == PlanStep.INVENTORY:
            order = effective_route_order(plan.route_output, mods.route_changes)
            jobs = await self._jobs.get_jobs(plan.user_id, order)
            stock = await self._stock.get_stock(plan.user_id)
            classifications = {item.job_id: item.classification for item in plan.dispatch_output.prioritized_jobs}
            return await self._inventory.run(jobs, classifications, stock, preferences)

        raise ValueError(f"no stage for step {step.value}")

    async def _execute(self, plan: DailyPlan, step: PlanStep) -> DailyPlan:
        """Run one stage for a plan already claimed in flight; never raises for stage failures."""
        attempt = plan.attempt
        self._events.publish(PlanEvent.from_plan(plan, PlanEventType.STAGE_STARTED))
        self._logger.stage_start(step.value, plan_id=plan.id, attempt=attempt)

        error: Optional[ErrorState] = None
        output: Any = None
        try:
            output = await self._run_step(plan, step)
        except asyncio.TimeoutError as exc:
            error = ErrorState(stage=step, kind=ErrorKind.TIMEOUT, message=str(exc) or f"{step.value} timed out")
        except (ToolError, RoutingError) as exc:
            error = ErrorState(stage=step, kind=ErrorKind.CAPABILITY_FAILURE, message=str(exc))
        except InputError as exc:
            error = ErrorState(stage=step, kind=ErrorKind.CAPABILITY_FAILURE, message=str(exc), retry_suggested=False)
        except Exception as exc:
            _logger.exception("unexpected failure in %s stage for plan %s", step.value, plan.id)
            error = ErrorState(stage=step, kind=ErrorKind.INTERNAL, message=f"{type(exc).__name__}: {exc}")

        outcome = "ok" if error is None else error.kind.value
        try:
            if error is None:
                status, next_step = STAGE_COMPLETION[step]
                return self._commit(
                    plan.id,
                    {_OUTPUT_FIELD[step]: output, "status": status, "current_step": next_step, "error_state": None},
                    expected_attempt=attempt,
                    event=PlanEventType.STAGE_COMPLETED,
                )

            self._logger.error(step.value, error.message, plan_id=plan.id, kind=error.kind.value)
            return self._commit(
                plan.id,
                {"status": PlanStatus.ERROR, "current_step": step, "error_state": error},
                expected_attempt=attempt,
                event=PlanEventType.STAGE_FAILED,
            )
        except StaleAttempt as exc:
            outcome = "stale"
            self._logger.warning(step.value, f"discarding stage result: {exc}", plan_id=plan.id)
            return self._store.get(plan.id)
        finally:
            self._logger.stage_end(step.value, plan_id=plan.id, outcome=outcome)

    # ── transitions ───────────────────────────────────

    async def start(self, user_id: str, planned_date: dt.date, job_ids: list[str]) -> DailyPlan:
        """Create and dispatch today's plan, or hand back the one already underway."""
        job_ids = list(dict.fromkeys(job_ids))
        if not job_ids:
            raise NoJobs()
        # Input errors surface here, before anything is persisted.
        await self._jobs.get_jobs(user_id, job_ids)
        await self._load_preferences(user_id)

        existing = self._store.get_active(user_id, planned_date)
        if existing is not None:
            if set(existing.job_ids) != set(job_ids):
                raise PlanConflict(user_id, planned_date, existing.id)
            ensure_consistent(existing)
            if existing.status != PlanStatus.PENDING or self.is_in_flight(existing.id):
                return existing
            with self._flight(existing, "start"):
                return await self._execute(existing, PlanStep.DISPATCH)

        plan = self._store.create(user_id, planned_date, job_ids)
        self._logger.transition(plan.id, plan.status.value, plan.current_step.value, attempt=plan.attempt)
        self._events.publish(PlanEvent.from_plan(plan, PlanEventType.CREATED))
        with self._flight(plan, "start"):
            return await self._execute(plan, PlanStep.DISPATCH)

    async def _confirm_and_run(self, plan_id: str, operation: str, next_step: PlanStep) -> DailyPlan:
        plan = self._load(plan_id)
        with self._flight(plan, operation):
            require_status(plan, operation)
            plan = self._commit(
                plan.id,
                {"status": PlanStatus.AWAITING_CONFIRMATION, "current_step": next_step},
                expected_attempt=plan.attempt,
            )
            return await self._execute(plan, next_step)

    async def confirm_dispatch(self, plan_id: str) -> DailyPlan:
        return await self._confirm_and_run(plan_id, "confirm_dispatch", PlanStep.ROUTE)

    async def confirm_route(self, plan_id: str) -> DailyPlan:
        return await self._confirm_and_run(plan_id, "confirm_route", PlanStep.INVENTORY)

    async def confirm_inventory(self, plan_id: str) -> DailyPlan:
        plan = self._load(plan_id)
        with self._flight(plan, "confirm_inventory"):
            require_status(plan, "confirm_inventory")
            summary = build_execution_summary(plan)
            plan = self._commit(
                plan.id,
                {"status": PlanStatus.READY_FOR_EXECUTION, "execution_summary": summary},
                expected_attempt=plan.attempt,
            )
            return self._commit(
                plan.id,
                {"status": PlanStatus.APPROVED},
                expected_attempt=plan.attempt,
                event=PlanEventType.APPROVED,
            )

    async def approve_plan(self, plan_id: str) -> DailyPlan:
        return await self.confirm_inventory(plan_id)

    async def save_user_modifications(
        self,
        plan_id: str,
        patch: Union[ModificationPatch, Mapping[str, Any]],
    ) -> DailyPlan:
        if not isinstance(patch, ModificationPatch):
            try:
                patch = ModificationPatch.model_validate(patch)
            except ValidationError as exc:
                raise InvalidModification(str(exc)) from None
        plan = self._load(plan_id)
        require_status(plan, "save_user_modifications")
        validate_patch(plan, patch)
        merged = merge_modifications(plan.user_modifications, patch)
        return self._commit(plan.id, {"user_modifications": merged}, event=PlanEventType.MODIFIED)

    async def retry_planning(self, plan_id: str) -> DailyPlan:
        """Re-run only the failed stage from persisted inputs."""
        plan = self._load(plan_id)
        with self._flight(plan, "retry_planning"):
            require_status(plan, "retry_planning")
            step = plan.current_step
            status = PlanStatus.PENDING if step == PlanStep.DISPATCH else PlanStatus.AWAITING_CONFIRMATION
            plan = self._commit(
                plan.id,
                {"status": status, "error_state": None},
                expected_attempt=plan.attempt,
            )
            return await self._execute(plan, step)

    async def reset_plan(self, plan_id: str) -> DailyPlan:
        """Back to pending/dispatch with the same job ids and a fresh attempt number."""
        plan = self._store.get(plan_id)
        return self._commit(
            plan.id,
            {
                "status": PlanStatus.PENDING,
                "current_step": PlanStep.DISPATCH,
                "attempt": plan.attempt + 1,
                "dispatch_output": None,
                "route_output": None,
                "inventory_output": None,
                "user_modifications": UserModifications(),
                "execution_summary": None,
                "error_state": None,
            },
            event=PlanEventType.RESET,
        )

    async def recover_stale_plans(self, older_than: Optional[dt.timedelta] = None) -> list[DailyPlan]:
        """Fail plans stuck mid-stage so they become retryable."""
        window = older_than if older_than is not None else dt.timedelta(minutes=self._settings.stale_plan_minutes)
        cutoff = utc_now() - window
        recovered: list[DailyPlan] = []
        for plan in self._store.list_stale(_STALE_STATUSES, cutoff):
            if self.is_in_flight(plan.id):
                continue
            error = ErrorState(
                stage=plan.current_step,
                kind=ErrorKind.TIMEOUT,
                message=f"no progress for over {int(window.total_seconds() // 60)} minutes",
            )
            try:
                recovered.append(
                    self._commit(
                        plan.id,
                        {"status": PlanStatus.ERROR, "error_state": error},
                        expected_attempt=plan.attempt,
                        event=PlanEventType.RECOVERED,
                    )
                )
            except StaleAttempt:
                continue
        if recovered:
            _logger.info("recovered %d stale plan(s)", len(recovered))
        return recovered


__all__ = ["WorkflowOrchestrator"]
