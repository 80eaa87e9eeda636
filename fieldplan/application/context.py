"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from fieldplan.adapters.sources.memory import (
    InMemoryJobSource,
    InMemoryPreferencesSource,
    InMemoryStockSource,
)
from fieldplan.adapters.tool_factory import get_reasoning_provider, get_routing_solver, get_supplier_lookup
from fieldplan.application.events import PlanEventBus
from fieldplan.application.orchestrator import WorkflowOrchestrator
from fieldplan.config.settings import WorkflowSettings, load_settings
from fieldplan.infrastructure.logging import StructuredLogger, get_logger
from fieldplan.persistence.repository import PlanRecordStore, get_plan_store
from fieldplan.services.gate import ConfirmationGate
from fieldplan.tools.interfaces import JobSource, PreferencesSource, StockSource

_DEFAULT = object()


@dataclass
class AppContext:
    settings: WorkflowSettings
    store: PlanRecordStore
    jobs: JobSource
    preferences: PreferencesSource
    stock: StockSource
    events: PlanEventBus
    logger: StructuredLogger
    orchestrator: WorkflowOrchestrator
    gate: ConfirmationGate


def make_app_context(
    settings: Optional[WorkflowSettings] = None,
    *,
    store: Optional[PlanRecordStore] = None,
    jobs: Optional[JobSource] = None,
    preferences: Optional[PreferencesSource] = None,
    stock: Optional[StockSource] = None,
    reasoning: Any = _DEFAULT,
    router: Any = None,
    supplier: Any = None,
    logger: Optional[StructuredLogger] = None,
) -> AppContext:
    """Wire the workflow; any collaborator can be overridden (tests pass fakes).

    ``reasoning=None`` disables the reasoning provider outright.
    """
    cfg = settings or load_settings()
    store = store or get_plan_store(cfg)
    jobs = jobs or InMemoryJobSource()
    preferences = preferences or InMemoryPreferencesSource()
    stock = stock or InMemoryStockSource()
    events = PlanEventBus()
    logger = logger or get_logger()
    orchestrator = WorkflowOrchestrator(
        store=store,
        jobs=jobs,
        preferences=preferences,
        stock=stock,
        reasoning=get_reasoning_provider() if reasoning is _DEFAULT else reasoning,
        router=router or get_routing_solver(cfg),
        supplier=supplier or get_supplier_lookup(cfg),
        settings=cfg,
        events=events,
        logger=logger,
    )
    return AppContext(
        settings=cfg,
        store=store,
        jobs=jobs,
        preferences=preferences,
        stock=stock,
        events=events,
        logger=logger,
        orchestrator=orchestrator,
        gate=ConfirmationGate(orchestrator, store),
    )


__all__ = ["AppContext", "make_app_context"]
