"""pytest global fixtures: isolate tests from real services."""

from __future__ import annotations

import datetime as dt
import io

import pytest

from fieldplan.adapters.route.mock import MockRoutingSolver
from fieldplan.adapters.sources.memory import (
    InMemoryJobSource,
    InMemoryPreferencesSource,
    InMemoryStockSource,
)
from fieldplan.adapters.sources.sample import SAMPLE_USER_ID, sample_jobs, sample_preferences, sample_stock
from fieldplan.adapters.supplier.mock import MockSupplierLookup
from fieldplan.application.context import make_app_context
from fieldplan.config.settings import WorkflowSettings
from fieldplan.infrastructure.logging import StructuredLogger
from fieldplan.persistence.repository import InMemoryPlanStore


@pytest.fixture(autouse=True)
def no_real_apis(monkeypatch):
    """Real LLM, routing and supplier endpoints are off for every test."""
    for name in (
        "OPENAI_API_KEY",
        "LLM_API_KEY",
        "LLM_BASE_URL",
        "VROOM_API_URL",
        "SUPPLIER_API_URL",
        "ROUTING_PROVIDER",
        "SUPPLIER_PROVIDER",
        "FIELDPLAN_STORE",
        "FIELDPLAN_DB",
        "ENABLE_TOOL_FAULT_INJECTION",
        "TOOL_FAULT_INJECTION",
        "TOOL_FAULT_RATE",
        "LLM_MODEL",
        "REASONING_TIMEOUT_SECONDS",
        "ROUTING_TIMEOUT_SECONDS",
        "SUPPLIER_TIMEOUT_SECONDS",
        "STALE_PLAN_MINUTES",
    ):
        monkeypatch.delenv(name, raising=False)
    from fieldplan.infrastructure.llm_factory import reset_llm

    reset_llm()
    yield
    reset_llm()


@pytest.fixture
def planned_date() -> dt.date:
    return dt.date(2026, 3, 2)


@pytest.fixture
def log_buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def quiet_logger(log_buffer) -> StructuredLogger:
    return StructuredLogger(trace_id="test", output=log_buffer)


@pytest.fixture
def build_context(quiet_logger):
    """Factory for a fully wired AppContext over the sample day and mock capabilities."""

    def _build(
        *,
        jobs=None,
        preferences=None,
        stock=None,
        store=None,
        reasoning=None,
        router=None,
        supplier=None,
        settings=None,
    ):
        return make_app_context(
            settings or WorkflowSettings(),
            store=store or InMemoryPlanStore(),
            jobs=InMemoryJobSource(sample_jobs() if jobs is None else jobs),
            preferences=InMemoryPreferencesSource({SAMPLE_USER_ID: preferences or sample_preferences()}),
            stock=InMemoryStockSource({SAMPLE_USER_ID: sample_stock() if stock is None else stock}),
            reasoning=reasoning,
            router=router or MockRoutingSolver(),
            supplier=supplier or MockSupplierLookup(),
            logger=quiet_logger,
        )

    return _build
