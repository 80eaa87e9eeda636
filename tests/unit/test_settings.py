from __future__ import annotations

import pytest
from pydantic import ValidationError

from fieldplan.config.settings import WorkflowSettings, load_settings, resolve_provider_snapshot


def test_defaults_without_environment():
    settings = load_settings()
    assert settings.store_backend == "memory"
    assert settings.routing_provider == "mock"
    assert settings.supplier_provider == "mock"
    assert settings.routing_timeout_seconds == 30.0
    assert settings.fault_injection_enabled is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FIELDPLAN_STORE", "SQLite")
    monkeypatch.setenv("FIELDPLAN_DB", "/tmp/plans.sqlite3")
    monkeypatch.setenv("SUPPLIER_API_URL", "http://supplier.local")
    monkeypatch.setenv("ROUTING_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("STALE_PLAN_MINUTES", "-3")
    monkeypatch.setenv("ENABLE_TOOL_FAULT_INJECTION", "yes")

    settings = load_settings()
    assert settings.store_backend == "sqlite"
    assert settings.db_path == "/tmp/plans.sqlite3"
    assert settings.supplier_provider == "http"
    assert settings.routing_timeout_seconds == 5.0
    assert settings.stale_plan_minutes == 30.0
    assert settings.fault_injection_enabled is True


@pytest.mark.parametrize(
    "env, expected",
    [
        ({}, "template"),
        ({"LLM_API_KEY": "k"}, "llm_compatible"),
        ({"LLM_API_KEY": "k", "OPENAI_API_KEY": "o"}, "openai"),
    ],
)
def test_provider_snapshot_reasoning(monkeypatch, env, expected):
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    assert resolve_provider_snapshot().reasoning == expected


def test_timeouts_must_be_positive():
    with pytest.raises(ValidationError):
        WorkflowSettings(reasoning_timeout_seconds=0)
