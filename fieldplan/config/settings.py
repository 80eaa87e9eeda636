"""Environment-driven workflow settings and provider snapshot."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


def _is_enabled(value: str | None) -> bool:
    return bool(value and value.strip().lower() in _TRUTHY)


def _is_configured(value: str | None) -> bool:
    return bool(value and value.strip())


def _float_env(name: str, default: float) -> float:
    raw = str(os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def resolve_store_backend() -> str:
    mode = str(os.getenv("FIELDPLAN_STORE") or "").strip().lower()
    return "sqlite" if mode == "sqlite" else "memory"


def resolve_routing_provider() -> str:
    mode = str(os.getenv("ROUTING_PROVIDER") or "").strip().lower()
    if mode in {"mock", "vroom"}:
        return mode
    return "vroom" if _is_configured(os.getenv("VROOM_API_URL")) else "mock"


def resolve_supplier_provider() -> str:
    mode = str(os.getenv("SUPPLIER_PROVIDER") or "").strip().lower()
    if mode in {"mock", "http"}:
        return mode
    return "http" if _is_configured(os.getenv("SUPPLIER_API_URL")) else "mock"


def resolve_reasoning_provider() -> str:
    if _is_configured(os.getenv("OPENAI_API_KEY")):
        return "openai"
    if _is_configured(os.getenv("LLM_API_KEY")):
        return "llm_compatible"
    return "template"


class WorkflowSettings(BaseModel):
    store_backend: str = Field(default="memory")
    db_path: str = Field(default="data/fieldplan.sqlite3")
    routing_provider: str = Field(default="mock")
    vroom_api_url: str = Field(default="")
    supplier_provider: str = Field(default="mock")
    supplier_api_url: str = Field(default="")
    reasoning_timeout_seconds: float = Field(default=10.0, gt=0)
    routing_timeout_seconds: float = Field(default=30.0, gt=0)
    supplier_timeout_seconds: float = Field(default=15.0, gt=0)
    stale_plan_minutes: float = Field(default=30.0, gt=0)
    fault_injection_enabled: bool = Field(default=False)


def load_settings() -> WorkflowSettings:
    return WorkflowSettings(
        store_backend=resolve_store_backend(),
        db_path=str(os.getenv("FIELDPLAN_DB") or "").strip() or "data/fieldplan.sqlite3",
        routing_provider=resolve_routing_provider(),
        vroom_api_url=str(os.getenv("VROOM_API_URL") or "").strip(),
        supplier_provider=resolve_supplier_provider(),
        supplier_api_url=str(os.getenv("SUPPLIER_API_URL") or "").strip(),
        reasoning_timeout_seconds=_float_env("REASONING_TIMEOUT_SECONDS", 10.0),
        routing_timeout_seconds=_float_env("ROUTING_TIMEOUT_SECONDS", 30.0),
        supplier_timeout_seconds=_float_env("SUPPLIER_TIMEOUT_SECONDS", 15.0),
        stale_plan_minutes=_float_env("STALE_PLAN_MINUTES", 30.0),
        fault_injection_enabled=_is_enabled(os.getenv("ENABLE_TOOL_FAULT_INJECTION")),
    )


class ProviderSnapshot(BaseModel):
    store: str = Field(default="memory")
    routing: str = Field(default="mock")
    supplier: str = Field(default="mock")
    reasoning: str = Field(default="template")
    fault_injection: bool = Field(default=False)


def resolve_provider_snapshot(settings: WorkflowSettings | None = None) -> ProviderSnapshot:
    cfg = settings or load_settings()
    return ProviderSnapshot(
        store=cfg.store_backend,
        routing=cfg.routing_provider,
        supplier=cfg.supplier_provider,
        reasoning=resolve_reasoning_provider(),
        fault_injection=cfg.fault_injection_enabled,
    )


__all__ = [
    "ProviderSnapshot",
    "WorkflowSettings",
    "load_settings",
    "resolve_provider_snapshot",
]
