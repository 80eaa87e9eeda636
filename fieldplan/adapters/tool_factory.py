"""Concrete capability selection and wiring."""

from __future__ import annotations

import logging
from typing import Optional

from fieldplan.adapters.fault_injection import inject_faults
from fieldplan.adapters.reasoning.llm import LLMReasoningProvider
from fieldplan.adapters.route.mock import MockRoutingSolver
from fieldplan.adapters.route.vroom import VroomRoutingSolver
from fieldplan.adapters.supplier.http import HttpSupplierLookup
from fieldplan.adapters.supplier.mock import MockSupplierLookup
from fieldplan.config.settings import WorkflowSettings, load_settings
from fieldplan.infrastructure.llm_factory import get_llm
from fieldplan.tools.interfaces import ReasoningProvider, RoutingSolver, SupplierLookup

_logger = logging.getLogger("fieldplan.tools")


def get_routing_solver(settings: Optional[WorkflowSettings] = None) -> RoutingSolver:
    cfg = settings or load_settings()
    if cfg.routing_provider == "vroom":
        solver: RoutingSolver = VroomRoutingSolver(cfg.vroom_api_url, timeout=cfg.routing_timeout_seconds)
    else:
        solver = MockRoutingSolver()
    return inject_faults("routing", solver)


def get_supplier_lookup(settings: Optional[WorkflowSettings] = None) -> SupplierLookup:
    cfg = settings or load_settings()
    if cfg.supplier_provider == "http":
        lookup: SupplierLookup = HttpSupplierLookup(cfg.supplier_api_url, timeout=cfg.supplier_timeout_seconds)
    else:
        lookup = MockSupplierLookup()
    return inject_faults("supplier", lookup)


def get_reasoning_provider() -> Optional[ReasoningProvider]:
    """Return the LLM-backed provider, or None to use templated reasoning."""
    client, model = get_llm()
    if client is None:
        _logger.info("no LLM key configured, dispatch reasoning uses templates")
        return None
    return inject_faults("reasoning", LLMReasoningProvider(client, model))


def describe_active_tools(settings: Optional[WorkflowSettings] = None) -> dict[str, str]:
    cfg = settings or load_settings()
    client, model = get_llm()
    return {
        "routing": cfg.routing_provider,
        "supplier": cfg.supplier_provider,
        "reasoning": model if client is not None else "template",
        "store": cfg.store_backend,
    }


__all__ = [
    "describe_active_tools",
    "get_reasoning_provider",
    "get_routing_solver",
    "get_supplier_lookup",
]
