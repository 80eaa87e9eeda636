"""Capability fault injection for dependency drills.

Off unless ``ENABLE_TOOL_FAULT_INJECTION`` is truthy. ``TOOL_FAULT_INJECTION``
maps capabilities to faults, e.g. ``routing:timeout,supplier:unavailable``,
and ``TOOL_FAULT_RATE`` (0..1, default 1) is the chance a mapped call fails.
A ``timeout`` fault raises ``asyncio.TimeoutError`` so the orchestrator
records it exactly like a real deadline miss.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import os
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from fieldplan.shared.exceptions import ToolError

_ON_VALUES = ("1", "true", "yes", "on")

FAULTS: dict[str, Callable[[str, str], Exception]] = {
    "timeout": lambda capability, method: asyncio.TimeoutError(f"[{capability}] injected timeout in {method}"),
    "rate_limit": lambda capability, method: ToolError(capability, f"injected 429 from upstream in {method}"),
    "unavailable": lambda capability, method: ToolError(capability, f"injected 503 from upstream in {method}"),
}


def _parse_assignments(raw: str) -> dict[str, str]:
    assignments: dict[str, str] = {}
    for chunk in raw.split(","):
        capability, sep, fault = chunk.partition(":")
        capability, fault = capability.strip().lower(), fault.strip().lower()
        if sep and capability and fault in FAULTS:
            assignments[capability] = fault
    return assignments


def _parse_rate(raw: str) -> float:
    try:
        rate = float(raw)
    except ValueError:
        return 1.0
    return min(max(rate, 0.0), 1.0)


@dataclass(frozen=True)
class FaultConfig:
    enabled: bool = False
    assignments: dict[str, str] = field(default_factory=dict)
    rate: float = 1.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FaultConfig":
        env = os.environ if environ is None else environ
        return cls(
            enabled=env.get("ENABLE_TOOL_FAULT_INJECTION", "").strip().lower() in _ON_VALUES,
            assignments=_parse_assignments(env.get("TOOL_FAULT_INJECTION", "")),
            rate=_parse_rate(env.get("TOOL_FAULT_RATE", "1.0")),
        )

    def failure_for(self, capability: str, method: str, roll: float) -> Optional[Exception]:
        """The exception a call should raise, or None when it goes through."""
        fault = self.assignments.get(capability.lower())
        if not self.enabled or fault is None or roll >= self.rate:
            return None
        return FAULTS[fault](capability, method)


class FaultInjectingCapability:
    """Stands in for a capability; every method call may fail before reaching it."""

    def __init__(
        self,
        capability: str,
        target: Any,
        config: FaultConfig,
        roll: Callable[[], float] = random.random,
    ) -> None:
        self._capability = capability
        self._target = target
        self._config = config
        self._roll = roll

    def _check(self, method: str) -> None:
        failure = self._config.failure_for(self._capability, method, self._roll())
        if failure is not None:
            raise failure

    def __getattr__(self, name: str) -> Any:
        member = getattr(self._target, name)
        if not callable(member):
            return member

        if inspect.iscoroutinefunction(member):

            @functools.wraps(member)
            async def call_async(*args: Any, **kwargs: Any) -> Any:
                self._check(name)
                return await member(*args, **kwargs)

            return call_async

        @functools.wraps(member)
        def call(*args: Any, **kwargs: Any) -> Any:
            self._check(name)
            return member(*args, **kwargs)

        return call


def inject_faults(capability: str, impl: Any, config: Optional[FaultConfig] = None) -> Any:
    """Wrap ``impl`` when drills are switched on; otherwise hand it back as is."""
    cfg = config if config is not None else FaultConfig.from_env()
    if not cfg.enabled or impl is None:
        return impl
    return FaultInjectingCapability(capability, impl, cfg)


__all__ = ["FAULTS", "FaultConfig", "FaultInjectingCapability", "inject_faults"]
