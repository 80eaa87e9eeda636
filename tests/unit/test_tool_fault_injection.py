from __future__ import annotations

import asyncio

import pytest

from fieldplan.adapters.fault_injection import FaultConfig, FaultInjectingCapability, inject_faults
from fieldplan.shared.exceptions import ToolError


class _Tool:
    def __init__(self) -> None:
        self.called = 0

    def run(self) -> str:
        self.called += 1
        return "ok"


class _AsyncTool:
    name = "async-tool"

    def __init__(self) -> None:
        self.called = 0

    async def solve(self, request: str) -> str:
        self.called += 1
        return f"solved {request}"


def test_fault_injection_disabled_keeps_original_behavior(monkeypatch):
    monkeypatch.setenv("ENABLE_TOOL_FAULT_INJECTION", "false")
    tool = _Tool()
    wrapped = inject_faults("routing", tool)
    assert wrapped is tool
    assert wrapped.run() == "ok"
    assert tool.called == 1


@pytest.mark.parametrize("fault", ["rate_limit", "unavailable"])
def test_fault_injection_raises_tool_error(monkeypatch, fault: str):
    monkeypatch.setenv("ENABLE_TOOL_FAULT_INJECTION", "true")
    monkeypatch.setenv("TOOL_FAULT_INJECTION", f"routing:{fault}")
    monkeypatch.setenv("TOOL_FAULT_RATE", "1.0")
    tool = _Tool()
    wrapped = inject_faults("routing", tool)

    with pytest.raises(ToolError) as exc_info:
        wrapped.run()
    assert exc_info.value.tool == "routing"
    assert tool.called == 0


def test_injected_timeout_looks_like_a_real_timeout(monkeypatch):
    monkeypatch.setenv("ENABLE_TOOL_FAULT_INJECTION", "true")
    monkeypatch.setenv("TOOL_FAULT_INJECTION", "supplier:timeout")
    tool = _AsyncTool()
    wrapped = inject_faults("supplier", tool)

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(wrapped.solve("x"))
    assert tool.called == 0


def test_async_methods_stay_awaitable(monkeypatch):
    monkeypatch.setenv("ENABLE_TOOL_FAULT_INJECTION", "true")
    monkeypatch.setenv("TOOL_FAULT_INJECTION", "reasoning:unavailable")
    tool = _AsyncTool()
    wrapped = inject_faults("routing", tool)

    assert asyncio.run(wrapped.solve("x")) == "solved x"
    assert wrapped.name == "async-tool"
    assert tool.called == 1


def test_fault_rate_zero_never_fires(monkeypatch):
    monkeypatch.setenv("ENABLE_TOOL_FAULT_INJECTION", "true")
    monkeypatch.setenv("TOOL_FAULT_INJECTION", "routing:unavailable")
    monkeypatch.setenv("TOOL_FAULT_RATE", "0")
    wrapped = inject_faults("routing", _Tool())
    assert wrapped.run() == "ok"


def test_fault_config_parsing_skips_malformed_entries():
    config = FaultConfig.from_env(
        {
            "ENABLE_TOOL_FAULT_INJECTION": "yes",
            "TOOL_FAULT_INJECTION": " Routing:TIMEOUT, supplier, reasoning:explode, :unavailable ",
            "TOOL_FAULT_RATE": "2.5",
        }
    )
    assert config.enabled
    assert config.assignments == {"routing": "timeout"}
    assert config.rate == 1.0
    assert FaultConfig.from_env({"TOOL_FAULT_RATE": "often"}).rate == 1.0
    assert not FaultConfig.from_env({}).enabled


def test_roll_decides_whether_a_call_fails():
    config = FaultConfig(enabled=True, assignments={"supplier": "unavailable"}, rate=0.5)
    rolls = iter([0.9, 0.1])
    tool = _Tool()
    wrapped = FaultInjectingCapability("supplier", tool, config, roll=lambda: next(rolls))

    assert wrapped.run() == "ok"
    with pytest.raises(ToolError, match="503"):
        wrapped.run()
    assert tool.called == 1


def test_explicit_config_overrides_the_environment(monkeypatch):
    monkeypatch.setenv("ENABLE_TOOL_FAULT_INJECTION", "true")
    monkeypatch.setenv("TOOL_FAULT_INJECTION", "routing:unavailable")
    tool = _Tool()
    assert inject_faults("routing", tool, FaultConfig()) is tool
