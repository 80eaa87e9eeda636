"""Structured logging: JSON lines with secret redaction."""

from __future__ import annotations

import json
import sys
import time
import uuid
from typing import Any, Optional

from fieldplan.infrastructure.redact import redact_sensitive


class StructuredLogger:
    """Emit one JSON object per line; timers pair stage_start with stage_end."""

    def __init__(self, trace_id: Optional[str] = None, output=None):
        self.trace_id = trace_id or str(uuid.uuid4())[:8]
        self._output = output or sys.stderr
        self._timers: dict[str, float] = {}

    def _emit(self, data: dict[str, Any]) -> None:
        data["trace_id"] = self.trace_id
        data["timestamp"] = time.time()
        try:
            line = redact_sensitive(json.dumps(data, ensure_ascii=False, default=str))
            self._output.write(line + "\n")
            self._output.flush()
        except Exception as exc:
            # Last-resort fallback to avoid silent logger failures.
            try:
                fallback = {
                    "event": "logger_internal_error",
                    "trace_id": self.trace_id,
                    "timestamp": time.time(),
                    "error": str(exc),
                }
                sys.stderr.write(json.dumps(fallback, default=str) + "\n")
                sys.stderr.flush()
            except Exception:
                return

    def _timer_key(self, stage: str, plan_id: str) -> str:
        return f"{plan_id}:{stage}"

    def stage_start(self, stage: str, *, plan_id: str, **extra: Any) -> None:
        self._timers[self._timer_key(stage, plan_id)] = time.time()
        self._emit({"event": "stage_start", "stage": stage, "plan_id": plan_id, **extra})

    def stage_end(self, stage: str, *, plan_id: str, outcome: str = "ok", **extra: Any) -> None:
        start = self._timers.pop(self._timer_key(stage, plan_id), time.time())
        self._emit({
            "event": "stage_end",
            "stage": stage,
            "plan_id": plan_id,
            "outcome": outcome,
            "duration_ms": round((time.time() - start) * 1000, 1),
            **extra,
        })

    def transition(self, plan_id: str, status: str, current_step: str, **extra: Any) -> None:
        self._emit({
            "event": "transition",
            "plan_id": plan_id,
            "status": status,
            "current_step": current_step,
            **extra,
        })

    def tool_call(self, tool_name: str, **extra: Any) -> None:
        self._emit({"event": "tool_call", "tool": tool_name, **extra})

    def error(self, stage: str, error: str, **extra: Any) -> None:
        self._emit({"event": "error", "stage": stage, "error": error, **extra})

    def warning(self, stage: str, message: str, **extra: Any) -> None:
        self._emit({"event": "warning", "stage": stage, "message": message, **extra})


_logger: Optional[StructuredLogger] = None


def get_logger(trace_id: Optional[str] = None) -> StructuredLogger:
    global _logger
    if _logger is None or (trace_id and _logger.trace_id != trace_id):
        _logger = StructuredLogger(trace_id=trace_id)
    return _logger


__all__ = ["StructuredLogger", "get_logger"]
