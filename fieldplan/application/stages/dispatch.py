"""Dispatch stage: deterministic schedule plus best-effort reasoning text."""

from __future__ import annotations

import asyncio
import datetime as dt
from typing import Optional

from fieldplan.domain.models import DispatchOutput, Job, UserPreferences
from fieldplan.domain.planning.dispatch import build_dispatch, reasoning_context
from fieldplan.infrastructure.logging import StructuredLogger, get_logger
from fieldplan.tools.interfaces import ReasoningProvider


class DispatchStage:
    def __init__(
        self,
        reasoning: Optional[ReasoningProvider],
        *,
        timeout_seconds: float = 10.0,
        logger: Optional[StructuredLogger] = None,
    ):
        self._reasoning = reasoning
        self._timeout = timeout_seconds
        self._logger = logger or get_logger()

    async def run(self, jobs: list[Job], preferences: UserPreferences, planned_date: dt.date) -> DispatchOutput:
        output = build_dispatch(jobs, preferences, planned_date)
        if self._reasoning is None:
            return output

        self._logger.tool_call("reasoning", jobs=len(output.prioritized_jobs))
        try:
            text = await asyncio.wait_for(self._reasoning.explain(reasoning_context(output)), self._timeout)
        except asyncio.TimeoutError:
            self._logger.warning("dispatch", f"reasoning timed out after {self._timeout}s, using template")
            return output
        except Exception as exc:
            # Reasoning never fails the stage.
            self._logger.warning("dispatch", f"reasoning failed ({type(exc).__name__}: {exc}), using template")
            return output

        output.reasoning = text
        output.reasoning_source = "provider"
        return output


__all__ = ["DispatchStage"]
