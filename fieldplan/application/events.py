"""In-process publish/subscribe for committed plan transitions."""

from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Callable, Optional

from pydantic import BaseModel, Field

from fieldplan.domain.enums import PlanEventType, PlanStatus, PlanStep
from fieldplan.domain.models import DailyPlan, utc_now

_logger = logging.getLogger("fieldplan.events")


class PlanEvent(BaseModel):
    plan_id: str
    type: PlanEventType
    status: PlanStatus
    current_step: PlanStep
    attempt: int
    timestamp: dt.datetime = Field(default_factory=utc_now)

    @classmethod
    def from_plan(cls, plan: DailyPlan, event_type: PlanEventType) -> "PlanEvent":
        return cls(
            plan_id=plan.id,
            type=event_type,
            status=plan.status,
            current_step=plan.current_step,
            attempt=plan.attempt,
        )


Subscriber = Callable[[PlanEvent], None]


class PlanEventBus:
    def __init__(self) -> None:
        self._subscribers: list[tuple[Optional[str], Subscriber]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber, plan_id: Optional[str] = None) -> Callable[[], None]:
        """Register ``callback``; returns a function that removes it again."""
        entry = (plan_id, callback)
        with self._lock:
            self._subscribers.append(entry)

        def _unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return _unsubscribe

    def publish(self, event: PlanEvent) -> None:
        with self._lock:
            targets = [cb for pid, cb in self._subscribers if pid is None or pid == event.plan_id]
        for callback in targets:
            try:
                callback(event)
            except Exception:
                _logger.exception("plan event subscriber failed for %s", event.plan_id)


__all__ = ["PlanEvent", "PlanEventBus", "Subscriber"]
