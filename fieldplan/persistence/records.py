"""Patch application shared by every store backend."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel

from fieldplan.domain.exceptions import StaleAttempt
from fieldplan.domain.models import IMMUTABLE_PLAN_FIELDS, DailyPlan, utc_now

PATCHABLE_FIELDS = frozenset(DailyPlan.model_fields) - IMMUTABLE_PLAN_FIELDS - {"updated_at"}


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    return value


def check_patch(patch: Mapping[str, Any]) -> None:
    immutable = sorted(set(patch) & IMMUTABLE_PLAN_FIELDS)
    if immutable:
        raise ValueError(f"immutable plan field(s) cannot be patched: {', '.join(immutable)}")
    unknown = sorted(set(patch) - PATCHABLE_FIELDS)
    if unknown:
        raise ValueError(f"unknown plan field(s): {', '.join(unknown)}")


def check_attempt(plan: DailyPlan, expected_attempt: int | None) -> None:
    if expected_attempt is not None and plan.attempt != expected_attempt:
        raise StaleAttempt(plan.id, expected_attempt, plan.attempt)


def apply_patch(plan: DailyPlan, patch: Mapping[str, Any]) -> DailyPlan:
    """Return a new plan with each patched top-level field replaced wholesale."""
    check_patch(patch)
    data = plan.model_dump()
    for key, value in patch.items():
        data[key] = _plain(value)
    data["updated_at"] = utc_now()
    return DailyPlan.model_validate(data)


__all__ = ["PATCHABLE_FIELDS", "apply_patch", "check_attempt", "check_patch"]
