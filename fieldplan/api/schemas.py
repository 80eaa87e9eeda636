"""API request/response models."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from fieldplan.config.settings import ProviderSnapshot

_ID_PATTERN = r"^[A-Za-z0-9_.:-]+$"


class StartPlanRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=64, pattern=_ID_PATTERN)
    planned_date: dt.date
    job_ids: list[str] = Field(default_factory=list, max_length=200, description="Jobs to plan for the day")


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = ""


class DiagnosticsResponse(BaseModel):
    tools: dict[str, str] = Field(default_factory=dict)
    providers: ProviderSnapshot = Field(default_factory=ProviderSnapshot)
    store_backend: str = ""


__all__ = ["DiagnosticsResponse", "HealthResponse", "StartPlanRequest"]
