"""FastAPI app exposing the Confirmation Gate over HTTP."""

from __future__ import annotations

import datetime as dt
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from fieldplan import __version__
from fieldplan.adapters.sources.memory import (
    InMemoryJobSource,
    InMemoryPreferencesSource,
    InMemoryStockSource,
)
from fieldplan.adapters.sources.sample import SAMPLE_USER_ID, sample_jobs, sample_preferences, sample_stock
from fieldplan.adapters.tool_factory import describe_active_tools
from fieldplan.api.schemas import DiagnosticsResponse, HealthResponse, StartPlanRequest
from fieldplan.application.context import AppContext, make_app_context
from fieldplan.config.settings import resolve_provider_snapshot
from fieldplan.domain.exceptions import (
    CorruptPlanState,
    DomainError,
    InputError,
    InvalidModification,
    InvalidPreferences,
    NoJobs,
    PlanBusy,
    PlanConflict,
    PlanNotFound,
    PreconditionFailed,
    StaleAttempt,
    UnknownJobs,
)
from fieldplan.domain.models import DailyPlan, ErrorResponse, ModificationPatch
from fieldplan.infrastructure.redact import redact_sensitive

_api_logger = logging.getLogger("fieldplan.api")

load_dotenv()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response


# Most specific first; the first isinstance match wins.
_ERROR_MAP: list[tuple[type[Exception], int, str]] = [
    (CorruptPlanState, 500, "CORRUPT_STATE"),
    (PlanNotFound, 404, "PLAN_NOT_FOUND"),
    (PlanConflict, 409, "PLAN_CONFLICT"),
    (StaleAttempt, 409, "STALE_ATTEMPT"),
    (PlanBusy, 412, "PLAN_BUSY"),
    (PreconditionFailed, 412, "PRECONDITION_FAILED"),
    (NoJobs, 422, "NO_JOBS"),
    (UnknownJobs, 422, "UNKNOWN_JOBS"),
    (InvalidPreferences, 422, "INVALID_PREFERENCES"),
    (InvalidModification, 422, "INVALID_MODIFICATION"),
    (InputError, 422, "INVALID_INPUT"),
]


def _error_code(exc: Exception) -> tuple[int, str]:
    for exc_type, status, code in _ERROR_MAP:
        if isinstance(exc, exc_type):
            return status, code
    return 500, "DOMAIN_ERROR"


def _default_context() -> AppContext:
    return make_app_context(
        jobs=InMemoryJobSource(sample_jobs()),
        preferences=InMemoryPreferencesSource({SAMPLE_USER_ID: sample_preferences()}),
        stock=InMemoryStockSource({SAMPLE_USER_ID: sample_stock()}),
    )


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    ctx = context or _default_context()
    gate = ctx.gate

    app = FastAPI(
        title="fieldplan",
        version=__version__,
        docs_url="/docs" if os.getenv("ENABLE_DOCS", "false").lower() == "true" else None,
        redoc_url=None,
    )
    app.state.context = ctx

    app.add_middleware(SecurityHeadersMiddleware)
    _cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["*"],
    )

    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError):
        status, code = _error_code(exc)
        if status >= 500:
            _api_logger.error("%s %s: %s", request.method, request.url.path, redact_sensitive(str(exc)))
        details = []
        if isinstance(exc, PreconditionFailed):
            details = [f"operation={exc.operation}", f"status={exc.status}"]
        elif isinstance(exc, PlanConflict) and exc.existing_id:
            details = [f"existing_plan_id={exc.existing_id}"]
        body = ErrorResponse(code=code, message=str(exc), details=details)
        return JSONResponse(status_code=status, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse(status="ok", version=__version__)

    @app.get("/diagnostics", response_model=DiagnosticsResponse)
    def diagnostics():
        return DiagnosticsResponse(
            tools=describe_active_tools(ctx.settings),
            providers=resolve_provider_snapshot(ctx.settings),
            store_backend=getattr(ctx.store, "backend", "unknown"),
        )

    @app.post("/plans", response_model=DailyPlan)
    async def start_plan(req: StartPlanRequest):
        return await gate.start(req.user_id, req.planned_date, req.job_ids)

    @app.get("/plans/active", response_model=Optional[DailyPlan])
    def active_plan(user_id: str, planned_date: dt.date):
        return gate.get_active_plan(user_id, planned_date)

    @app.get("/plans/{plan_id}", response_model=DailyPlan)
    def get_plan(plan_id: str):
        return gate.get_plan(plan_id)

    @app.post("/plans/{plan_id}/confirm/dispatch", response_model=DailyPlan)
    async def confirm_dispatch(plan_id: str):
        return await gate.confirm_dispatch(plan_id)

    @app.post("/plans/{plan_id}/confirm/route", response_model=DailyPlan)
    async def confirm_route(plan_id: str):
        return await gate.confirm_route(plan_id)

    @app.post("/plans/{plan_id}/confirm/inventory", response_model=DailyPlan)
    async def confirm_inventory(plan_id: str):
        return await gate.confirm_inventory(plan_id)

    @app.post("/plans/{plan_id}/approve", response_model=DailyPlan)
    async def approve_plan(plan_id: str):
        return await gate.approve_plan(plan_id)

    @app.patch("/plans/{plan_id}/modifications", response_model=DailyPlan)
    async def save_modifications(plan_id: str, patch: ModificationPatch):
        return await gate.save_user_modifications(plan_id, patch)

    @app.post("/plans/{plan_id}/retry", response_model=DailyPlan)
    async def retry_plan(plan_id: str):
        return await gate.retry_planning(plan_id)

    @app.post("/plans/{plan_id}/reset", response_model=DailyPlan)
    async def reset_plan(plan_id: str):
        return await gate.reset_plan(plan_id)

    @app.get("/users/{user_id}/plans", response_model=list[DailyPlan])
    def list_plans(user_id: str, date_from: dt.date, date_to: dt.date):
        return gate.list_plans(user_id, date_from, date_to)

    @app.get("/users/{user_id}/plans/retryable", response_model=list[DailyPlan])
    def list_retryable(user_id: str):
        return gate.list_retryable(user_id)

    return app


app = create_app()


__all__ = ["app", "create_app"]
