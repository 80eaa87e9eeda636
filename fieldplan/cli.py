"""Command line entry point.

  python -m fieldplan.cli demo     # start -> confirm x3 over the sample day
  python -m fieldplan.cli serve    # run the HTTP API under uvicorn
  python -m fieldplan.cli recover  # fail plans stuck mid-stage
"""

from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import json
import sys

from dotenv import load_dotenv

from fieldplan.adapters.sources.memory import (
    InMemoryJobSource,
    InMemoryPreferencesSource,
    InMemoryStockSource,
)
from fieldplan.adapters.sources.sample import SAMPLE_USER_ID, sample_jobs, sample_preferences, sample_stock
from fieldplan.application.context import make_app_context
from fieldplan.config.settings import WorkflowSettings, load_settings
from fieldplan.domain.enums import PlanStatus
from fieldplan.domain.models import DailyPlan


def _dump(plan: DailyPlan) -> str:
    return json.dumps(plan.model_dump(mode="json"), ensure_ascii=False, indent=2)


async def run_demo(planned_date: dt.date) -> DailyPlan:
    jobs = sample_jobs()
    ctx = make_app_context(
        jobs=InMemoryJobSource(jobs),
        preferences=InMemoryPreferencesSource({SAMPLE_USER_ID: sample_preferences()}),
        stock=InMemoryStockSource({SAMPLE_USER_ID: sample_stock()}),
    )
    gate = ctx.gate
    plan = await gate.start(SAMPLE_USER_ID, planned_date, [job.id for job in jobs])
    for step in (gate.confirm_dispatch, gate.confirm_route, gate.confirm_inventory):
        if plan.status == PlanStatus.ERROR:
            break
        plan = await step(plan.id)
    return plan


async def run_recover(minutes: float | None, settings: WorkflowSettings | None = None) -> int:
    ctx = make_app_context(settings, reasoning=None)
    older_than = dt.timedelta(minutes=minutes) if minutes is not None else None
    recovered = await ctx.orchestrator.recover_stale_plans(older_than)
    for plan in recovered:
        print(f"{plan.id} {plan.user_id} {plan.planned_date} -> {plan.status.value}")
    return len(recovered)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(prog="fieldplan", description="Daily planning workflow for field technicians")
    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="run a full plan over built-in sample jobs")
    demo.add_argument("--date", default="", help="planned date (YYYY-MM-DD), defaults to today")

    serve = sub.add_parser("serve", help="start the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    recover = sub.add_parser("recover", help="mark stale in-flight plans as failed")
    recover.add_argument("--minutes", type=float, default=None, help="staleness window, defaults to STALE_PLAN_MINUTES")

    args = parser.parse_args(argv)

    if args.command == "demo":
        planned_date = dt.date.fromisoformat(args.date) if args.date else dt.date.today()
        plan = asyncio.run(run_demo(planned_date))
        print(_dump(plan))
        return 0 if plan.status == PlanStatus.APPROVED else 1

    if args.command == "serve":
        import uvicorn

        uvicorn.run("fieldplan.api.main:app", host=args.host, port=args.port)
        return 0

    settings = load_settings()
    if settings.store_backend != "sqlite":
        # an in-memory store starts empty in this process
        print("recover needs a persistent store: set FIELDPLAN_STORE=sqlite", file=sys.stderr)
        return 2
    asyncio.run(run_recover(args.minutes, settings))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
