"""SQLite Plan Record Store: one row per plan, one column per top-level field."""

from __future__ import annotations

import datetime as dt
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from fieldplan.domain.enums import PlanStatus
from fieldplan.domain.exceptions import PlanConflict, PlanNotFound
from fieldplan.domain.models import DailyPlan
from fieldplan.persistence.records import apply_patch, check_attempt, check_patch

_logger = logging.getLogger("fieldplan.persistence")

_JSON_COLUMNS = (
    "job_ids",
    "dispatch_output",
    "route_output",
    "inventory_output",
    "user_modifications",
    "execution_summary",
    "error_state",
)
_COLUMNS = (
    "id",
    "user_id",
    "planned_date",
    "status",
    "current_step",
    "attempt",
    *_JSON_COLUMNS,
    "created_at",
    "updated_at",
)
_INACTIVE = tuple(s.value for s in (PlanStatus.APPROVED, PlanStatus.ERROR))


def _to_json(payload: Any) -> Optional[str]:
    if payload is None:
        return None
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def _from_json(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    return json.loads(raw)


def _to_row(plan: DailyPlan) -> tuple:
    data = plan.model_dump(mode="json")
    return tuple(
        _to_json(data[col]) if col in _JSON_COLUMNS else data[col]
        for col in _COLUMNS
    )


def _from_row(row: sqlite3.Row) -> DailyPlan:
    data = {col: (_from_json(row[col]) if col in _JSON_COLUMNS else row[col]) for col in _COLUMNS}
    return DailyPlan.model_validate(data)


class SQLitePlanStore:
    backend = "sqlite"

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=5.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        return conn

    def _init_schema(self) -> None:
        with self._lock, self._connect() as conn:
            conn.executescript(
                f"""
                CREATE TABLE IF NOT EXISTS daily_plans (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    planned_date TEXT NOT NULL,
                    status TEXT NOT NULL,
                    current_step TEXT NOT NULL,
                    attempt INTEGER NOT NULL DEFAULT 1,
                    job_ids TEXT NOT NULL,
                    dispatch_output TEXT,
                    route_output TEXT,
                    inventory_output TEXT,
                    user_modifications TEXT NOT NULL,
                    execution_summary TEXT,
                    error_state TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE UNIQUE INDEX IF NOT EXISTS idx_daily_plans_active
                    ON daily_plans(user_id, planned_date)
                    WHERE status NOT IN ('{_INACTIVE[0]}', '{_INACTIVE[1]}');
                CREATE INDEX IF NOT EXISTS idx_daily_plans_user_date ON daily_plans(user_id, planned_date);
                CREATE INDEX IF NOT EXISTS idx_daily_plans_status ON daily_plans(status, updated_at);
                """
            )

    def _fetch(self, conn: sqlite3.Connection, plan_id: str) -> DailyPlan:
        row = conn.execute("SELECT * FROM daily_plans WHERE id = ?", (plan_id,)).fetchone()
        if row is None:
            raise PlanNotFound(plan_id)
        return _from_row(row)

    def _fetch_active(self, conn: sqlite3.Connection, user_id: str, planned_date: dt.date) -> Optional[DailyPlan]:
        row = conn.execute(
            "SELECT * FROM daily_plans WHERE user_id = ? AND planned_date = ? AND status NOT IN (?, ?)",
            (user_id, planned_date.isoformat(), *_INACTIVE),
        ).fetchone()
        return _from_row(row) if row else None

    def create(self, user_id: str, planned_date: dt.date, job_ids: list[str]) -> DailyPlan:
        plan = DailyPlan(user_id=user_id, planned_date=planned_date, job_ids=list(job_ids))
        placeholders = ", ".join("?" for _ in _COLUMNS)
        with self._lock, self._connect() as conn:
            try:
                conn.execute(
                    f"INSERT INTO daily_plans ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                    _to_row(plan),
                )
            except sqlite3.IntegrityError:
                existing = self._fetch_active(conn, user_id, planned_date)
                raise PlanConflict(user_id, planned_date, existing.id if existing else None) from None
        return plan

    def get(self, plan_id: str) -> DailyPlan:
        with self._lock, self._connect() as conn:
            return self._fetch(conn, plan_id)

    def get_active(self, user_id: str, planned_date: dt.date) -> Optional[DailyPlan]:
        with self._lock, self._connect() as conn:
            return self._fetch_active(conn, user_id, planned_date)

    def update(
        self,
        plan_id: str,
        patch: Mapping[str, Any],
        *,
        expected_attempt: Optional[int] = None,
    ) -> DailyPlan:
        check_patch(patch)
        assignments = ", ".join(f"{col} = ?" for col in _COLUMNS if col != "id")
        with self._lock, self._connect() as conn:
            current = self._fetch(conn, plan_id)
            check_attempt(current, expected_attempt)
            updated = apply_patch(current, patch)
            row = _to_row(updated)
            try:
                conn.execute(f"UPDATE daily_plans SET {assignments} WHERE id = ?", (*row[1:], plan_id))
            except sqlite3.IntegrityError:
                _logger.warning("plan %s update refused: another active plan exists", plan_id)
                existing = self._fetch_active(conn, updated.user_id, updated.planned_date)
                raise PlanConflict(updated.user_id, updated.planned_date, existing.id if existing else None) from None
        return updated

    def list_plans(self, user_id: str, date_from: dt.date, date_to: dt.date) -> list[DailyPlan]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM daily_plans
                WHERE user_id = ? AND planned_date >= ? AND planned_date <= ?
                ORDER BY planned_date ASC, created_at ASC
                """,
                (user_id, date_from.isoformat(), date_to.isoformat()),
            ).fetchall()
        return [_from_row(row) for row in rows]

    def list_retryable(self, user_id: str) -> list[DailyPlan]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM daily_plans WHERE user_id = ? AND status = ? ORDER BY updated_at DESC",
                (user_id, PlanStatus.ERROR.value),
            ).fetchall()
        plans = [_from_row(row) for row in rows]
        return [p for p in plans if p.error_state is not None and p.error_state.retry_suggested]

    def list_stale(self, statuses: Iterable[PlanStatus], updated_before: dt.datetime) -> list[DailyPlan]:
        wanted = [PlanStatus(s).value for s in statuses]
        if not wanted:
            return []
        marks = ", ".join("?" for _ in wanted)
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM daily_plans WHERE status IN ({marks}) ORDER BY updated_at ASC",
                tuple(wanted),
            ).fetchall()
        # Compared on parsed datetimes; stored ISO strings may differ in offset format.
        return [p for p in (_from_row(row) for row in rows) if p.updated_at < updated_before]


__all__ = ["SQLitePlanStore"]
