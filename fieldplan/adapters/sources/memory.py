"""In-memory job, preference and stock sources."""

from __future__ import annotations

from typing import Iterable, Optional

from fieldplan.domain.exceptions import UnknownJobs
from fieldplan.domain.models import Job, StockItem, UserPreferences


class InMemoryJobSource:
    def __init__(self, jobs: Optional[Iterable[Job]] = None):
        self._jobs: dict[str, Job] = {job.id: job for job in jobs or []}

    def add(self, job: Job) -> None:
        self._jobs[job.id] = job

    async def get_jobs(self, user_id: str, job_ids: list[str]) -> list[Job]:
        """Return jobs in the requested order; unknown ids are an input error."""
        missing = [job_id for job_id in job_ids if job_id not in self._jobs]
        if missing:
            raise UnknownJobs(missing)
        return [self._jobs[job_id] for job_id in job_ids]


class InMemoryPreferencesSource:
    def __init__(self, preferences: Optional[dict[str, UserPreferences]] = None):
        self._prefs = dict(preferences or {})

    def set(self, user_id: str, preferences: UserPreferences) -> None:
        self._prefs[user_id] = preferences

    async def get_preferences(self, user_id: str) -> UserPreferences:
        return self._prefs.get(user_id) or UserPreferences()


class InMemoryStockSource:
    def __init__(self, stock: Optional[dict[str, list[StockItem]]] = None):
        self._stock = {user: list(items) for user, items in (stock or {}).items()}

    def set(self, user_id: str, items: list[StockItem]) -> None:
        self._stock[user_id] = list(items)

    async def get_stock(self, user_id: str) -> list[StockItem]:
        return list(self._stock.get(user_id, []))


__all__ = ["InMemoryJobSource", "InMemoryPreferencesSource", "InMemoryStockSource"]
