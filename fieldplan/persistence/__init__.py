from fieldplan.persistence.repository import (
    InMemoryPlanStore,
    PlanRecordStore,
    get_plan_store,
)
from fieldplan.persistence.sqlite_repository import SQLitePlanStore

__all__ = [
    "InMemoryPlanStore",
    "PlanRecordStore",
    "SQLitePlanStore",
    "get_plan_store",
]
