"""Pydantic domain models."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from fieldplan.domain.constants import DEFAULT_JOB_DURATION_MINUTES
from fieldplan.domain.enums import (
    AlertType,
    ErrorKind,
    JobClassification,
    PlanStatus,
    PlanStep,
    ShoppingPriority,
)


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def parse_hhmm(text: str) -> int:
    """Return minutes after midnight for an ``HH:MM`` string."""
    hh, mm = str(text).strip().split(":")
    hours, minutes = int(hh), int(mm)
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or hours * 60 + minutes > 24 * 60:
        raise ValueError(f"invalid time of day: {text}")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class Coordinates(BaseModel):
    latitude: float
    longitude: float


# ── inputs ────────────────────────────────────────────


class RequiredPart(BaseModel):
    item_name: str
    quantity: int = Field(default=1, ge=0)
    unit: str = "each"
    category: str = "general"
    inventory_item_id: Optional[str] = None


class Job(BaseModel):
    id: str
    title: str = ""
    description: str = ""
    job_type: str = "service"
    priority: str = "medium"
    customer_id: str = ""
    coordinates: Coordinates
    estimated_duration: int = Field(default=DEFAULT_JOB_DURATION_MINUTES, ge=0)
    required_parts: list[RequiredPart] = Field(default_factory=list)


class StockItem(BaseModel):
    id: str
    name: str
    quantity: int = Field(default=0, ge=0)
    unit: str = "each"
    category: str = "general"


class UserPreferences(BaseModel):
    work_start: str = "08:00"
    work_end: str = "17:00"
    lunch_start: str = "12:00"
    lunch_end: str = "13:00"
    job_duration_buffer_minutes: int = 15
    emergency_job_types: list[str] = Field(default_factory=list)
    vip_customer_ids: list[str] = Field(default_factory=list)
    low_stock_threshold: int = 2
    home_base: Coordinates = Field(
        default_factory=lambda: Coordinates(latitude=37.7749, longitude=-122.4194)
    )
    primary_supplier: str = "home_depot"
    supplier_search_radius_miles: float = 15.0

    @field_validator("work_start", "work_end", "lunch_start", "lunch_end")
    @classmethod
    def _check_time(cls, value: str) -> str:
        parse_hhmm(value)
        return value.strip()

    @model_validator(mode="after")
    def _check_windows(self) -> "UserPreferences":
        start, end = parse_hhmm(self.work_start), parse_hhmm(self.work_end)
        lunch_start, lunch_end = parse_hhmm(self.lunch_start), parse_hhmm(self.lunch_end)
        if end <= start:
            raise ValueError("work_end must be after work_start")
        if lunch_end < lunch_start:
            raise ValueError("lunch_end must not be before lunch_start")
        if self.job_duration_buffer_minutes < 0:
            raise ValueError("job_duration_buffer_minutes must be >= 0")
        return self

    @property
    def work_start_minutes(self) -> int:
        return parse_hhmm(self.work_start)

    @property
    def work_end_minutes(self) -> int:
        return parse_hhmm(self.work_end)

    def _lunch_window(self) -> tuple[int, int]:
        """Lunch clipped to the work window; empty when the two do not overlap."""
        start, end = self.work_start_minutes, self.work_end_minutes
        lunch_start = min(max(parse_hhmm(self.lunch_start), start), end)
        lunch_end = min(max(parse_hhmm(self.lunch_end), start), end)
        return lunch_start, max(lunch_end, lunch_start)

    @property
    def lunch_start_minutes(self) -> int:
        return self._lunch_window()[0]

    @property
    def lunch_end_minutes(self) -> int:
        return self._lunch_window()[1]

    @property
    def available_work_minutes(self) -> int:
        lunch = self.lunch_end_minutes - self.lunch_start_minutes
        return max(self.work_end_minutes - self.work_start_minutes - lunch, 0)


# ── dispatch ──────────────────────────────────────────


class ScheduledJob(BaseModel):
    job_id: str
    priority_rank: int = Field(ge=1)
    classification: JobClassification
    priority_score: int
    start_time: dt.datetime
    end_time: dt.datetime
    buffer_minutes: int = 0
    reason: str = ""
    scheduling_notes: str = ""


class SchedulingConstraints(BaseModel):
    work_start: str
    work_end: str
    lunch_start: str
    lunch_end: str
    buffer_minutes: int
    inter_job_gap_minutes: int
    total_work_hours: float
    total_jobs_scheduled: int
    schedule_conflicts: list[str] = Field(default_factory=list)


class DispatchSummary(BaseModel):
    emergency_jobs: int = 0
    demand_jobs: int = 0
    maintenance_jobs: int = 0
    vip_clients: int = 0
    schedule_efficiency: int = 100


class DispatchOutput(BaseModel):
    kind: Literal["dispatch"] = "dispatch"
    prioritized_jobs: list[ScheduledJob] = Field(default_factory=list)
    unscheduled_job_ids: list[str] = Field(default_factory=list)
    scheduling_constraints: SchedulingConstraints
    summary: DispatchSummary = Field(default_factory=DispatchSummary)
    recommendations: list[str] = Field(default_factory=list)
    reasoning: str = ""
    reasoning_source: Literal["provider", "template"] = "template"

    def job_ids(self) -> list[str]:
        return [item.job_id for item in self.prioritized_jobs]


# ── route ─────────────────────────────────────────────


class Waypoint(BaseModel):
    job_id: str
    sequence: int = Field(ge=1)
    coordinates: Coordinates
    arrival: dt.datetime
    departure: dt.datetime
    waiting_minutes: float = 0.0
    service_minutes: float = 0.0
    travel_time_to_next: float = 0.0
    distance_to_next: float = 0.0


class RouteOutput(BaseModel):
    kind: Literal["route"] = "route"
    waypoints: list[Waypoint] = Field(default_factory=list)
    total_distance: float = 0.0
    total_travel_time: float = 0.0
    total_work_time: float = 0.0
    geometry: Optional[str] = None
    reasoning: str = ""

    def job_ids(self) -> list[str]:
        return [wp.job_id for wp in self.waypoints]


# ── inventory ─────────────────────────────────────────


class ManifestLine(BaseModel):
    item_name: str
    inventory_item_id: Optional[str] = None
    quantity_needed: int
    quantity_available: int
    unit: str = "each"
    category: str = "general"


class JobPartsManifest(BaseModel):
    job_id: str
    lines: list[ManifestLine] = Field(default_factory=list)


class ShoppingItem(BaseModel):
    item_name: str
    quantity: int
    unit: str = "each"
    category: str = "general"
    supplier: Optional[str] = None
    unit_price: Optional[float] = None
    estimated_cost: Optional[float] = None
    priority: ShoppingPriority = ShoppingPriority.LOW


class HardwareStoreJob(BaseModel):
    job_id: str
    title: str
    store_name: str
    address: str = ""
    coordinates: Optional[Coordinates] = None
    duration_minutes: int
    items: list[str] = Field(default_factory=list)
    total_estimated_cost: float = 0.0


class InventoryAlert(BaseModel):
    item_name: str
    alert_type: AlertType
    message: str


class InventoryOutput(BaseModel):
    kind: Literal["inventory"] = "inventory"
    parts_manifest: list[JobPartsManifest] = Field(default_factory=list)
    shopping_list: list[ShoppingItem] = Field(default_factory=list)
    hardware_store_job: Optional[HardwareStoreJob] = None
    alerts: list[InventoryAlert] = Field(default_factory=list)
    reasoning: str = ""


StageOutput = Annotated[
    Union[DispatchOutput, RouteOutput, InventoryOutput],
    Field(discriminator="kind"),
]


# ── plan aggregate ────────────────────────────────────


class ErrorState(BaseModel):
    stage: PlanStep
    kind: ErrorKind
    message: str = ""
    timestamp: dt.datetime = Field(default_factory=utc_now)
    retry_suggested: bool = True


class DispatchChanges(BaseModel):
    order: Optional[list[str]] = None
    rank_overrides: dict[str, int] = Field(default_factory=dict)
    removed_job_ids: list[str] = Field(default_factory=list)


class RouteChanges(BaseModel):
    removed_job_ids: list[str] = Field(default_factory=list)
    sequence_overrides: dict[str, int] = Field(default_factory=dict, description="job_id -> 1-based stop position")


class InventoryChanges(BaseModel):
    quantity_overrides: dict[str, int] = Field(default_factory=dict)
    removed_items: list[str] = Field(default_factory=list)
    include_hardware_store_job: Optional[bool] = None


class ModificationEntry(BaseModel):
    timestamp: dt.datetime = Field(default_factory=utc_now)
    patch: dict[str, Any] = Field(default_factory=dict)


class UserModifications(BaseModel):
    dispatch_changes: DispatchChanges = Field(default_factory=DispatchChanges)
    route_changes: RouteChanges = Field(default_factory=RouteChanges)
    inventory_changes: InventoryChanges = Field(default_factory=InventoryChanges)
    history: list[ModificationEntry] = Field(default_factory=list)


class ModificationPatch(BaseModel):
    """Partial user edit; every section is optional."""

    dispatch_changes: Optional[DispatchChanges] = None
    route_changes: Optional[RouteChanges] = None
    inventory_changes: Optional[InventoryChanges] = None


class ExecutionSummary(BaseModel):
    job_order: list[str] = Field(default_factory=list)
    shopping_list: list[ShoppingItem] = Field(default_factory=list)
    hardware_store_job: Optional[HardwareStoreJob] = None
    approved_at: dt.datetime = Field(default_factory=utc_now)


class DailyPlan(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    planned_date: dt.date
    job_ids: list[str] = Field(default_factory=list)
    status: PlanStatus = PlanStatus.PENDING
    current_step: PlanStep = PlanStep.DISPATCH
    attempt: int = 1
    dispatch_output: Optional[DispatchOutput] = None
    route_output: Optional[RouteOutput] = None
    inventory_output: Optional[InventoryOutput] = None
    user_modifications: UserModifications = Field(default_factory=UserModifications)
    execution_summary: Optional[ExecutionSummary] = None
    error_state: Optional[ErrorState] = None
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    def output_for(self, step: PlanStep) -> Optional[BaseModel]:
        return {
            PlanStep.DISPATCH: self.dispatch_output,
            PlanStep.ROUTE: self.route_output,
            PlanStep.INVENTORY: self.inventory_output,
        }.get(step)


IMMUTABLE_PLAN_FIELDS = frozenset({"id", "user_id", "planned_date", "job_ids", "created_at"})


class ErrorResponse(BaseModel):
    error: bool = True
    code: str = "UNKNOWN"
    message: str = ""
    details: list[str] = Field(default_factory=list)
