"""Capability protocols and I/O schemas."""

from __future__ import annotations

import datetime as dt
from typing import Literal, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from fieldplan.domain.models import Coordinates, Job, StockItem, UserPreferences
from fieldplan.shared.exceptions import ToolError


class RoutingStop(BaseModel):
    job_id: str
    coordinates: Coordinates
    service_minutes: float = 0.0
    time_window_start: Optional[dt.datetime] = None
    time_window_end: Optional[dt.datetime] = None


class Vehicle(BaseModel):
    id: str = "main_vehicle"
    start: Coordinates
    end: Coordinates
    time_window_start: dt.datetime
    time_window_end: dt.datetime
    profile: str = "driving"


class RoutingRequest(BaseModel):
    stops: list[RoutingStop] = Field(default_factory=list)
    vehicle: Vehicle


class RoutingStep(BaseModel):
    type: Literal["start", "job", "end"]
    job_id: Optional[str] = None
    coordinates: Coordinates
    arrival: dt.datetime
    waiting_minutes: float = Field(default=0.0, description="Idle time before service may start")
    service_minutes: float = 0.0
    distance: float = Field(default=0.0, description="Cumulative meters driven on arrival")


class RoutingSolution(BaseModel):
    steps: list[RoutingStep] = Field(default_factory=list)
    total_distance: float = Field(default=0.0, description="Meters")
    total_travel_time: float = Field(default=0.0, description="Minutes spent driving")
    geometry: Optional[str] = None


class SupplierQueryItem(BaseModel):
    name: str
    category: str = "general"
    quantity: int = 1


class SupplierQuery(BaseModel):
    supplier: str
    items: list[SupplierQueryItem] = Field(default_factory=list)
    location: Coordinates
    radius_miles: float = 15.0


class StoreLocation(BaseModel):
    store_id: str
    store_name: str
    address: str = ""
    coordinates: Coordinates
    distance_miles: float = 0.0


class ItemAvailability(BaseModel):
    item_name: str
    price: float
    stock_quantity: int = 0
    in_stock: bool = False
    unit: str = "each"


class SupplierResult(BaseModel):
    supplier: str
    success: bool = True
    stores: list[StoreLocation] = Field(default_factory=list)
    items: list[ItemAvailability] = Field(default_factory=list)
    message: str = ""


@runtime_checkable
class ReasoningProvider(Protocol):
    async def explain(self, context: str) -> str: ...


@runtime_checkable
class RoutingSolver(Protocol):
    async def solve(self, request: RoutingRequest) -> RoutingSolution: ...


@runtime_checkable
class SupplierLookup(Protocol):
    async def lookup(self, query: SupplierQuery) -> SupplierResult: ...


@runtime_checkable
class JobSource(Protocol):
    async def get_jobs(self, user_id: str, job_ids: list[str]) -> list[Job]: ...


@runtime_checkable
class PreferencesSource(Protocol):
    async def get_preferences(self, user_id: str) -> UserPreferences: ...


@runtime_checkable
class StockSource(Protocol):
    async def get_stock(self, user_id: str) -> list[StockItem]: ...


__all__ = [
    "ItemAvailability",
    "JobSource",
    "PreferencesSource",
    "ReasoningProvider",
    "RoutingRequest",
    "RoutingSolution",
    "RoutingSolver",
    "RoutingStep",
    "RoutingStop",
    "StockSource",
    "StoreLocation",
    "SupplierLookup",
    "SupplierQuery",
    "SupplierQueryItem",
    "SupplierResult",
    "ToolError",
    "Vehicle",
]
