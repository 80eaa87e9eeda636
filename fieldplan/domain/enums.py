"""Domain enums."""

from enum import Enum


class PlanStatus(str, Enum):
    PENDING = "pending"
    DISPATCH_COMPLETE = "dispatch_complete"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    ROUTE_COMPLETE = "route_complete"
    INVENTORY_COMPLETE = "inventory_complete"
    READY_FOR_EXECUTION = "ready_for_execution"
    APPROVED = "approved"
    ERROR = "error"


class PlanStep(str, Enum):
    DISPATCH = "dispatch"
    ROUTE = "route"
    INVENTORY = "inventory"
    COMPLETE = "complete"


class JobClassification(str, Enum):
    EMERGENCY = "emergency"
    DEMAND = "demand"
    MAINTENANCE = "maintenance"


class JobPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ErrorKind(str, Enum):
    CAPABILITY_FAILURE = "capability_failure"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class AlertType(str, Enum):
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    SUPPLIER_UNAVAILABLE = "supplier_unavailable"
    NOT_STOCKED = "not_stocked"


class ShoppingPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PlanEventType(str, Enum):
    CREATED = "created"
    STAGE_STARTED = "stage_started"
    STAGE_COMPLETED = "stage_completed"
    STAGE_FAILED = "stage_failed"
    MODIFIED = "modified"
    APPROVED = "approved"
    RESET = "reset"
    RECOVERED = "recovered"
