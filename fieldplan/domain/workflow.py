"""Plan state machine: consistency table and transition preconditions."""

from __future__ import annotations

from fieldplan.domain.enums import PlanStatus, PlanStep
from fieldplan.domain.exceptions import CorruptPlanState, PreconditionFailed
from fieldplan.domain.models import DailyPlan

ALLOWED_STEPS: dict[PlanStatus, frozenset[PlanStep]] = {
    PlanStatus.PENDING: frozenset({PlanStep.DISPATCH}),
    PlanStatus.DISPATCH_COMPLETE: frozenset({PlanStep.ROUTE}),
    PlanStatus.AWAITING_CONFIRMATION: frozenset({PlanStep.ROUTE, PlanStep.INVENTORY}),
    PlanStatus.ROUTE_COMPLETE: frozenset({PlanStep.INVENTORY}),
    PlanStatus.INVENTORY_COMPLETE: frozenset({PlanStep.COMPLETE}),
    PlanStatus.READY_FOR_EXECUTION: frozenset({PlanStep.COMPLETE}),
    PlanStatus.APPROVED: frozenset({PlanStep.COMPLETE}),
    PlanStatus.ERROR: frozenset({PlanStep.DISPATCH, PlanStep.ROUTE, PlanStep.INVENTORY}),
}

# Outputs that must already exist before a stage may run.
_STEP_PREREQUISITES: dict[PlanStep, tuple[str, ...]] = {
    PlanStep.DISPATCH: (),
    PlanStep.ROUTE: ("dispatch_output",),
    PlanStep.INVENTORY: ("dispatch_output", "route_output"),
    PlanStep.COMPLETE: ("dispatch_output", "route_output", "inventory_output"),
}

# Which status each gate operation requires.
OPERATION_STATUSES: dict[str, frozenset[PlanStatus]] = {
    "confirm_dispatch": frozenset({PlanStatus.DISPATCH_COMPLETE}),
    "confirm_route": frozenset({PlanStatus.ROUTE_COMPLETE}),
    "confirm_inventory": frozenset({PlanStatus.INVENTORY_COMPLETE}),
    "retry_planning": frozenset({PlanStatus.ERROR}),
    "save_user_modifications": frozenset(
        set(PlanStatus) - {PlanStatus.APPROVED, PlanStatus.ERROR}
    ),
    "reset_plan": frozenset(PlanStatus),
}

# Stage a status hands over to when its confirmation is accepted.
NEXT_STAGE: dict[PlanStatus, PlanStep] = {
    PlanStatus.DISPATCH_COMPLETE: PlanStep.ROUTE,
    PlanStatus.ROUTE_COMPLETE: PlanStep.INVENTORY,
}

STAGE_COMPLETION: dict[PlanStep, tuple[PlanStatus, PlanStep]] = {
    PlanStep.DISPATCH: (PlanStatus.DISPATCH_COMPLETE, PlanStep.ROUTE),
    PlanStep.ROUTE: (PlanStatus.ROUTE_COMPLETE, PlanStep.INVENTORY),
    PlanStep.INVENTORY: (PlanStatus.INVENTORY_COMPLETE, PlanStep.COMPLETE),
}

# Statuses a plan may sit in while a stage call is outstanding.
IN_FLIGHT_STATUSES = frozenset({PlanStatus.PENDING, PlanStatus.AWAITING_CONFIRMATION})

ACTIVE_EXCLUDED_STATUSES = frozenset({PlanStatus.APPROVED, PlanStatus.ERROR})


def is_active(plan: DailyPlan) -> bool:
    return plan.status not in ACTIVE_EXCLUDED_STATUSES


def ensure_consistent(plan: DailyPlan) -> None:
    """Raise CorruptPlanState when status, current_step and outputs disagree."""
    allowed = ALLOWED_STEPS.get(plan.status)
    if allowed is None or plan.current_step not in allowed:
        raise CorruptPlanState(
            plan.id,
            f"current_step={plan.current_step.value} does not match status={plan.status.value}",
        )

    if plan.status == PlanStatus.ERROR:
        if plan.error_state is None:
            raise CorruptPlanState(plan.id, "status=error without error_state")
        required = _STEP_PREREQUISITES[plan.current_step]
    elif plan.status in IN_FLIGHT_STATUSES:
        required = _STEP_PREREQUISITES[plan.current_step]
    else:
        completed_step = {
            PlanStatus.DISPATCH_COMPLETE: PlanStep.ROUTE,
            PlanStatus.ROUTE_COMPLETE: PlanStep.INVENTORY,
        }.get(plan.status, PlanStep.COMPLETE)
        required = _STEP_PREREQUISITES[completed_step]

    missing = [name for name in required if getattr(plan, name) is None]
    if missing:
        raise CorruptPlanState(
            plan.id,
            f"status={plan.status.value} but {', '.join(missing)} missing",
        )
    if plan.status in {PlanStatus.READY_FOR_EXECUTION, PlanStatus.APPROVED} and plan.execution_summary is None:
        raise CorruptPlanState(plan.id, f"status={plan.status.value} without execution_summary")


def require_status(plan: DailyPlan, operation: str) -> None:
    """Raise PreconditionFailed unless ``operation`` is valid in the plan's status."""
    allowed = OPERATION_STATUSES[operation]
    if plan.status not in allowed:
        raise PreconditionFailed(operation, plan.status)


__all__ = [
    "ACTIVE_EXCLUDED_STATUSES",
    "ALLOWED_STEPS",
    "IN_FLIGHT_STATUSES",
    "NEXT_STAGE",
    "OPERATION_STATUSES",
    "STAGE_COMPLETION",
    "ensure_consistent",
    "is_active",
    "require_status",
]
