"""Domain semantic exceptions."""

from __future__ import annotations


class DomainError(Exception):
    """Base domain exception."""


class InputError(DomainError):
    """Rejected before any stage runs; never written as error_state."""


class NoJobs(InputError):
    def __init__(self, message: str = "no jobs to plan"):
        super().__init__(message)


class InvalidPreferences(InputError):
    """Raised when user scheduling preferences are malformed."""


class PlanNotFound(DomainError):
    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"plan {plan_id} not found")


class PlanConflict(DomainError):
    """An active plan already exists for the same user and date."""

    def __init__(self, user_id: str, planned_date: object, existing_id: str | None = None):
        self.user_id = user_id
        self.planned_date = planned_date
        self.existing_id = existing_id
        super().__init__(f"active plan already exists for user={user_id} date={planned_date}")


class PreconditionFailed(DomainError):
    """The plan status does not allow the requested operation."""

    def __init__(self, operation: str, status: object, message: str = ""):
        self.operation = operation
        self.status = getattr(status, "value", status)
        super().__init__(message or f"{operation} is not allowed while plan status is {self.status}")


class PlanBusy(PreconditionFailed):
    def __init__(self, operation: str, status: object):
        super().__init__(operation, status, f"{operation} rejected: a stage is already running for this plan")


class CorruptPlanState(DomainError):
    """Persisted status/current_step/output combination is inconsistent."""

    def __init__(self, plan_id: str, detail: str):
        self.plan_id = plan_id
        super().__init__(f"plan {plan_id} is in a corrupt state: {detail}")


class StaleAttempt(DomainError):
    """A write carried an attempt number that a reset has since superseded."""

    def __init__(self, plan_id: str, expected: int, actual: int):
        self.plan_id = plan_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"plan {plan_id} attempt {expected} superseded by attempt {actual}")


class RoutingError(DomainError):
    """Routing solver returned no usable route."""


class UnknownJobs(InputError):
    def __init__(self, job_ids: list[str]):
        self.job_ids = list(job_ids)
        super().__init__(f"unknown job ids: {', '.join(self.job_ids)}")


class InvalidModification(InputError):
    """A user edit references unknown jobs or carries impossible values."""
