"""Deterministic job classification, scoring and work-day placement."""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field

from fieldplan.domain.constants import (
    CLASSIFICATION_WEIGHT,
    EMERGENCY_KEYWORDS,
    INTER_JOB_GAP_MINUTES,
    PRIORITY_WEIGHT,
    SCHEDULE_LOAD_WARNING_RATIO,
    UNKNOWN_PRIORITY_WEIGHT,
    VIP_BONUS,
)
from fieldplan.domain.enums import JobClassification, JobPriority
from fieldplan.domain.exceptions import NoJobs
from fieldplan.domain.models import (
    DispatchOutput,
    DispatchSummary,
    Job,
    ScheduledJob,
    SchedulingConstraints,
    UserPreferences,
    format_hhmm,
)

_KEYWORD_PATTERN = re.compile(r"\b(" + "|".join(EMERGENCY_KEYWORDS) + r")", re.IGNORECASE)
_EXTENDED_DURATION_MINUTES = 120


@dataclass
class ScoredJob:
    job: Job
    index: int
    classification: JobClassification
    classification_reason: str
    score: int
    is_vip: bool
    factors: list[str] = field(default_factory=list)


def classify_job(job: Job, preferences: UserPreferences) -> tuple[JobClassification, str]:
    emergency_types = {t.strip().lower() for t in preferences.emergency_job_types if t.strip()}
    if job.job_type.strip().lower() in emergency_types:
        return JobClassification.EMERGENCY, f"job type '{job.job_type}' is configured as emergency"

    match = _KEYWORD_PATTERN.search(f"{job.title}\n{job.description}")
    if match:
        return JobClassification.EMERGENCY, f"mentions '{match.group(1).lower()}'"

    if job.priority in (JobPriority.URGENT.value, JobPriority.HIGH.value):
        return JobClassification.DEMAND, f"{job.priority} priority requires a prompt response"

    return JobClassification.MAINTENANCE, "routine maintenance within the normal timeframe"


def priority_weight(priority: str) -> int:
    try:
        return PRIORITY_WEIGHT[JobPriority(priority)]
    except ValueError:
        return UNKNOWN_PRIORITY_WEIGHT


def score_job(job: Job, index: int, preferences: UserPreferences) -> ScoredJob:
    classification, reason = classify_job(job, preferences)
    base = CLASSIFICATION_WEIGHT[classification]
    factors = [f"{classification.value} +{base}"]
    score = base

    is_vip = bool(job.customer_id) and job.customer_id in set(preferences.vip_customer_ids)
    if is_vip:
        score += VIP_BONUS
        factors.append(f"VIP client +{VIP_BONUS}")

    weight = priority_weight(job.priority)
    score += weight
    factors.append(f"{job.priority} priority +{weight}")

    return ScoredJob(
        job=job,
        index=index,
        classification=classification,
        classification_reason=reason,
        score=score,
        is_vip=is_vip,
        factors=factors,
    )


def rank_jobs(jobs: list[Job], preferences: UserPreferences) -> list[ScoredJob]:
    """Score every job and sort descending; ties keep input order."""
    scored = [score_job(job, idx, preferences) for idx, job in enumerate(jobs)]
    return sorted(scored, key=lambda s: -s.score)


def _overlaps(start: int, end: int, window_start: int, window_end: int) -> bool:
    return window_end > window_start and start < window_end and end > window_start


def _scheduling_notes(item: ScoredJob, after_lunch: bool) -> str:
    notes: list[str] = []
    if item.classification == JobClassification.EMERGENCY:
        notes.append("Emergency priority")
    if item.is_vip:
        notes.append("VIP client")
    if item.job.estimated_duration > _EXTENDED_DURATION_MINUTES:
        notes.append("Extended duration job")
    text = ", ".join(notes) if notes else "Standard scheduling"
    return f"Scheduled after lunch break - {text}" if after_lunch else text


def _at(planned_date: dt.date, minutes: int) -> dt.datetime:
    return dt.datetime.combine(planned_date, dt.time()) + dt.timedelta(minutes=minutes)


def _slot(cursor: int, occupied: int, preferences: UserPreferences) -> tuple[int, int, bool]:
    """First start at or after ``cursor`` that does not run into lunch."""
    lunch_start, lunch_end = preferences.lunch_start_minutes, preferences.lunch_end_minutes
    start = cursor
    after_lunch = _overlaps(start, start + occupied, lunch_start, lunch_end)
    if after_lunch:
        start = lunch_end
    return start, start + occupied, after_lunch


def place_jobs(
    ranked: list[ScoredJob],
    preferences: UserPreferences,
    planned_date: dt.date,
) -> tuple[list[ScheduledJob], list[ScoredJob], list[ScoredJob]]:
    """Greedy placement into the work window.

    Returns (scheduled entries, scored jobs that were placed, scored jobs excluded).
    """
    work_end = preferences.work_end_minutes
    buffer_minutes = preferences.job_duration_buffer_minutes

    cursor = preferences.work_start_minutes
    scheduled: list[ScheduledJob] = []
    placed: list[ScoredJob] = []
    excluded: list[ScoredJob] = []

    for item in ranked:
        start, end, after_lunch = _slot(cursor, item.job.estimated_duration + buffer_minutes, preferences)
        if end > work_end:
            excluded.append(item)
            continue

        rank = len(scheduled) + 1
        reason = f"{item.classification.value}: {item.classification_reason}"
        if item.is_vip:
            reason += "; VIP client"
        scheduled.append(
            ScheduledJob(
                job_id=item.job.id,
                priority_rank=rank,
                classification=item.classification,
                priority_score=item.score,
                start_time=_at(planned_date, start),
                end_time=_at(planned_date, end),
                buffer_minutes=buffer_minutes,
                reason=reason,
                scheduling_notes=_scheduling_notes(item, after_lunch),
            )
        )
        placed.append(item)
        cursor = end + INTER_JOB_GAP_MINUTES

    return scheduled, placed, excluded


def retime_schedule(
    scheduled: list[ScheduledJob],
    jobs: dict[str, Job],
    preferences: UserPreferences,
    planned_date: dt.date,
) -> list[ScheduledJob]:
    """Re-place an edited order back to back with the same slot rules.

    Nothing is dropped; a job pushed past the end of the day keeps its late window.
    """
    cursor = preferences.work_start_minutes
    retimed: list[ScheduledJob] = []
    for item in scheduled:
        occupied = jobs[item.job_id].estimated_duration + item.buffer_minutes
        start, end, _ = _slot(cursor, occupied, preferences)
        retimed.append(
            item.model_copy(update={"start_time": _at(planned_date, start), "end_time": _at(planned_date, end)})
        )
        cursor = end + INTER_JOB_GAP_MINUTES
    return retimed


def _recommendations(
    jobs: list[Job],
    placed: list[ScoredJob],
    excluded: list[ScoredJob],
    preferences: UserPreferences,
) -> list[str]:
    recs: list[str] = []
    emergencies = sum(1 for s in placed if s.classification == JobClassification.EMERGENCY)
    if emergencies:
        recs.append(f"{emergencies} emergency job(s) prioritized for immediate response")
    if excluded:
        recs.append(
            f"{len(excluded)} job(s) cannot fit in the work schedule - consider extending hours or rescheduling"
        )
    vips = sum(1 for s in placed if s.is_vip)
    if vips:
        recs.append(f"{vips} VIP client job(s) scheduled with priority")
    available = preferences.available_work_minutes
    total = sum(job.estimated_duration for job in jobs)
    if available and total > available * SCHEDULE_LOAD_WARNING_RATIO:
        recs.append(f"Schedule is {round(total / available * 100)}% full - consider a light day")
    return recs


def build_dispatch(
    jobs: list[Job],
    preferences: UserPreferences,
    planned_date: dt.date,
) -> DispatchOutput:
    """Classify, score and schedule ``jobs``; reasoning is left as the template text."""
    if not jobs:
        raise NoJobs()

    ranked = rank_jobs(jobs, preferences)
    scheduled, placed, excluded = place_jobs(ranked, preferences, planned_date)

    conflicts = [
        f"{s.job.title or s.job.id}: cannot fit in work day - requires rescheduling"
        for s in excluded
    ]
    constraints = SchedulingConstraints(
        work_start=format_hhmm(preferences.work_start_minutes),
        work_end=format_hhmm(preferences.work_end_minutes),
        lunch_start=format_hhmm(preferences.lunch_start_minutes),
        lunch_end=format_hhmm(preferences.lunch_end_minutes),
        buffer_minutes=preferences.job_duration_buffer_minutes,
        inter_job_gap_minutes=INTER_JOB_GAP_MINUTES,
        total_work_hours=round(preferences.available_work_minutes / 60, 2),
        total_jobs_scheduled=len(scheduled),
        schedule_conflicts=conflicts,
    )
    summary = DispatchSummary(
        emergency_jobs=sum(1 for s in placed if s.classification == JobClassification.EMERGENCY),
        demand_jobs=sum(1 for s in placed if s.classification == JobClassification.DEMAND),
        maintenance_jobs=sum(1 for s in placed if s.classification == JobClassification.MAINTENANCE),
        vip_clients=sum(1 for s in placed if s.is_vip),
        schedule_efficiency=round(len(placed) / len(jobs) * 100),
    )
    output = DispatchOutput(
        prioritized_jobs=scheduled,
        unscheduled_job_ids=[s.job.id for s in excluded],
        scheduling_constraints=constraints,
        summary=summary,
        recommendations=_recommendations(jobs, placed, excluded, preferences),
    )
    output.reasoning = template_reasoning(output)
    output.reasoning_source = "template"
    return output


def reasoning_context(output: DispatchOutput) -> str:
    """Plain-text schedule summary handed to the reasoning provider."""
    lines = ["Prioritized jobs:"]
    for item in output.prioritized_jobs:
        lines.append(
            f"{item.priority_rank}. {item.job_id} [{item.classification.value}, score {item.priority_score}] "
            f"{item.start_time:%H:%M}-{item.end_time:%H:%M} - {item.reason}"
        )
    if output.unscheduled_job_ids:
        lines.append("Unscheduled: " + ", ".join(output.unscheduled_job_ids))
    s = output.summary
    lines.append(
        f"Counts: emergency={s.emergency_jobs} demand={s.demand_jobs} "
        f"maintenance={s.maintenance_jobs} vip={s.vip_clients} efficiency={s.schedule_efficiency}%"
    )
    if output.recommendations:
        lines.append("Recommendations: " + "; ".join(output.recommendations))
    return "\n".join(lines)


def template_reasoning(output: DispatchOutput) -> str:
    s = output.summary
    lines = [
        "DISPATCH ANALYSIS",
        f"- {s.emergency_jobs} emergency job(s) prioritized for immediate response",
        f"- {s.demand_jobs} demand job(s) scheduled within the response window",
        f"- {s.maintenance_jobs} maintenance job(s) sequenced after urgent work",
        f"- {s.vip_clients} VIP client job(s) given priority treatment",
        f"Schedule efficiency: {s.schedule_efficiency}%",
    ]
    top = output.prioritized_jobs[:3]
    if top:
        lines.append("Key decisions:")
        lines.extend(f"{item.priority_rank}. {item.job_id} - {item.reason}" for item in top)
    conflicts = output.scheduling_constraints.schedule_conflicts
    lines.append("Attention: " + ("; ".join(conflicts) if conflicts else "no scheduling conflicts detected"))
    return "\n".join(lines)


__all__ = [
    "ScoredJob",
    "build_dispatch",
    "classify_job",
    "place_jobs",
    "priority_weight",
    "rank_jobs",
    "reasoning_context",
    "retime_schedule",
    "score_job",
    "template_reasoning",
]
