"""Route stage: one solver call, strictly validated, no fallback."""

from __future__ import annotations

import asyncio
import datetime as dt
from collections import Counter
from typing import Optional

from fieldplan.domain.exceptions import RoutingError
from fieldplan.domain.models import Job, RouteOutput, ScheduledJob, UserPreferences, Waypoint
from fieldplan.infrastructure.logging import StructuredLogger, get_logger
from fieldplan.tools.interfaces import RoutingRequest, RoutingSolution, RoutingSolver, RoutingStop, Vehicle


def _at(planned_date: dt.date, minutes: int) -> dt.datetime:
    return dt.datetime.combine(planned_date, dt.time()) + dt.timedelta(minutes=minutes)


def build_routing_request(
    scheduled: list[ScheduledJob],
    jobs: dict[str, Job],
    preferences: UserPreferences,
    planned_date: dt.date,
) -> RoutingRequest:
    day_start = _at(planned_date, preferences.work_start_minutes)
    day_end = _at(planned_date, preferences.work_end_minutes)
    stops = []
    for item in scheduled:
        # stop windows stay inside the vehicle window
        fits = day_start <= item.start_time and item.end_time <= day_end
        stops.append(
            RoutingStop(
                job_id=item.job_id,
                coordinates=jobs[item.job_id].coordinates,
                service_minutes=jobs[item.job_id].estimated_duration,
                time_window_start=item.start_time if fits else None,
                time_window_end=item.end_time if fits else None,
            )
        )
    vehicle = Vehicle(
        start=preferences.home_base,
        end=preferences.home_base,
        time_window_start=day_start,
        time_window_end=day_end,
    )
    return RoutingRequest(stops=stops, vehicle=vehicle)


def waypoints_from_solution(solution: RoutingSolution, expected_job_ids: list[str]) -> list[Waypoint]:
    """Map solver job steps to waypoints; every expected job exactly once."""
    job_steps = [step for step in solution.steps if step.type == "job"]
    seen = Counter(step.job_id for step in job_steps)
    missing = [job_id for job_id in expected_job_ids if seen[job_id] == 0]
    repeated = [job_id for job_id, count in seen.items() if count > 1]
    extra = [job_id for job_id in seen if job_id not in set(expected_job_ids)]
    if missing or repeated or extra:
        raise RoutingError(
            f"incomplete route: missing={missing} repeated={repeated} unexpected={extra}"
        )

    waypoints: list[Waypoint] = []
    for seq, step in enumerate(job_steps, start=1):
        departure = step.arrival + dt.timedelta(minutes=step.waiting_minutes + step.service_minutes)
        travel, distance = 0.0, 0.0
        if seq < len(job_steps):
            nxt = job_steps[seq]
            travel = max((nxt.arrival - departure).total_seconds() / 60, 0.0)
            distance = max(nxt.distance - step.distance, 0.0)
        waypoints.append(
            Waypoint(
                job_id=step.job_id,
                sequence=seq,
                coordinates=step.coordinates,
                arrival=step.arrival,
                departure=departure,
                waiting_minutes=round(step.waiting_minutes, 1),
                service_minutes=step.service_minutes,
                travel_time_to_next=round(travel, 1),
                distance_to_next=round(distance, 1),
            )
        )
    return waypoints


def _route_reasoning(output: RouteOutput) -> str:
    if not output.waypoints:
        return "No jobs to route."
    order = " -> ".join(wp.job_id for wp in output.waypoints)
    return (
        f"Route covers {len(output.waypoints)} stop(s): {order}. "
        f"{output.total_distance / 1000:.1f} km and {output.total_travel_time:.0f} min of driving, "
        f"{output.total_work_time:.0f} min total."
    )


class RouteStage:
    def __init__(
        self,
        solver: RoutingSolver,
        *,
        timeout_seconds: float = 30.0,
        logger: Optional[StructuredLogger] = None,
    ):
        self._solver = solver
        self._timeout = timeout_seconds
        self._logger = logger or get_logger()

    async def run(
        self,
        scheduled: list[ScheduledJob],
        jobs: dict[str, Job],
        preferences: UserPreferences,
        planned_date: dt.date,
    ) -> RouteOutput:
        if not scheduled:
            output = RouteOutput()
            output.reasoning = _route_reasoning(output)
            return output

        request = build_routing_request(scheduled, jobs, preferences, planned_date)
        self._logger.tool_call("routing", stops=len(request.stops))
        solution = await asyncio.wait_for(self._solver.solve(request), self._timeout)

        waypoints = waypoints_from_solution(solution, [item.job_id for item in scheduled])
        service = sum(wp.service_minutes + wp.waiting_minutes for wp in waypoints)
        output = RouteOutput(
            waypoints=waypoints,
            total_distance=solution.total_distance,
            total_travel_time=solution.total_travel_time,
            total_work_time=round(service + solution.total_travel_time, 1),
            geometry=solution.geometry,
        )
        output.reasoning = _route_reasoning(output)
        return output


__all__ = ["RouteStage", "build_routing_request", "waypoints_from_solution"]
