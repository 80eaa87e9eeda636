"""VROOM routing solver over HTTP.

Request and response follow the VROOM JSON API: locations are
``[longitude, latitude]``, times are epoch seconds, durations are seconds.
Plan job ids travel in the ``description`` field since VROOM ids are ints.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Optional

import httpx

from fieldplan.domain.models import Coordinates
from fieldplan.infrastructure.http_client import AsyncJsonClient
from fieldplan.shared.exceptions import ToolError
from fieldplan.tools.interfaces import RoutingRequest, RoutingSolution, RoutingStep

_logger = logging.getLogger("fieldplan.routing")

_PROFILE_MAP = {"driving": "car", "cycling": "bike", "walking": "foot"}


def _loc(c: Coordinates) -> list[float]:
    return [c.longitude, c.latitude]


def _epoch(value: dt.datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return int(value.timestamp())


def _from_epoch(seconds: float, like: dt.datetime) -> dt.datetime:
    out = dt.datetime.fromtimestamp(seconds, tz=dt.timezone.utc)
    return out if like.tzinfo is not None else out.replace(tzinfo=None)


def build_vroom_payload(request: RoutingRequest) -> dict[str, Any]:
    vehicle = request.vehicle
    jobs = []
    for idx, stop in enumerate(request.stops, start=1):
        job: dict[str, Any] = {
            "id": idx,
            "description": stop.job_id,
            "location": _loc(stop.coordinates),
            "service": int(round(stop.service_minutes * 60)),
        }
        if stop.time_window_start and stop.time_window_end:
            job["time_windows"] = [[_epoch(stop.time_window_start), _epoch(stop.time_window_end)]]
        jobs.append(job)
    return {
        "jobs": jobs,
        "vehicles": [
            {
                "id": 1,
                "description": vehicle.id,
                "profile": _PROFILE_MAP.get(vehicle.profile, "car"),
                "start": _loc(vehicle.start),
                "end": _loc(vehicle.end),
                "time_window": [_epoch(vehicle.time_window_start), _epoch(vehicle.time_window_end)],
            }
        ],
        "options": {"g": True},
    }


def parse_vroom_response(data: dict[str, Any], request: RoutingRequest) -> RoutingSolution:
    code = data.get("code", 0)
    if code != 0:
        raise ToolError("routing", f"solver returned code {code}: {data.get('error', '')}".strip())
    if data.get("unassigned"):
        raise ToolError("routing", f"no feasible route: {len(data['unassigned'])} job(s) unassigned")
    routes = data.get("routes") or []
    if not routes:
        raise ToolError("routing", "no feasible route: solver returned no routes")

    route = routes[0]
    stop_by_index = {idx: stop for idx, stop in enumerate(request.stops, start=1)}
    like = request.vehicle.time_window_start
    steps: list[RoutingStep] = []
    for raw in route.get("steps", []):
        kind = raw.get("type")
        if kind not in {"start", "job", "end"}:
            continue
        lon, lat = raw.get("location", [0.0, 0.0])
        job_id: Optional[str] = None
        if kind == "job":
            stop = stop_by_index.get(raw.get("id"))
            job_id = stop.job_id if stop else raw.get("description")
        steps.append(
            RoutingStep(
                type=kind,
                job_id=job_id,
                coordinates=Coordinates(latitude=lat, longitude=lon),
                arrival=_from_epoch(raw.get("arrival", 0), like),
                waiting_minutes=raw.get("waiting_time", 0) / 60,
                service_minutes=raw.get("service", 0) / 60,
                distance=float(raw.get("distance", 0.0)),
            )
        )

    duration = float(route.get("duration", 0))
    return RoutingSolution(
        steps=steps,
        total_distance=float(route.get("distance", 0.0)),
        total_travel_time=round(duration / 60, 1),
        geometry=route.get("geometry"),
    )


class VroomRoutingSolver:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ToolError("routing", "VROOM_API_URL is not configured")
        self._client = AsyncJsonClient(base_url, timeout=timeout, tool_name="routing", transport=transport)

    async def solve(self, request: RoutingRequest) -> RoutingSolution:
        payload = build_vroom_payload(request)
        _logger.debug("vroom solve: %d job(s)", len(payload["jobs"]))
        data = await self._client.post("", payload)
        return parse_vroom_response(data, request)


__all__ = ["VroomRoutingSolver", "build_vroom_payload", "parse_vroom_response"]
