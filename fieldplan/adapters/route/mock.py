"""Mock routing solver: nearest-neighbour tour over haversine distances."""

from __future__ import annotations

import datetime as dt
import math

from fieldplan.domain.models import Coordinates
from fieldplan.shared.exceptions import ToolError
from fieldplan.tools.interfaces import RoutingRequest, RoutingSolution, RoutingStep, RoutingStop

SPEED_MAP = {
    "walking": 5.0,
    "cycling": 15.0,
    "driving": 40.0,
}
ROAD_FACTOR = 1.4


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    radius_km = 6371.0
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlon / 2) ** 2
    )
    return radius_km * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def estimate_distance_km(a: Coordinates, b: Coordinates) -> float:
    return haversine(a.latitude, a.longitude, b.latitude, b.longitude) * ROAD_FACTOR


def estimate_travel_minutes(distance_km: float, profile: str = "driving") -> float:
    speed = SPEED_MAP.get(profile)
    if speed is None:
        raise ToolError("mock_routing", f"Unknown vehicle profile: {profile}")
    return (distance_km / speed) * 60


def _nearest_neighbour(origin: Coordinates, stops: list[RoutingStop]) -> list[RoutingStop]:
    remaining = list(stops)
    ordered: list[RoutingStop] = []
    here = origin
    while remaining:
        # min() keeps the first of equal candidates, so ties follow input order.
        nxt = min(remaining, key=lambda s: estimate_distance_km(here, s.coordinates))
        remaining.remove(nxt)
        ordered.append(nxt)
        here = nxt.coordinates
    return ordered


class MockRoutingSolver:
    """Deterministic solver for tests and offline runs; no time-window checks."""

    async def solve(self, request: RoutingRequest) -> RoutingSolution:
        vehicle = request.vehicle
        ordered = _nearest_neighbour(vehicle.start, request.stops)

        clock = vehicle.time_window_start
        here = vehicle.start
        distance_m = 0.0
        travel_minutes = 0.0
        steps = [RoutingStep(type="start", coordinates=here, arrival=clock, distance=0.0)]

        for stop in ordered:
            km = estimate_distance_km(here, stop.coordinates)
            minutes = estimate_travel_minutes(km, vehicle.profile)
            distance_m += km * 1000
            travel_minutes += minutes
            clock = clock + dt.timedelta(minutes=minutes)
            steps.append(
                RoutingStep(
                    type="job",
                    job_id=stop.job_id,
                    coordinates=stop.coordinates,
                    arrival=clock,
                    service_minutes=stop.service_minutes,
                    distance=round(distance_m, 1),
                )
            )
            clock = clock + dt.timedelta(minutes=stop.service_minutes)
            here = stop.coordinates

        km = estimate_distance_km(here, vehicle.end)
        minutes = estimate_travel_minutes(km, vehicle.profile)
        distance_m += km * 1000
        travel_minutes += minutes
        clock = clock + dt.timedelta(minutes=minutes)
        steps.append(RoutingStep(type="end", coordinates=vehicle.end, arrival=clock, distance=round(distance_m, 1)))

        return RoutingSolution(
            steps=steps,
            total_distance=round(distance_m, 1),
            total_travel_time=round(travel_minutes, 1),
        )


__all__ = [
    "MockRoutingSolver",
    "estimate_distance_km",
    "estimate_travel_minutes",
    "haversine",
]
