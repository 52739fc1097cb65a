"""Visit-order construction for route waypoints.

Nearest-neighbour tour construction over haversine distances. The tour is an
approximation: O(n^2) and without a refinement pass, so callers should bound
the number of points per call.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate, ZoneCategory
from ..geospatial import distance_meters

MINUTES_PER_BREAK_WINDOW = 240
BREAK_MINUTES = 15


@dataclass(slots=True)
class SequencingResult:
    coordinates: list[Coordinate]
    original_distance_m: float
    optimized_distance_m: float
    improvement_percentage: float
    execution_time_ms: float
    algorithm: str = "nearest_neighbor"


@dataclass(slots=True)
class PointTiming:
    point_order: int
    work_minutes: float
    travel_minutes: float
    cumulative_minutes: float


@dataclass(slots=True)
class RouteTimeEstimate:
    total_minutes: int
    work_minutes: int
    travel_minutes: int
    setup_minutes: int
    break_minutes: int
    breakdown: list[PointTiming]


def path_distance_meters(coordinates: Sequence[Coordinate]) -> float:
    """Length of the open path visiting the coordinates in order."""

    return sum(distance_meters(coordinates[i - 1], coordinates[i]) for i in range(1, len(coordinates)))


def _greedy_walk(origin: Coordinate, coordinates: Sequence[Coordinate], candidates: list[int]) -> list[int]:
    order: list[int] = []
    current = origin
    remaining = list(candidates)
    while remaining:
        nearest = 0
        nearest_distance = math.inf
        for position, index in enumerate(remaining):
            distance = distance_meters(current, coordinates[index])
            if distance < nearest_distance:
                nearest, nearest_distance = position, distance
        chosen = remaining.pop(nearest)
        order.append(chosen)
        current = coordinates[chosen]
    return order


def nearest_neighbor_order(coordinates: Sequence[Coordinate]) -> list[int]:
    """Visit order, as indices into ``coordinates``, of a walk from the first one."""

    if len(coordinates) <= 2:
        return list(range(len(coordinates)))
    return [0] + _greedy_walk(coordinates[0], coordinates, list(range(1, len(coordinates))))


def optimize_route_points(
    coordinates: Sequence[Coordinate],
    start: Optional[Coordinate] = None,
) -> list[Coordinate]:
    """Greedy nearest-neighbour ordering.

    Two or fewer points are returned unchanged. The walk begins at ``start``
    (removed from the candidates when one of them has the same id) or at the
    first coordinate, and ties resolve to the earliest remaining coordinate.
    """

    if len(coordinates) <= 2:
        return list(coordinates)
    if start is None:
        return [coordinates[index] for index in nearest_neighbor_order(coordinates)]

    start_index = next((i for i, coordinate in enumerate(coordinates) if coordinate.id == start.id), None)
    candidates = [i for i in range(len(coordinates)) if i != start_index]
    return [start] + [coordinates[index] for index in _greedy_walk(start, coordinates, candidates)]


def sequence_route(coordinates: Sequence[Coordinate], start: Optional[Coordinate] = None) -> SequencingResult:
    started = time.perf_counter()
    ordered = optimize_route_points(coordinates, start)
    original = path_distance_meters(coordinates)
    optimized = path_distance_meters(ordered)
    improvement = (original - optimized) / original * 100 if original > 0 else 0.0
    return SequencingResult(
        coordinates=ordered,
        original_distance_m=original,
        optimized_distance_m=optimized,
        improvement_percentage=improvement,
        execution_time_ms=(time.perf_counter() - started) * 1000,
    )


def estimate_route_time(
    stops: Sequence[tuple[Coordinate, Optional[int]]],
    *,
    zone_category: ZoneCategory | None = None,
    speed_kmh: float | None = None,
    include_setup: bool = True,
    include_breaks: bool = True,
) -> RouteTimeEstimate:
    """Work, travel, setup and break minutes for stops visited in order.

    ``stops`` pairs each coordinate with its own work estimate in minutes
    (``None`` falls back to the configured default).
    """

    if speed_kmh is None:
        speed_kmh = settings.metropolitan_speed_kmh if zone_category == "metropolitan" else settings.rural_speed_kmh

    work_total = 0.0
    travel_total = 0.0
    cumulative = 0.0
    breakdown: list[PointTiming] = []
    for index, (coordinate, minutes) in enumerate(stops):
        work = float(minutes if minutes is not None else settings.default_point_work_minutes)
        travel = 0.0
        if index > 0:
            travel = distance_meters(stops[index - 1][0], coordinate) / 1000 / speed_kmh * 60
        work_total += work
        travel_total += travel
        cumulative += work + travel
        breakdown.append(PointTiming(index + 1, work, travel, cumulative))

    setup = settings.route_setup_minutes if include_setup else 0
    breaks = int(cumulative // MINUTES_PER_BREAK_WINDOW) * BREAK_MINUTES if include_breaks else 0
    return RouteTimeEstimate(
        total_minutes=round(work_total + travel_total + setup + breaks),
        work_minutes=round(work_total),
        travel_minutes=round(travel_total),
        setup_minutes=setup,
        break_minutes=breaks,
        breakdown=breakdown,
    )
