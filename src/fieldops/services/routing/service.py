"""Route status transitions and route-level operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Literal, Optional

from ...errors import NotFoundError, RouteStatusError
from ...models.domain import Route, RouteStatus
from ...persistence.repositories import RoutePointRepository, RouteRepository, ZoneRepository
from ..classifier import ZoneClassifier
from .sequencer import RouteTimeEstimate, estimate_route_time, nearest_neighbor_order, path_distance_meters

logger = logging.getLogger(__name__)

RouteAction = Literal["assign", "start", "finish", "cancel", "unassign"]

TRANSITIONS: dict[str, tuple[frozenset[str], RouteStatus]] = {
    "assign": (frozenset({"pending"}), "assigned"),
    "start": (frozenset({"assigned"}), "in_progress"),
    "finish": (frozenset({"in_progress"}), "completed"),
    "cancel": (frozenset({"pending"}), "cancelled"),
    "unassign": (frozenset({"assigned", "in_progress"}), "pending"),
}

MINUTES_PER_KM = 2
MINUTES_PER_POINT = 15


def transition(route: Route, action: RouteAction, inspector_id: Optional[str] = None) -> Route:
    """Return a copy of ``route`` moved through ``action``.

    Raises ``RouteStatusError`` when the action is not allowed from the route's
    current status, and ``ValueError`` for an unknown action or an assignment
    without an inspector.
    """

    if action not in TRANSITIONS:
        raise ValueError(f"Unknown route action '{action}'.")
    allowed_from, target = TRANSITIONS[action]
    if route.status not in allowed_from:
        raise RouteStatusError(route.id, route.status, action)

    if action == "assign":
        if not inspector_id:
            raise ValueError("An inspector id is required to assign a route.")
        return replace(route, status=target, assigned_inspector_id=inspector_id)
    if action == "unassign":
        return replace(route, status=target, assigned_inspector_id=None)
    return replace(route, status=target)


@dataclass(slots=True)
class RouteOptimization:
    route_id: str
    ordered_point_ids: list[str]
    original_distance_m: float
    optimized_distance_m: float
    estimated_duration_minutes: int


@dataclass(slots=True)
class RouteZoneValidation:
    route_id: str
    total_points: int
    valid_points: int = 0
    invalid_points: int = 0
    unassigned_points: int = 0
    mismatched_point_ids: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.invalid_points == 0 and self.unassigned_points == 0


class RouteService:
    def __init__(
        self,
        routes: RouteRepository,
        points: RoutePointRepository,
        zones: ZoneRepository,
        classifier: Optional[ZoneClassifier] = None,
    ) -> None:
        self.routes = routes
        self.points = points
        self.zones = zones
        self.classifier = classifier or ZoneClassifier(zones)

    def _get(self, route_id: str) -> Route:
        route = self.routes.find_by_id(route_id)
        if route is None:
            raise NotFoundError(f"Route '{route_id}' not found.")
        return route

    def apply(self, route_id: str, action: RouteAction, inspector_id: Optional[str] = None) -> Route:
        route = transition(self._get(route_id), action, inspector_id)
        saved = self.routes.save(route)
        logger.info("Route %s %s -> %s", route_id, action, saved.status)
        return saved

    def assign(self, route_id: str, inspector_id: str) -> Route:
        return self.apply(route_id, "assign", inspector_id)

    def start(self, route_id: str) -> Route:
        return self.apply(route_id, "start")

    def finish(self, route_id: str) -> Route:
        return self.apply(route_id, "finish")

    def cancel(self, route_id: str) -> Route:
        return self.apply(route_id, "cancel")

    def unassign(self, route_id: str) -> Route:
        return self.apply(route_id, "unassign")

    def optimize_route_order(self, route_id: str) -> RouteOptimization:
        """Resequence a route's points and refresh its duration estimate.

        Routes with two points or fewer keep their order.
        """

        route = self._get(route_id)
        points = self.points.find_by_route(route_id)
        coordinates = [point.coordinate for point in points]
        original = path_distance_meters(coordinates)

        if len(points) <= 2:
            ordered = points
        else:
            ordered = [points[index] for index in nearest_neighbor_order(coordinates)]
            self.points.reorder_points(route_id, [point.id for point in ordered])

        optimized = path_distance_meters([point.coordinate for point in ordered])
        duration = round(optimized / 1000 * MINUTES_PER_KM + len(points) * MINUTES_PER_POINT)
        self.routes.save(replace(route, estimated_duration_minutes=duration))
        logger.info("Optimized route %s: %.0f m -> %.0f m", route_id, original, optimized)
        return RouteOptimization(
            route_id=route_id,
            ordered_point_ids=[point.id for point in ordered],
            original_distance_m=original,
            optimized_distance_m=optimized,
            estimated_duration_minutes=duration,
        )

    def validate_route_zones(self, route_id: str) -> RouteZoneValidation:
        self._get(route_id)
        points = self.points.find_by_route(route_id)
        report = RouteZoneValidation(route_id=route_id, total_points=len(points))
        for point in points:
            detection = self.classifier.detect(point.coordinate)
            if detection.zone is None:
                report.unassigned_points += 1
            elif detection.zone.id == point.coordinate.zone_id:
                report.valid_points += 1
            else:
                report.invalid_points += 1
                report.mismatched_point_ids.append(point.id)
        return report

    def estimate_route_time(
        self,
        route_id: str,
        *,
        include_setup: bool = True,
        include_breaks: bool = True,
        speed_kmh: float | None = None,
    ) -> RouteTimeEstimate:
        route = self._get(route_id)
        zone = self.zones.find_by_id(route.zone_id) if route.zone_id else None
        stops = [(point.coordinate, point.estimated_minutes) for point in self.points.find_by_route(route_id)]
        return estimate_route_time(
            stops,
            zone_category=zone.category if zone else None,
            speed_kmh=speed_kmh,
            include_setup=include_setup,
            include_breaks=include_breaks,
        )
