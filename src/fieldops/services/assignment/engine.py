"""Weighted route-to-inspector assignment with conflict checks."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from ...config import settings
from ...errors import CollaboratorError
from ...models.domain import PRIORITY_RANK, Inspector, Route
from ...persistence.repositories import InspectorRepository, RouteRepository, WorkloadProvider
from .models import (
    AssignmentConflict,
    AssignmentOptions,
    AssignmentRecommendations,
    AssignmentResult,
    AssignmentScore,
    RouteAssignment,
    ScoreFactors,
    WorkloadSummary,
)
from .workload import ACTIVE_ROUTE_STATUSES, WorkloadSnapshot

logger = logging.getLogger(__name__)

WEIGHTS = ScoreFactors(zone_match=0.4, workload_balance=0.3, availability=0.2, priority=0.1)
PRIORITY_WEIGHT = {"high": 100, "medium": 70, "low": 40}
UNKNOWN_ZONE = "unknown"


def score_inspector(
    route: Route,
    inspector: Inspector,
    utilization: float,
    options: AssignmentOptions,
) -> AssignmentScore:
    if options.prioritize_zone_preference and route.zone_id:
        if route.zone_id in inspector.preferred_zones:
            zone_match = 100.0
        else:
            zone_match = 30.0 if options.allow_cross_zone_assignment else 0.0
    else:
        zone_match = 50.0

    workload_balance = max(0.0, 100 - utilization) if options.balance_workload else 50.0
    # no schedule data is consulted; every active inspector counts as available
    availability = 80.0 if options.consider_availability else 50.0
    priority = float(PRIORITY_WEIGHT.get(route.priority, PRIORITY_WEIGHT["low"]))

    factors = ScoreFactors(zone_match, workload_balance, availability, priority)
    total = (
        zone_match * WEIGHTS.zone_match
        + workload_balance * WEIGHTS.workload_balance
        + availability * WEIGHTS.availability
        + priority * WEIGHTS.priority
    )
    return AssignmentScore(inspector_id=inspector.id, route_id=route.id, score=round(total), factors=factors)


def detect_conflicts(
    route: Route,
    inspector: Inspector,
    snapshot: WorkloadSnapshot,
    options: AssignmentOptions,
) -> list[AssignmentConflict]:
    metrics = snapshot.get(inspector.id)
    if metrics is None:
        return [
            AssignmentConflict(route.id, inspector.id, "capacity_exceeded", "Inspector metrics not available", "high")
        ]

    conflicts: list[AssignmentConflict] = []
    if metrics.available_capacity <= 0:
        conflicts.append(
            AssignmentConflict(
                route.id,
                inspector.id,
                "capacity_exceeded",
                f"Inspector has no available capacity ({metrics.current_routes}/{metrics.max_daily_routes})",
                "high",
            )
        )

    if (
        options.prioritize_zone_preference
        and route.zone_id
        and route.zone_id not in inspector.preferred_zones
        and not options.allow_cross_zone_assignment
    ):
        conflicts.append(
            AssignmentConflict(
                route.id,
                inspector.id,
                "zone_mismatch",
                f"Route zone {route.zone_id} not in inspector's preferred zones",
                "medium",
            )
        )

    projected = (metrics.current_routes + 1) / metrics.max_daily_routes * 100
    if projected > options.max_utilization_threshold:
        conflicts.append(
            AssignmentConflict(
                route.id,
                inspector.id,
                "capacity_exceeded",
                f"Assignment would exceed utilization threshold "
                f"({round(projected)}% > {options.max_utilization_threshold:g}%)",
                "medium",
            )
        )
    return conflicts


def can_resolve(conflicts: Sequence[AssignmentConflict], options: AssignmentOptions) -> bool:
    if any(conflict.severity == "high" for conflict in conflicts):
        return False
    if not options.allow_cross_zone_assignment and any(c.conflict_type == "zone_mismatch" for c in conflicts):
        return False
    return True


class AssignmentEngine:
    def __init__(
        self,
        inspectors: InspectorRepository,
        routes: RouteRepository,
        workload: WorkloadProvider,
    ) -> None:
        self.inspectors = inspectors
        self.routes = routes
        self.workload = workload

    @staticmethod
    def default_options() -> AssignmentOptions:
        return AssignmentOptions()

    def _pending_routes(self, route_ids: Sequence[str]) -> tuple[list[Route], list[str]]:
        routes: list[Route] = []
        errors: list[str] = []
        for route_id in route_ids:
            try:
                route = self.routes.find_by_id(route_id)
            except CollaboratorError as exc:
                logger.warning(f"Failed to load route {route_id}: {exc}")
                errors.append(f"Route {route_id}: {exc}")
                continue
            if route is not None and route.status == "pending":
                routes.append(route)
        return routes, errors

    def _assign_single(
        self,
        route: Route,
        inspectors: Sequence[Inspector],
        snapshot: WorkloadSnapshot,
        options: AssignmentOptions,
    ) -> tuple[Optional[RouteAssignment], list[AssignmentConflict]]:
        scores: list[AssignmentScore] = []
        for inspector in inspectors:
            metrics = snapshot.get(inspector.id)
            if metrics is None or metrics.utilization_percentage > options.max_utilization_threshold:
                continue
            scores.append(score_inspector(route, inspector, metrics.utilization_percentage, options))

        if not scores:
            return None, [AssignmentConflict(route.id, "", "capacity_exceeded", "No available inspectors found", "high")]

        scores.sort(key=lambda item: item.score, reverse=True)
        by_id = {inspector.id: inspector for inspector in inspectors}
        blocking: list[AssignmentConflict] = []
        for candidate in scores:
            inspector = by_id[candidate.inspector_id]
            conflicts = detect_conflicts(route, inspector, snapshot, options)
            logger.debug(
                "Route %s candidate %s score=%d conflicts=%d",
                route.id,
                inspector.id,
                candidate.score,
                len(conflicts),
            )
            if conflicts and not can_resolve(conflicts, options):
                blocking.extend(conflicts)
                continue
            now = datetime.now(timezone.utc)
            duration = route.estimated_duration_minutes or settings.default_route_duration_minutes
            return (
                RouteAssignment(
                    route_id=route.id,
                    inspector_id=inspector.id,
                    assigned_at=now,
                    estimated_start_time=now,
                    estimated_end_time=now + timedelta(minutes=duration),
                ),
                [],
            )

        # the candidates' own conflicts come first, then the summary entry
        return None, blocking + [
            AssignmentConflict(
                route.id,
                scores[0].inspector_id,
                "capacity_exceeded",
                "Unable to resolve assignment conflicts",
                "medium",
            )
        ]

    def _workload_distribution(
        self,
        assignments: Sequence[RouteAssignment],
        routes: dict[str, Route],
        inspectors: dict[str, Inspector],
    ) -> list[WorkloadSummary]:
        distribution: dict[tuple[str, str], WorkloadSummary] = {}
        for assignment in assignments:
            inspector = inspectors.get(assignment.inspector_id)
            route = routes.get(assignment.route_id)
            if inspector is None or route is None:
                continue
            zone_id = route.zone_id or UNKNOWN_ZONE
            summary = distribution.setdefault(
                (inspector.id, zone_id),
                WorkloadSummary(inspector_id=inspector.id, inspector_name=inspector.name, zone_id=zone_id),
            )
            summary.assigned_routes += 1
            summary.total_estimated_minutes += route.estimated_duration_minutes or settings.default_route_duration_minutes
            summary.utilization_percentage = round(summary.assigned_routes / inspector.max_daily_routes * 100)
        return sorted(distribution.values(), key=lambda item: item.inspector_name)

    def assign_routes(
        self,
        route_ids: Sequence[str],
        options: Optional[AssignmentOptions] = None,
        *,
        commit: bool = False,
    ) -> AssignmentResult:
        """Assign pending routes, highest priority first.

        Workload is read once per call and tracked locally for the rest of the
        batch. With ``commit`` each assignment is written as it is made; a failed
        write is recorded in ``errors`` and the batch carries on.
        """

        options = options or self.default_options()
        routes, lookup_errors = self._pending_routes(route_ids)
        result = AssignmentResult(total_routes=len(routes), errors=lookup_errors)
        if not routes:
            return result

        inspectors = self.inspectors.find_active()
        snapshot = WorkloadSnapshot(self.workload.calculate_all_inspector_workloads())
        # sorted() is stable, so equal priorities keep their request order
        ordered = sorted(routes, key=lambda route: PRIORITY_RANK.get(route.priority, 0), reverse=True)

        for route in ordered:
            assignment, conflicts = self._assign_single(route, inspectors, snapshot, options)
            if assignment is None:
                result.unassigned_routes.append(route)
                result.conflicts.extend(conflicts)
                continue

            if commit:
                try:
                    stored = self.routes.assign_to_inspector(route.id, assignment.inspector_id)
                    if stored is None:
                        raise CollaboratorError(f"assign route {route.id}", LookupError("no route row was updated"))
                except CollaboratorError as exc:
                    logger.warning(f"Failed to persist assignment of route {route.id}: {exc}")
                    result.errors.append(f"Route {route.id}: {exc}")
                    result.unassigned_routes.append(route)
                    continue

            result.assignments.append(assignment)
            snapshot.record_assignment(assignment.inspector_id, route)

        result.workload_distribution = self._workload_distribution(
            result.assignments,
            {route.id: route for route in routes},
            {inspector.id: inspector for inspector in inspectors},
        )
        logger.info(
            "Assigned %d of %d routes (%d unassigned)",
            result.assigned_count,
            result.total_routes,
            result.unassigned_count,
        )
        return result

    def assign_all_pending(self, options: Optional[AssignmentOptions] = None, *, commit: bool = False) -> AssignmentResult:
        pending = self.routes.find_by_status("pending")
        return self.assign_routes([route.id for route in pending], options, commit=commit)

    def reassign_inspector_routes(
        self,
        inspector_id: str,
        options: Optional[AssignmentOptions] = None,
        *,
        commit: bool = True,
    ) -> AssignmentResult:
        """Release every active route of an inspector and run them through assignment again.

        A route that cannot be released stays with the inspector and is
        reported in ``errors``; the routes released before and after it are
        still reassigned.
        """

        try:
            owned = self.routes.find_by_inspector(inspector_id)
        except CollaboratorError as exc:
            logger.warning(f"Failed to load routes of inspector {inspector_id}: {exc}")
            return AssignmentResult(errors=[f"Inspector {inspector_id}: {exc}"])

        released: list[str] = []
        errors: list[str] = []
        for route in owned:
            if route.status not in ACTIVE_ROUTE_STATUSES:
                continue
            try:
                if self.routes.unassign_from_inspector(route.id) is None:
                    raise CollaboratorError(f"release route {route.id}", LookupError("no route row was updated"))
            except CollaboratorError as exc:
                logger.warning(f"Failed to release route {route.id}: {exc}")
                errors.append(f"Route {route.id}: {exc}")
                continue
            released.append(route.id)

        logger.info("Released %d routes from inspector %s", len(released), inspector_id)
        result = self.assign_routes(released, options, commit=commit)
        result.errors[:0] = errors
        return result

    def get_assignment_recommendations(self) -> AssignmentRecommendations:
        metrics = self.workload.calculate_all_inspector_workloads()
        return AssignmentRecommendations(
            overloaded_inspectors=[item.inspector_id for item in metrics if item.utilization_percentage > 100],
            underutilized_inspectors=[
                item.inspector_id
                for item in metrics
                if item.utilization_percentage < 50 and item.available_capacity > 0
            ],
        )
