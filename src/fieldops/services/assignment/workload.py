"""Inspector workload metrics and the per-batch snapshot the assignment engine mutates."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import math
from typing import Iterable, Literal, Optional, Sequence

from ...config import settings
from ...models.domain import Inspector, Route, WorkloadMetrics
from ...persistence.repositories import InspectorRepository, RouteRepository, ZoneRepository

ACTIVE_ROUTE_STATUSES = frozenset({"assigned", "in_progress"})
UNKNOWN_ZONE_NAME = "Unknown zone"
OVERLOADED_UTILIZATION = 100
UNDERUTILIZED_UTILIZATION = 50
MAX_UTILIZATION_SPREAD = 25


@dataclass(slots=True)
class CapacitySummary:
    total: int
    used: int
    available: int


@dataclass(slots=True)
class ZoneWorkloadSummary:
    zone_id: str
    zone_name: str
    total_routes: int
    assigned_routes: int
    unassigned_routes: int
    inspector_count: int
    average_utilization: int
    capacity: CapacitySummary


@dataclass(slots=True)
class SystemWorkloadOverview:
    total_inspectors: int
    active_inspectors: int
    total_routes: int
    assigned_routes: int
    unassigned_routes: int
    system_utilization: int
    zone_breakdown: list[ZoneWorkloadSummary] = field(default_factory=list)
    inspector_metrics: list[WorkloadMetrics] = field(default_factory=list)


@dataclass(slots=True)
class WorkloadImpact:
    inspector_id: str
    current_utilization: int
    projected_utilization: int
    utilization_change: int
    will_exceed_capacity: bool


@dataclass(slots=True)
class WorkloadPrediction:
    before_assignment: list[WorkloadMetrics] = field(default_factory=list)
    after_assignment: list[WorkloadMetrics] = field(default_factory=list)
    impact_summary: list[WorkloadImpact] = field(default_factory=list)


@dataclass(slots=True)
class BalanceAction:
    action: Literal["redistribute", "optimize"]
    priority: Literal["high", "medium", "low"]
    description: str
    affected_inspectors: list[str]


@dataclass(slots=True)
class BalanceRecommendations:
    overloaded_inspectors: list[WorkloadMetrics] = field(default_factory=list)
    underutilized_inspectors: list[WorkloadMetrics] = field(default_factory=list)
    recommendations: list[BalanceAction] = field(default_factory=list)


def _metrics_for(inspector: Inspector, routes: Iterable[Route]) -> WorkloadMetrics:
    active = [route for route in routes if route.status in ACTIVE_ROUTE_STATUSES]
    current = len(active)
    minutes = sum(route.estimated_duration_minutes or 0 for route in active)
    return WorkloadMetrics(
        inspector_id=inspector.id,
        inspector_name=inspector.name,
        current_routes=current,
        max_daily_routes=inspector.max_daily_routes,
        available_capacity=inspector.max_daily_routes - current,
        utilization_percentage=round(current / inspector.max_daily_routes * 100),
        estimated_work_hours=minutes / 60,
    )


def utilization_spread(metrics: Sequence[WorkloadMetrics]) -> float:
    """Population standard deviation of utilization percentages."""

    if not metrics:
        return 0.0
    values = [item.utilization_percentage for item in metrics]
    mean = sum(values) / len(values)
    return math.sqrt(sum((value - mean) ** 2 for value in values) / len(values))


class WorkloadCalculator:
    """Derives workload metrics from the inspector and route collaborators."""

    def __init__(
        self,
        inspectors: InspectorRepository,
        routes: RouteRepository,
        zones: Optional[ZoneRepository] = None,
    ) -> None:
        self.inspectors = inspectors
        self.routes = routes
        self.zones = zones

    def calculate_inspector_workload(self, inspector_id: str) -> Optional[WorkloadMetrics]:
        inspector = self.inspectors.find_by_id(inspector_id)
        if inspector is None:
            return None
        return _metrics_for(inspector, self.routes.find_by_inspector(inspector_id))

    def calculate_all_inspector_workloads(self) -> list[WorkloadMetrics]:
        """Metrics for every active inspector, most utilized first."""

        metrics = [
            _metrics_for(inspector, self.routes.find_by_inspector(inspector.id))
            for inspector in self.inspectors.find_active()
        ]
        return sorted(metrics, key=lambda item: item.utilization_percentage, reverse=True)

    def calculate_zone_workload(self, zone_id: str) -> ZoneWorkloadSummary:
        zone = self.zones.find_by_id(zone_id) if self.zones else None
        zone_routes = [route for route in self.routes.find_all() if route.zone_id == zone_id]
        zone_inspectors = [inspector for inspector in self.inspectors.find_active() if zone_id in inspector.preferred_zones]
        metrics = [_metrics_for(inspector, self.routes.find_by_inspector(inspector.id)) for inspector in zone_inspectors]

        assigned = sum(1 for route in zone_routes if route.assigned_inspector_id)
        total_capacity = sum(inspector.max_daily_routes for inspector in zone_inspectors)
        used = sum(item.current_routes for item in metrics)
        average = sum(item.current_routes / item.max_daily_routes * 100 for item in metrics) / len(metrics) if metrics else 0
        return ZoneWorkloadSummary(
            zone_id=zone_id,
            zone_name=zone.name if zone else UNKNOWN_ZONE_NAME,
            total_routes=len(zone_routes),
            assigned_routes=assigned,
            unassigned_routes=len(zone_routes) - assigned,
            inspector_count=len(zone_inspectors),
            average_utilization=round(average),
            capacity=CapacitySummary(total=total_capacity, used=used, available=total_capacity - used),
        )

    def system_overview(self) -> SystemWorkloadOverview:
        inspectors = self.inspectors.find_all()
        active = [inspector for inspector in inspectors if inspector.is_active]
        routes = self.routes.find_all()
        metrics = self.calculate_all_inspector_workloads()

        assigned = sum(1 for route in routes if route.assigned_inspector_id)
        capacity = sum(inspector.max_daily_routes for inspector in active)
        used = sum(item.current_routes for item in metrics)
        zone_ids = [zone.id for zone in self.zones.find_all_active()] if self.zones else []
        return SystemWorkloadOverview(
            total_inspectors=len(inspectors),
            active_inspectors=len(active),
            total_routes=len(routes),
            assigned_routes=assigned,
            unassigned_routes=len(routes) - assigned,
            system_utilization=round(used / capacity * 100) if capacity else 0,
            zone_breakdown=[self.calculate_zone_workload(zone_id) for zone_id in zone_ids],
            inspector_metrics=metrics,
        )

    def find_inspectors_with_capacity(self, min_capacity: int = 1, zone_id: Optional[str] = None) -> list[WorkloadMetrics]:
        """Active inspectors (optionally preferring ``zone_id``) with room left, most room first."""

        inspectors = self.inspectors.find_active()
        if zone_id:
            inspectors = [inspector for inspector in inspectors if zone_id in inspector.preferred_zones]
        metrics = [_metrics_for(inspector, self.routes.find_by_inspector(inspector.id)) for inspector in inspectors]
        available = [item for item in metrics if item.available_capacity >= min_capacity]
        return sorted(available, key=lambda item: item.available_capacity, reverse=True)

    def predict_workload_impact(self, assignments: Sequence[tuple[str, str]]) -> WorkloadPrediction:
        """Project inspector load after the given ``(route_id, inspector_id)`` assignments."""

        added: dict[str, int] = {}
        for _route_id, inspector_id in assignments:
            added[inspector_id] = added.get(inspector_id, 0) + 1

        prediction = WorkloadPrediction()
        for inspector_id, count in added.items():
            current = self.calculate_inspector_workload(inspector_id)
            if current is None:
                continue
            projected_routes = current.current_routes + count
            projected = round(projected_routes / current.max_daily_routes * 100)
            prediction.before_assignment.append(current)
            prediction.after_assignment.append(
                replace(
                    current,
                    current_routes=projected_routes,
                    available_capacity=current.max_daily_routes - projected_routes,
                    utilization_percentage=projected,
                )
            )
            prediction.impact_summary.append(
                WorkloadImpact(
                    inspector_id=inspector_id,
                    current_utilization=current.utilization_percentage,
                    projected_utilization=projected,
                    utilization_change=projected - current.utilization_percentage,
                    will_exceed_capacity=projected_routes > current.max_daily_routes,
                )
            )
        return prediction

    def balance_recommendations(self) -> BalanceRecommendations:
        metrics = self.calculate_all_inspector_workloads()
        result = BalanceRecommendations(
            overloaded_inspectors=[item for item in metrics if item.utilization_percentage > OVERLOADED_UTILIZATION],
            underutilized_inspectors=[item for item in metrics if item.utilization_percentage < UNDERUTILIZED_UTILIZATION],
        )

        if result.overloaded_inspectors:
            result.recommendations.append(
                BalanceAction(
                    action="redistribute",
                    priority="high",
                    description=f"{len(result.overloaded_inspectors)} inspector(s) are overloaded. Redistribute routes urgently.",
                    affected_inspectors=[item.inspector_id for item in result.overloaded_inspectors],
                )
            )
        if utilization_spread(metrics) > MAX_UTILIZATION_SPREAD:
            result.recommendations.append(
                BalanceAction(
                    action="optimize",
                    priority="medium",
                    description="Workload is unbalanced across inspectors. Consider redistributing routes.",
                    affected_inspectors=[item.inspector_id for item in metrics],
                )
            )
        if result.underutilized_inspectors:
            result.recommendations.append(
                BalanceAction(
                    action="optimize",
                    priority="low",
                    description=f"{len(result.underutilized_inspectors)} inspector(s) are underutilized. Optimize assignments.",
                    affected_inspectors=[item.inspector_id for item in result.underutilized_inspectors],
                )
            )
        return result


class WorkloadSnapshot:
    """Private copy of workload metrics owned by a single assignment batch.

    Taken once when the batch starts; assignments made during the batch are
    recorded here so later routes see the added load. Nothing is written back.
    """

    def __init__(self, metrics: Iterable[WorkloadMetrics]) -> None:
        self._metrics = {item.inspector_id: replace(item) for item in metrics}

    def get(self, inspector_id: str) -> Optional[WorkloadMetrics]:
        return self._metrics.get(inspector_id)

    def record_assignment(self, inspector_id: str, route: Route) -> None:
        metrics = self._metrics.get(inspector_id)
        if metrics is None:
            return
        metrics.current_routes += 1
        metrics.available_capacity -= 1
        metrics.utilization_percentage = round(metrics.current_routes / metrics.max_daily_routes * 100)
        metrics.estimated_work_hours += (route.estimated_duration_minutes or settings.default_route_duration_minutes) / 60
