"""Assignment domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from ...config import settings
from ...models.domain import Route

ConflictType = Literal["capacity_exceeded", "zone_mismatch", "availability_conflict", "priority_conflict"]
ConflictSeverity = Literal["low", "medium", "high"]


@dataclass(slots=True)
class AssignmentOptions:
    prioritize_zone_preference: bool = True
    max_utilization_threshold: float = field(default_factory=lambda: settings.max_utilization_threshold)
    allow_cross_zone_assignment: bool = field(default_factory=lambda: settings.allow_cross_zone_assignment)
    balance_workload: bool = True
    consider_availability: bool = True


@dataclass(slots=True)
class ScoreFactors:
    zone_match: float
    workload_balance: float
    availability: float
    priority: float


@dataclass(slots=True)
class AssignmentScore:
    inspector_id: str
    route_id: str
    score: int
    factors: ScoreFactors


@dataclass(frozen=True, slots=True)
class AssignmentConflict:
    route_id: str
    inspector_id: str
    conflict_type: ConflictType
    description: str
    severity: ConflictSeverity


@dataclass(frozen=True, slots=True)
class RouteAssignment:
    route_id: str
    inspector_id: str
    assigned_at: datetime
    estimated_start_time: datetime
    estimated_end_time: datetime


@dataclass(slots=True)
class WorkloadSummary:
    inspector_id: str
    inspector_name: str
    zone_id: str
    assigned_routes: int = 0
    total_estimated_minutes: int = 0
    utilization_percentage: int = 0


@dataclass(slots=True)
class AssignmentResult:
    assignments: list[RouteAssignment] = field(default_factory=list)
    unassigned_routes: list[Route] = field(default_factory=list)
    conflicts: list[AssignmentConflict] = field(default_factory=list)
    workload_distribution: list[WorkloadSummary] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    total_routes: int = 0

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def assigned_count(self) -> int:
        return len(self.assignments)

    @property
    def unassigned_count(self) -> int:
        return len(self.unassigned_routes)


@dataclass(slots=True)
class SuggestedReassignment:
    route_id: str
    from_inspector_id: str
    to_inspector_id: str
    reason: str
    expected_improvement: float


@dataclass(slots=True)
class AssignmentRecommendations:
    overloaded_inspectors: list[str] = field(default_factory=list)
    underutilized_inspectors: list[str] = field(default_factory=list)
    suggested_reassignments: list[SuggestedReassignment] = field(default_factory=list)
