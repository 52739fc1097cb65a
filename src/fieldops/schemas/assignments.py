"""Pydantic request/response models for assignment endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import settings
from ..services.assignment.models import AssignmentOptions
from .routes import RouteModel


class AssignmentOptionsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    prioritize_zone_preference: bool = True
    max_utilization_threshold: float = Field(default_factory=lambda: settings.max_utilization_threshold, ge=0)
    allow_cross_zone_assignment: bool = Field(default_factory=lambda: settings.allow_cross_zone_assignment)
    balance_workload: bool = True
    consider_availability: bool = True

    def to_options(self) -> AssignmentOptions:
        return AssignmentOptions(**self.model_dump())


class AssignRoutesRequest(BaseModel):
    route_ids: list[str]
    options: Optional[AssignmentOptionsModel] = None
    commit: bool = Field(default=False, description="Persist each assignment as it is made.")


class AssignmentRunRequest(BaseModel):
    options: Optional[AssignmentOptionsModel] = None
    commit: bool = False


class ConflictModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    inspector_id: str
    conflict_type: Literal["capacity_exceeded", "zone_mismatch", "availability_conflict", "priority_conflict"]
    description: str
    severity: Literal["low", "medium", "high"]


class RouteAssignmentModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    inspector_id: str
    assigned_at: datetime
    estimated_start_time: datetime
    estimated_end_time: datetime


class WorkloadSummaryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inspector_id: str
    inspector_name: str
    zone_id: str
    assigned_routes: int
    total_estimated_minutes: int
    utilization_percentage: int


class AssignmentResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    assignments: list[RouteAssignmentModel]
    unassigned_routes: list[RouteModel]
    conflicts: list[ConflictModel]
    workload_distribution: list[WorkloadSummaryModel]
    errors: list[str]
    total_routes: int
    assigned_count: int
    unassigned_count: int


class SuggestedReassignmentModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    from_inspector_id: str
    to_inspector_id: str
    reason: str
    expected_improvement: float


class RecommendationsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    overloaded_inspectors: list[str]
    underutilized_inspectors: list[str]
    suggested_reassignments: list[SuggestedReassignmentModel]


class WorkloadMetricsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inspector_id: str
    inspector_name: str
    current_routes: int
    max_daily_routes: int
    available_capacity: int
    utilization_percentage: float
    estimated_work_hours: float


class CapacityModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    used: int
    available: int


class ZoneWorkloadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    zone_id: str
    zone_name: str
    total_routes: int
    assigned_routes: int
    unassigned_routes: int
    inspector_count: int
    average_utilization: int
    capacity: CapacityModel


class WorkloadOverviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_inspectors: int
    active_inspectors: int
    total_routes: int
    assigned_routes: int
    unassigned_routes: int
    system_utilization: int
    zone_breakdown: list[ZoneWorkloadModel]
    inspector_metrics: list[WorkloadMetricsModel]


class PlannedAssignmentModel(BaseModel):
    route_id: str
    inspector_id: str


class WorkloadImpactRequest(BaseModel):
    assignments: list[PlannedAssignmentModel]


class WorkloadImpactModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inspector_id: str
    current_utilization: int
    projected_utilization: int
    utilization_change: int
    will_exceed_capacity: bool


class WorkloadImpactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    before_assignment: list[WorkloadMetricsModel]
    after_assignment: list[WorkloadMetricsModel]
    impact_summary: list[WorkloadImpactModel]


class BalanceActionModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action: Literal["redistribute", "optimize"]
    priority: Literal["high", "medium", "low"]
    description: str
    affected_inspectors: list[str]


class BalanceRecommendationsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    overloaded_inspectors: list[WorkloadMetricsModel]
    underutilized_inspectors: list[WorkloadMetricsModel]
    recommendations: list[BalanceActionModel]
