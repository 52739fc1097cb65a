"""Pydantic request/response models for route endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .coordinates import CoordinateModel


class RouteModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    priority: Literal["low", "medium", "high"]
    zone_id: Optional[str] = None
    status: Literal["pending", "assigned", "in_progress", "completed", "cancelled"]
    assigned_inspector_id: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    updated_at: Optional[datetime] = None


class SequenceRequest(BaseModel):
    coordinates: list[CoordinateModel]
    start_coordinate_id: Optional[str] = Field(
        default=None, description="Coordinate the tour must begin at; defaults to the first one."
    )


class SequenceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    coordinates: list[CoordinateModel]
    original_distance_m: float
    optimized_distance_m: float
    improvement_percentage: float
    execution_time_ms: float
    algorithm: str


class RouteActionRequest(BaseModel):
    inspector_id: Optional[str] = None


class RouteOptimizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    ordered_point_ids: list[str]
    original_distance_m: float
    optimized_distance_m: float
    estimated_duration_minutes: int


class RouteZoneValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    total_points: int
    valid_points: int
    invalid_points: int
    unassigned_points: int
    mismatched_point_ids: list[str]
    is_valid: bool


class PointTimingModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    point_order: int
    work_minutes: float
    travel_minutes: float
    cumulative_minutes: float


class RouteTimeEstimateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_minutes: int
    work_minutes: int
    travel_minutes: int
    setup_minutes: int
    break_minutes: int
    breakdown: list[PointTimingModel]
