"""Pydantic request/response models for zone endpoints."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class GeoPointModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ZoneModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: Literal["metropolitan", "rural"]
    boundary: list[GeoPointModel]
    is_active: bool = True
    color: Optional[str] = None


class ZoneSetupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    zones_created: int
    zones_updated: int
    errors: list[str]
    warnings: list[str]
    color_mapping: dict[str, str]
    processing_time_ms: float


class CompletenessModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    expected_zones: int
    found_zones: int
    missing_zones: list[str]


class AccuracyModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    valid_boundaries: int
    invalid_boundaries: int


class CoverageModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_area: float
    average_area: float
    smallest_zone: Optional[str] = None
    largest_zone: Optional[str] = None


class ZoneValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    completeness: CompletenessModel
    accuracy: AccuracyModel
    coverage: CoverageModel
    errors: list[str]
    warnings: list[str]
    recommendations: list[str]


class ZoneDetectRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    coordinate_id: Optional[str] = Field(default=None, description="Identifier echoed back in the response.")


class ZoneDetectResponse(BaseModel):
    coordinate_id: Optional[str] = None
    zone_id: Optional[str] = None
    zone_name: Optional[str] = None
    confidence: float
    error: Optional[str] = None


class ProbeSampleModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    expected_zone: Optional[str] = None


class ProbeRequest(BaseModel):
    samples: list[ProbeSampleModel] = Field(..., min_length=1)


class ProbeOutcomeModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sample: ProbeSampleModel
    detected_zone: Optional[str] = None
    is_correct: bool


class ProbeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    accuracy: float
    results: list[ProbeOutcomeModel]
    errors: list[str]
