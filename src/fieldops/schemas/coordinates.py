"""Pydantic request/response models for coordinate endpoints."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import Coordinate


class CoordinateModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    zone_id: Optional[str] = None
    imported_from: Optional[str] = None

    def to_domain(self) -> Coordinate:
        return Coordinate(**self.model_dump())


class ProcessCoordinatesRequest(BaseModel):
    coordinates: list[CoordinateModel]
    enable_duplicate_detection: bool = True
    duplicate_threshold_meters: Optional[float] = Field(default=None, ge=0)
    enable_zone_validation: bool = True
    persist_zone_assignments: bool = Field(
        default=False, description="Write detected zones back to stored coordinates."
    )


class CoordinateErrorModel(BaseModel):
    coordinate_id: str
    error: str


class ProcessCoordinatesResponse(BaseModel):
    processed_coordinates: list[CoordinateModel]
    duplicates: list[list[CoordinateModel]]
    zone_assignments: dict[str, str]
    processing_errors: list[CoordinateErrorModel]


class CleanCoordinatesRequest(BaseModel):
    coordinates: list[CoordinateModel]


class CleanCoordinatesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cleaned_coordinates: list[CoordinateModel]
    removed_coordinates: list[CoordinateModel]
    normalized_count: int
    report: str


class RowErrorModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    field: str
    message: str
    value: Any = None


class ImportCoordinatesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    coordinates: list[CoordinateModel]
    validation_errors: list[RowErrorModel]
    total_rows: int
    valid_rows: int
    invalid_rows: int


class ResolveDuplicatesRequest(BaseModel):
    coordinates: list[CoordinateModel]
    threshold_meters: Optional[float] = Field(default=None, ge=0)
    strategy: Literal["keep_first", "keep_last", "merge"] = "keep_first"


class ResolveDuplicatesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    resolved_coordinates: list[CoordinateModel]
    duplicate_groups: list[list[CoordinateModel]]
    strategy: str
    removed_count: int
    report: str


class CoordinateValidationRequest(BaseModel):
    coordinates: list[CoordinateModel]


class CoordinateValidationResponse(BaseModel):
    valid_coordinates: list[CoordinateModel]
    invalid_coordinates: list[CoordinateErrorModel]
    report: str
