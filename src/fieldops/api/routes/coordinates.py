"""API routes for coordinate processing."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ...errors import CollaboratorError
from ...schemas.coordinates import (
    CleanCoordinatesRequest,
    CleanCoordinatesResponse,
    CoordinateErrorModel,
    CoordinateModel,
    CoordinateValidationRequest,
    CoordinateValidationResponse,
    ImportCoordinatesResponse,
    ProcessCoordinatesRequest,
    ProcessCoordinatesResponse,
    ResolveDuplicatesRequest,
    ResolveDuplicatesResponse,
)
from ...services.coordinates.excel import import_coordinates_workbook
from ...services.coordinates.processor import (
    CoordinateBatchProcessor,
    ProcessingOptions,
    clean_coordinates,
    resolve_duplicates,
)
from ..dependencies import Repositories, get_batch_processor, get_repositories

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coordinates", tags=["coordinates"])


@router.post("/process", response_model=ProcessCoordinatesResponse, status_code=status.HTTP_200_OK)
def process_coordinates(
    payload: ProcessCoordinatesRequest,
    processor: CoordinateBatchProcessor = Depends(get_batch_processor),
    repos: Repositories = Depends(get_repositories),
) -> ProcessCoordinatesResponse:
    """Detect zones and duplicate groups for a batch of coordinates."""
    options = ProcessingOptions(
        enable_duplicate_detection=payload.enable_duplicate_detection,
        enable_zone_validation=payload.enable_zone_validation,
    )
    if payload.duplicate_threshold_meters is not None:
        options.duplicate_threshold_meters = payload.duplicate_threshold_meters

    result = processor.process([item.to_domain() for item in payload.coordinates], options)

    if payload.persist_zone_assignments:
        try:
            for coordinate_id, zone_id in result.zone_assignments.items():
                repos.coordinates.update_zone(coordinate_id, zone_id)
        except CollaboratorError as exc:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
        logger.info("Stored zone assignments for %d coordinates", len(result.zone_assignments))

    return ProcessCoordinatesResponse(
        processed_coordinates=[CoordinateModel.model_validate(item) for item in result.processed_coordinates],
        duplicates=[[CoordinateModel.model_validate(item) for item in group] for group in result.duplicates],
        zone_assignments=result.zone_assignments,
        processing_errors=[
            CoordinateErrorModel(coordinate_id=error.coordinate.id, error=error.error)
            for error in result.processing_errors
        ],
    )


@router.post("/clean", response_model=CleanCoordinatesResponse, status_code=status.HTTP_200_OK)
def clean(payload: CleanCoordinatesRequest) -> CleanCoordinatesResponse:
    result = clean_coordinates([item.to_domain() for item in payload.coordinates])
    return CleanCoordinatesResponse.model_validate(result)


@router.post("/import", response_model=ImportCoordinatesResponse, status_code=status.HTTP_200_OK)
async def import_coordinates(file: UploadFile = File(...)) -> ImportCoordinatesResponse:
    """Read coordinates from an uploaded workbook without storing them."""
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filename is required.")
    try:
        imported = import_coordinates_workbook(await file.read(), file.filename)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ImportCoordinatesResponse.model_validate(imported)


@router.post("/deduplicate", response_model=ResolveDuplicatesResponse, status_code=status.HTTP_200_OK)
def deduplicate(payload: ResolveDuplicatesRequest) -> ResolveDuplicatesResponse:
    """Collapse duplicate groups with the chosen strategy."""
    result = resolve_duplicates(
        [item.to_domain() for item in payload.coordinates],
        payload.threshold_meters,
        payload.strategy,
    )
    return ResolveDuplicatesResponse.model_validate(result)


@router.post("/validate-zones", response_model=CoordinateValidationResponse, status_code=status.HTTP_200_OK)
def validate_zones(
    payload: CoordinateValidationRequest,
    processor: CoordinateBatchProcessor = Depends(get_batch_processor),
) -> CoordinateValidationResponse:
    result = processor.validate_against_zones([item.to_domain() for item in payload.coordinates])
    return CoordinateValidationResponse(
        valid_coordinates=[CoordinateModel.model_validate(item) for item in result.valid_coordinates],
        invalid_coordinates=[
            CoordinateErrorModel(coordinate_id=item.coordinate.id, error=item.error)
            for item in result.invalid_coordinates
        ],
        report=result.report,
    )
