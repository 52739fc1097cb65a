"""API routes for zone boundaries and zone detection."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from ...config import settings
from ...errors import CollaboratorError, NotFoundError
from ...models.domain import Coordinate
from ...schemas.zones import (
    ProbeRequest,
    ProbeResponse,
    ZoneDetectRequest,
    ZoneDetectResponse,
    ZoneModel,
    ZoneSetupResponse,
    ZoneValidationResponse,
)
from ...services.classifier import ZoneClassifier
from ...services.export.geojson import zones_to_feature_collection
from ...services.zones.service import ProbeSample, ZoneBoundaryService
from ..dependencies import get_classifier, get_zone_service

router = APIRouter(prefix="/zones", tags=["zones"])


def _unavailable(exc: CollaboratorError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.get("", response_model=list[ZoneModel], status_code=status.HTTP_200_OK)
def list_zones(service: ZoneBoundaryService = Depends(get_zone_service)) -> list[ZoneModel]:
    try:
        zones = service.zones.find_all_active()
    except CollaboratorError as exc:
        raise _unavailable(exc) from exc
    return [ZoneModel.model_validate(zone) for zone in zones]


@router.post("/import", response_model=ZoneSetupResponse, status_code=status.HTTP_200_OK)
async def import_zone_boundaries(
    file: UploadFile = File(...),
    overwrite_existing: bool = Form(False),
    validate_only: bool = Form(False),
    service: ZoneBoundaryService = Depends(get_zone_service),
) -> ZoneSetupResponse:
    """Create or update zones from an uploaded KMZ archive."""
    if not file.filename or not file.filename.lower().endswith(".kmz"):
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail="Only .kmz files are supported.")

    payload = await file.read()
    if len(payload) > settings.kmz_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds maximum limit of {settings.kmz_max_bytes} bytes",
        )

    result = service.setup_zone_boundaries(payload, overwrite_existing=overwrite_existing, validate_only=validate_only)
    return ZoneSetupResponse.model_validate(result)


@router.get("/validation", response_model=ZoneValidationResponse, status_code=status.HTTP_200_OK)
def validate_zones(service: ZoneBoundaryService = Depends(get_zone_service)) -> ZoneValidationResponse:
    try:
        report = service.validate_active_zones()
    except CollaboratorError as exc:
        raise _unavailable(exc) from exc
    return ZoneValidationResponse.model_validate(report)


@router.get("/colors", status_code=status.HTTP_200_OK)
def zone_colors(service: ZoneBoundaryService = Depends(get_zone_service)) -> dict[str, str]:
    try:
        return service.color_mapping()
    except CollaboratorError as exc:
        raise _unavailable(exc) from exc


@router.get("/export", status_code=status.HTTP_200_OK)
def export_zones(service: ZoneBoundaryService = Depends(get_zone_service)) -> dict:
    """Active zones as a GeoJSON FeatureCollection."""
    try:
        zones = service.zones.find_all_active()
    except CollaboratorError as exc:
        raise _unavailable(exc) from exc
    return zones_to_feature_collection(zones)


@router.post("/detect", response_model=ZoneDetectResponse, status_code=status.HTTP_200_OK)
def detect_zone(
    payload: ZoneDetectRequest,
    classifier: ZoneClassifier = Depends(get_classifier),
) -> ZoneDetectResponse:
    coordinate = Coordinate(
        id=payload.coordinate_id or "",
        latitude=payload.latitude,
        longitude=payload.longitude,
    )
    detection = classifier.detect(coordinate)
    return ZoneDetectResponse(
        coordinate_id=payload.coordinate_id,
        zone_id=detection.zone_id,
        zone_name=detection.zone.name if detection.zone else None,
        confidence=detection.confidence,
        error=detection.error,
    )


@router.post("/probe", response_model=ProbeResponse, status_code=status.HTTP_200_OK)
def probe_zones(payload: ProbeRequest, service: ZoneBoundaryService = Depends(get_zone_service)) -> ProbeResponse:
    """Check exact containment for sample points with optional expected zone names."""
    samples = [ProbeSample(**sample.model_dump()) for sample in payload.samples]
    return ProbeResponse.model_validate(service.probe_zone_boundaries(samples))


@router.post("/{zone_id}/deactivate", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_zone(zone_id: str, service: ZoneBoundaryService = Depends(get_zone_service)) -> None:
    try:
        service.deactivate_zone(zone_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except CollaboratorError as exc:
        raise _unavailable(exc) from exc
