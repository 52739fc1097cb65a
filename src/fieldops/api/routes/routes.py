"""API routes for route sequencing, status changes and estimates."""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import CollaboratorError, NotFoundError, RouteStatusError
from ...schemas.routes import (
    RouteActionRequest,
    RouteModel,
    RouteOptimizationResponse,
    RouteTimeEstimateResponse,
    RouteZoneValidationResponse,
    SequenceRequest,
    SequenceResponse,
)
from ...services.routing.sequencer import sequence_route
from ...services.routing.service import RouteService
from ..dependencies import get_route_service

router = APIRouter(prefix="/routes", tags=["routes"])


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, RouteStatusError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, CollaboratorError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/sequence", response_model=SequenceResponse, status_code=status.HTTP_200_OK)
def sequence(payload: SequenceRequest) -> SequenceResponse:
    """Order coordinates into a short visiting tour."""
    coordinates = [item.to_domain() for item in payload.coordinates]
    start = None
    if payload.start_coordinate_id is not None:
        start = next((item for item in coordinates if item.id == payload.start_coordinate_id), None)
        if start is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Start coordinate '{payload.start_coordinate_id}' is not in the request.",
            )
    return SequenceResponse.model_validate(sequence_route(coordinates, start))


@router.post("/{route_id}/optimize", response_model=RouteOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(route_id: str, service: RouteService = Depends(get_route_service)) -> RouteOptimizationResponse:
    try:
        return RouteOptimizationResponse.model_validate(service.optimize_route_order(route_id))
    except (NotFoundError, CollaboratorError, ValueError) as exc:
        raise _http_error(exc) from exc


@router.get("/{route_id}/zones", response_model=RouteZoneValidationResponse, status_code=status.HTTP_200_OK)
def validate_zones(route_id: str, service: RouteService = Depends(get_route_service)) -> RouteZoneValidationResponse:
    try:
        return RouteZoneValidationResponse.model_validate(service.validate_route_zones(route_id))
    except (NotFoundError, CollaboratorError) as exc:
        raise _http_error(exc) from exc


@router.get("/{route_id}/estimate", response_model=RouteTimeEstimateResponse, status_code=status.HTTP_200_OK)
def estimate(
    route_id: str,
    include_setup: bool = Query(default=True),
    include_breaks: bool = Query(default=True),
    speed_kmh: Optional[float] = Query(default=None, gt=0),
    service: RouteService = Depends(get_route_service),
) -> RouteTimeEstimateResponse:
    try:
        result = service.estimate_route_time(
            route_id,
            include_setup=include_setup,
            include_breaks=include_breaks,
            speed_kmh=speed_kmh,
        )
    except (NotFoundError, CollaboratorError) as exc:
        raise _http_error(exc) from exc
    return RouteTimeEstimateResponse.model_validate(result)


@router.post("/{route_id}/{action}", response_model=RouteModel, status_code=status.HTTP_200_OK)
def change_status(
    route_id: str,
    action: Literal["assign", "start", "finish", "cancel", "unassign"],
    payload: Optional[RouteActionRequest] = None,
    service: RouteService = Depends(get_route_service),
) -> RouteModel:
    """Move a route through its status machine."""
    inspector_id = payload.inspector_id if payload else None
    try:
        route = service.apply(route_id, action, inspector_id)
    except (NotFoundError, RouteStatusError, CollaboratorError, ValueError) as exc:
        raise _http_error(exc) from exc
    return RouteModel.model_validate(route)
