"""API routes for route-to-inspector assignment."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import CollaboratorError
from ...schemas.assignments import (
    AssignmentOptionsModel,
    AssignmentResultResponse,
    AssignmentRunRequest,
    AssignRoutesRequest,
    BalanceRecommendationsResponse,
    RecommendationsResponse,
    WorkloadImpactRequest,
    WorkloadImpactResponse,
    WorkloadMetricsModel,
    WorkloadOverviewResponse,
)
from ...services.assignment.engine import AssignmentEngine
from ...services.assignment.workload import WorkloadCalculator
from ..dependencies import get_assignment_engine, get_workload_calculator

router = APIRouter(prefix="/assignments", tags=["assignments"])


def _options(model: Optional[AssignmentOptionsModel]):
    return model.to_options() if model else None


@router.post("/assign", response_model=AssignmentResultResponse, status_code=status.HTTP_200_OK)
def assign(
    payload: AssignRoutesRequest,
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> AssignmentResultResponse:
    try:
        result = engine.assign_routes(payload.route_ids, _options(payload.options), commit=payload.commit)
    except CollaboratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return AssignmentResultResponse.model_validate(result)


@router.post("/assign-all", response_model=AssignmentResultResponse, status_code=status.HTTP_200_OK)
def assign_all(
    payload: Optional[AssignmentRunRequest] = None,
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> AssignmentResultResponse:
    payload = payload or AssignmentRunRequest()
    try:
        result = engine.assign_all_pending(_options(payload.options), commit=payload.commit)
    except CollaboratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return AssignmentResultResponse.model_validate(result)


@router.post("/reassign/{inspector_id}", response_model=AssignmentResultResponse, status_code=status.HTTP_200_OK)
def reassign(
    inspector_id: str,
    payload: Optional[AssignmentRunRequest] = None,
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> AssignmentResultResponse:
    """Release an inspector's active routes and assign them again."""
    options = _options(payload.options) if payload else None
    try:
        result = engine.reassign_inspector_routes(inspector_id, options)
    except CollaboratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return AssignmentResultResponse.model_validate(result)


@router.get("/recommendations", response_model=RecommendationsResponse, status_code=status.HTTP_200_OK)
def recommendations(engine: AssignmentEngine = Depends(get_assignment_engine)) -> RecommendationsResponse:
    try:
        return RecommendationsResponse.model_validate(engine.get_assignment_recommendations())
    except CollaboratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("/workload", response_model=WorkloadOverviewResponse, status_code=status.HTTP_200_OK)
def workload_overview(calculator: WorkloadCalculator = Depends(get_workload_calculator)) -> WorkloadOverviewResponse:
    try:
        return WorkloadOverviewResponse.model_validate(calculator.system_overview())
    except CollaboratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("/capacity", response_model=list[WorkloadMetricsModel], status_code=status.HTTP_200_OK)
def inspectors_with_capacity(
    min_capacity: int = Query(1, ge=0),
    zone_id: Optional[str] = None,
    calculator: WorkloadCalculator = Depends(get_workload_calculator),
) -> list[WorkloadMetricsModel]:
    """Active inspectors with at least `min_capacity` free route slots."""
    try:
        metrics = calculator.find_inspectors_with_capacity(min_capacity, zone_id)
    except CollaboratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return [WorkloadMetricsModel.model_validate(item) for item in metrics]


@router.post("/impact", response_model=WorkloadImpactResponse, status_code=status.HTTP_200_OK)
def workload_impact(
    payload: WorkloadImpactRequest,
    calculator: WorkloadCalculator = Depends(get_workload_calculator),
) -> WorkloadImpactResponse:
    planned = [(item.route_id, item.inspector_id) for item in payload.assignments]
    try:
        return WorkloadImpactResponse.model_validate(calculator.predict_workload_impact(planned))
    except CollaboratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("/balance", response_model=BalanceRecommendationsResponse, status_code=status.HTTP_200_OK)
def workload_balance(calculator: WorkloadCalculator = Depends(get_workload_calculator)) -> BalanceRecommendationsResponse:
    try:
        return BalanceRecommendationsResponse.model_validate(calculator.balance_recommendations())
    except CollaboratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("/options/default", response_model=AssignmentOptionsModel, status_code=status.HTTP_200_OK)
def default_options() -> AssignmentOptionsModel:
    return AssignmentOptionsModel.model_validate(AssignmentEngine.default_options())
