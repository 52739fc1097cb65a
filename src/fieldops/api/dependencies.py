"""Collaborator handles injected into the routers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends

from ..db.supabase import get_supabase_client
from ..persistence.database import (
    SupabaseCoordinateRepository,
    SupabaseInspectorRepository,
    SupabaseRoutePointRepository,
    SupabaseRouteRepository,
    SupabaseZoneRepository,
)
from ..persistence.memory import (
    InMemoryCoordinateRepository,
    InMemoryInspectorRepository,
    InMemoryRoutePointRepository,
    InMemoryRouteRepository,
    InMemoryZoneRepository,
)
from ..persistence.repositories import (
    CoordinateRepository,
    InspectorRepository,
    RoutePointRepository,
    RouteRepository,
    ZoneRepository,
)
from ..services.assignment.engine import AssignmentEngine
from ..services.assignment.workload import WorkloadCalculator
from ..services.classifier import ZoneClassifier
from ..services.coordinates.processor import CoordinateBatchProcessor
from ..services.routing.service import RouteService
from ..services.zones.service import ZoneBoundaryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repositories:
    zones: ZoneRepository
    inspectors: InspectorRepository
    routes: RouteRepository
    route_points: RoutePointRepository
    coordinates: CoordinateRepository


def in_memory_repositories() -> Repositories:
    return Repositories(
        zones=InMemoryZoneRepository(),
        inspectors=InMemoryInspectorRepository(),
        routes=InMemoryRouteRepository(),
        route_points=InMemoryRoutePointRepository(),
        coordinates=InMemoryCoordinateRepository(),
    )


@lru_cache()
def get_repositories() -> Repositories:
    client = get_supabase_client()
    if client is None:
        logger.warning("Supabase unavailable; using in-memory repositories")
        return in_memory_repositories()
    return Repositories(
        zones=SupabaseZoneRepository(client),
        inspectors=SupabaseInspectorRepository(client),
        routes=SupabaseRouteRepository(client),
        route_points=SupabaseRoutePointRepository(client),
        coordinates=SupabaseCoordinateRepository(client),
    )


def get_classifier(repos: Repositories = Depends(get_repositories)) -> ZoneClassifier:
    return ZoneClassifier(repos.zones)


def get_zone_service(repos: Repositories = Depends(get_repositories)) -> ZoneBoundaryService:
    return ZoneBoundaryService(repos.zones)


def get_batch_processor(classifier: ZoneClassifier = Depends(get_classifier)) -> CoordinateBatchProcessor:
    return CoordinateBatchProcessor(classifier)


def get_route_service(
    repos: Repositories = Depends(get_repositories),
    classifier: ZoneClassifier = Depends(get_classifier),
) -> RouteService:
    return RouteService(repos.routes, repos.route_points, repos.zones, classifier)


def get_workload_calculator(repos: Repositories = Depends(get_repositories)) -> WorkloadCalculator:
    return WorkloadCalculator(repos.inspectors, repos.routes, repos.zones)


def get_assignment_engine(
    repos: Repositories = Depends(get_repositories),
    workload: WorkloadCalculator = Depends(get_workload_calculator),
) -> AssignmentEngine:
    return AssignmentEngine(repos.inspectors, repos.routes, workload)
