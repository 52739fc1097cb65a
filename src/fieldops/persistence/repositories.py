"""Collaborator contracts used by the zoning and assignment services.

Implementations raise ``CollaboratorError`` when the backing store fails.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..models.domain import (
    Coordinate,
    GeoPoint,
    Inspector,
    Route,
    RoutePoint,
    RouteStatus,
    WorkloadMetrics,
    Zone,
    ZoneCategory,
)


class ZoneRepository(Protocol):
    def find_zone_containing_point(self, latitude: float, longitude: float) -> Optional[Zone]: ...

    def find_all_active(self) -> list[Zone]: ...

    def find_by_id(self, zone_id: str) -> Optional[Zone]: ...

    def create(
        self,
        *,
        name: str,
        category: ZoneCategory,
        boundary: Sequence[GeoPoint],
        color: Optional[str] = None,
    ) -> Zone: ...

    def update(
        self,
        zone_id: str,
        *,
        category: ZoneCategory | None = None,
        boundary: Sequence[GeoPoint] | None = None,
        color: Optional[str] = None,
    ) -> Optional[Zone]: ...

    def deactivate(self, zone_id: str) -> bool: ...


class InspectorRepository(Protocol):
    def find_active(self) -> list[Inspector]: ...

    def find_all(self) -> list[Inspector]: ...

    def find_by_id(self, inspector_id: str) -> Optional[Inspector]: ...


class RouteRepository(Protocol):
    def find_by_id(self, route_id: str) -> Optional[Route]: ...

    def find_all(self) -> list[Route]: ...

    def find_by_status(self, status: RouteStatus) -> list[Route]: ...

    def find_by_inspector(self, inspector_id: str) -> list[Route]: ...

    def save(self, route: Route) -> Route: ...

    def assign_to_inspector(self, route_id: str, inspector_id: str) -> Optional[Route]: ...

    def unassign_from_inspector(self, route_id: str) -> Optional[Route]: ...


class RoutePointRepository(Protocol):
    def find_by_route(self, route_id: str) -> list[RoutePoint]: ...

    def reorder_points(self, route_id: str, ordered_point_ids: Sequence[str]) -> None: ...


class CoordinateRepository(Protocol):
    def find_by_id(self, coordinate_id: str) -> Optional[Coordinate]: ...

    def update_zone(self, coordinate_id: str, zone_id: Optional[str]) -> None: ...


class WorkloadProvider(Protocol):
    def calculate_all_inspector_workloads(self) -> list[WorkloadMetrics]: ...
