"""In-process collaborators backed by dictionaries.

Used when Supabase is not configured and throughout the test-suite. The zone
store answers containment queries through a shapely STRtree, the same way a
spatially indexed ``ST_Contains`` query would.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from shapely.geometry import Point
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.strtree import STRtree

from ..models.domain import (
    Coordinate,
    GeoPoint,
    Inspector,
    Route,
    RoutePoint,
    RouteStatus,
    Zone,
    ZoneCategory,
)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryZoneRepository:
    def __init__(self, zones: Iterable[Zone] = ()) -> None:
        self._zones: dict[str, Zone] = {zone.id: zone for zone in zones}
        self._index: Optional[tuple[STRtree, list[Zone]]] = None

    def _spatial_index(self) -> tuple[STRtree, list[Zone]]:
        if self._index is None:
            active = [zone for zone in self._zones.values() if zone.is_active and len(zone.boundary) >= 3]
            shapes = [ShapelyPolygon([(p.longitude, p.latitude) for p in zone.boundary]) for zone in active]
            self._index = (STRtree(shapes), active)
        return self._index

    def find_zone_containing_point(self, latitude: float, longitude: float) -> Optional[Zone]:
        tree, zones = self._spatial_index()
        if not zones:
            return None
        hits = tree.query(Point(longitude, latitude), predicate="within")
        if len(hits) == 0:
            return None
        return zones[int(min(hits))]

    def find_all_active(self) -> list[Zone]:
        return [zone for zone in self._zones.values() if zone.is_active]

    def find_by_id(self, zone_id: str) -> Optional[Zone]:
        return self._zones.get(zone_id)

    def create(
        self,
        *,
        name: str,
        category: ZoneCategory,
        boundary: Sequence[GeoPoint],
        color: Optional[str] = None,
    ) -> Zone:
        zone = Zone(id=_new_id(), name=name, category=category, boundary=tuple(boundary), color=color)
        self._zones[zone.id] = zone
        self._index = None
        return zone

    def update(
        self,
        zone_id: str,
        *,
        category: ZoneCategory | None = None,
        boundary: Sequence[GeoPoint] | None = None,
        color: Optional[str] = None,
    ) -> Optional[Zone]:
        zone = self._zones.get(zone_id)
        if zone is None:
            return None
        if category is not None:
            zone.category = category
        if boundary is not None:
            zone.boundary = tuple(boundary)
        if color is not None:
            zone.color = color
        self._index = None
        return zone

    def deactivate(self, zone_id: str) -> bool:
        zone = self._zones.get(zone_id)
        if zone is None:
            return False
        zone.is_active = False
        self._index = None
        return True


class InMemoryInspectorRepository:
    def __init__(self, inspectors: Iterable[Inspector] = ()) -> None:
        self._inspectors: dict[str, Inspector] = {inspector.id: inspector for inspector in inspectors}

    def add(self, inspector: Inspector) -> Inspector:
        self._inspectors[inspector.id] = inspector
        return inspector

    def find_active(self) -> list[Inspector]:
        return [inspector for inspector in self._inspectors.values() if inspector.is_active]

    def find_all(self) -> list[Inspector]:
        return list(self._inspectors.values())

    def find_by_id(self, inspector_id: str) -> Optional[Inspector]:
        return self._inspectors.get(inspector_id)


class InMemoryRouteRepository:
    def __init__(self, routes: Iterable[Route] = ()) -> None:
        self._routes: dict[str, Route] = {route.id: route for route in routes}

    def find_by_id(self, route_id: str) -> Optional[Route]:
        return self._routes.get(route_id)

    def find_all(self) -> list[Route]:
        return list(self._routes.values())

    def find_by_status(self, status: RouteStatus) -> list[Route]:
        return [route for route in self._routes.values() if route.status == status]

    def find_by_inspector(self, inspector_id: str) -> list[Route]:
        return [route for route in self._routes.values() if route.assigned_inspector_id == inspector_id]

    def save(self, route: Route) -> Route:
        stored = replace(route, updated_at=datetime.now(timezone.utc))
        self._routes[route.id] = stored
        return stored

    def assign_to_inspector(self, route_id: str, inspector_id: str) -> Optional[Route]:
        route = self._routes.get(route_id)
        if route is None:
            return None
        return self.save(replace(route, status="assigned", assigned_inspector_id=inspector_id))

    def unassign_from_inspector(self, route_id: str) -> Optional[Route]:
        route = self._routes.get(route_id)
        if route is None:
            return None
        return self.save(replace(route, status="pending", assigned_inspector_id=None))


class InMemoryRoutePointRepository:
    def __init__(self, points: Iterable[RoutePoint] = ()) -> None:
        self._points: dict[str, RoutePoint] = {point.id: point for point in points}

    def find_by_route(self, route_id: str) -> list[RoutePoint]:
        points = [point for point in self._points.values() if point.route_id == route_id]
        return sorted(points, key=lambda point: point.point_order)

    def reorder_points(self, route_id: str, ordered_point_ids: Sequence[str]) -> None:
        current = {point.id for point in self.find_by_route(route_id)}
        if set(ordered_point_ids) != current or len(ordered_point_ids) != len(current):
            raise ValueError(f"Reorder for route '{route_id}' must list each of its points exactly once")
        for order, point_id in enumerate(ordered_point_ids, start=1):
            self._points[point_id].point_order = order


class InMemoryCoordinateRepository:
    def __init__(self, coordinates: Iterable[Coordinate] = ()) -> None:
        self._coordinates: dict[str, Coordinate] = {coordinate.id: coordinate for coordinate in coordinates}

    def find_by_id(self, coordinate_id: str) -> Optional[Coordinate]:
        return self._coordinates.get(coordinate_id)

    def update_zone(self, coordinate_id: str, zone_id: Optional[str]) -> None:
        coordinate = self._coordinates.get(coordinate_id)
        if coordinate is not None:
            self._coordinates[coordinate_id] = replace(coordinate, zone_id=zone_id)
