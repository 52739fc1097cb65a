"""Supabase-backed collaborators for zones, inspectors, routes and coordinates.

Every call is a single request; failures surface as ``CollaboratorError`` so
callers can record them without knowing about the client library.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from supabase import Client

from ..errors import CollaboratorError
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
from ..services.export.geojson import boundary_to_geojson, geojson_to_boundary

logger = logging.getLogger(__name__)


def _execute(operation: str, request: Callable[[], Any]) -> list[dict[str, Any]]:
    try:
        response = request()
    except Exception as exc:
        logger.warning(f"Supabase {operation} failed: {exc}")
        raise CollaboratorError(operation, exc) from exc
    data = getattr(response, "data", None)
    if data is None:
        return []
    return data if isinstance(data, list) else [data]


def _zone_from_row(row: dict[str, Any]) -> Zone:
    geometry = row.get("boundaries") or {}
    return Zone(
        id=str(row["id"]),
        name=row["name"],
        category=row.get("type") or "rural",
        boundary=geojson_to_boundary(geometry) if geometry else tuple(),
        is_active=bool(row.get("is_active", True)),
        color=row.get("color"),
    )


def _inspector_from_row(row: dict[str, Any]) -> Inspector:
    return Inspector(
        id=str(row["id"]),
        name=row["name"],
        identification=str(row.get("identification") or ""),
        preferred_zones=frozenset(str(zone) for zone in (row.get("preferred_zones") or [])),
        max_daily_routes=int(row.get("max_daily_routes") or 1),
        is_active=bool(row.get("is_active", True)),
    )


def _route_from_row(row: dict[str, Any]) -> Route:
    updated_at = row.get("updated_at")
    return Route(
        id=str(row["id"]),
        name=row.get("name") or "",
        priority=row.get("priority") or "medium",
        zone_id=str(row["zone_id"]) if row.get("zone_id") else None,
        status=row.get("status") or "pending",
        assigned_inspector_id=str(row["assigned_inspector_id"]) if row.get("assigned_inspector_id") else None,
        estimated_duration_minutes=row.get("estimated_duration"),
        updated_at=datetime.fromisoformat(updated_at) if isinstance(updated_at, str) else updated_at,
    )


def _coordinate_from_row(row: dict[str, Any]) -> Coordinate:
    return Coordinate(
        id=str(row["id"]),
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        address=row.get("address"),
        zone_id=str(row["zone_id"]) if row.get("zone_id") else None,
        imported_from=row.get("imported_from"),
    )


class SupabaseZoneRepository:
    table = "zones"

    def __init__(self, client: Client) -> None:
        self.client = client

    def find_zone_containing_point(self, latitude: float, longitude: float) -> Optional[Zone]:
        rows = _execute(
            "find_zone_containing_point",
            lambda: self.client.rpc("find_zone_containing_point", {"lat": latitude, "lng": longitude}).execute(),
        )
        return _zone_from_row(rows[0]) if rows else None

    def find_all_active(self) -> list[Zone]:
        rows = _execute(
            "find active zones",
            lambda: self.client.table(self.table).select("*").eq("is_active", True).order("name").execute(),
        )
        return [_zone_from_row(row) for row in rows]

    def find_by_id(self, zone_id: str) -> Optional[Zone]:
        rows = _execute(
            "find zone", lambda: self.client.table(self.table).select("*").eq("id", zone_id).limit(1).execute()
        )
        return _zone_from_row(rows[0]) if rows else None

    def create(
        self,
        *,
        name: str,
        category: ZoneCategory,
        boundary: Sequence[GeoPoint],
        color: Optional[str] = None,
    ) -> Zone:
        payload = {
            "name": name,
            "type": category,
            "boundaries": boundary_to_geojson(boundary),
            "color": color,
            "is_active": True,
        }
        rows = _execute(f"create zone {name}", lambda: self.client.table(self.table).insert(payload).execute())
        if not rows:
            raise CollaboratorError(f"create zone {name}")
        return _zone_from_row(rows[0])

    def update(
        self,
        zone_id: str,
        *,
        category: ZoneCategory | None = None,
        boundary: Sequence[GeoPoint] | None = None,
        color: Optional[str] = None,
    ) -> Optional[Zone]:
        changes: dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if category is not None:
            changes["type"] = category
        if boundary is not None:
            changes["boundaries"] = boundary_to_geojson(boundary)
        if color is not None:
            changes["color"] = color
        rows = _execute(
            f"update zone {zone_id}",
            lambda: self.client.table(self.table).update(changes).eq("id", zone_id).execute(),
        )
        return _zone_from_row(rows[0]) if rows else None

    def deactivate(self, zone_id: str) -> bool:
        rows = _execute(
            f"deactivate zone {zone_id}",
            lambda: self.client.table(self.table).update({"is_active": False}).eq("id", zone_id).execute(),
        )
        return bool(rows)


class SupabaseInspectorRepository:
    table = "inspectors"

    def __init__(self, client: Client) -> None:
        self.client = client

    def find_active(self) -> list[Inspector]:
        rows = _execute(
            "find active inspectors",
            lambda: self.client.table(self.table).select("*").eq("is_active", True).execute(),
        )
        return [_inspector_from_row(row) for row in rows]

    def find_all(self) -> list[Inspector]:
        rows = _execute("find inspectors", lambda: self.client.table(self.table).select("*").execute())
        return [_inspector_from_row(row) for row in rows]

    def find_by_id(self, inspector_id: str) -> Optional[Inspector]:
        rows = _execute(
            "find inspector",
            lambda: self.client.table(self.table).select("*").eq("id", inspector_id).limit(1).execute(),
        )
        return _inspector_from_row(rows[0]) if rows else None


class SupabaseRouteRepository:
    table = "routes"

    def __init__(self, client: Client) -> None:
        self.client = client

    def find_by_id(self, route_id: str) -> Optional[Route]:
        rows = _execute(
            "find route", lambda: self.client.table(self.table).select("*").eq("id", route_id).limit(1).execute()
        )
        return _route_from_row(rows[0]) if rows else None

    def find_all(self) -> list[Route]:
        rows = _execute("find routes", lambda: self.client.table(self.table).select("*").execute())
        return [_route_from_row(row) for row in rows]

    def find_by_status(self, status: RouteStatus) -> list[Route]:
        rows = _execute(
            f"find {status} routes",
            lambda: self.client.table(self.table).select("*").eq("status", status).order("created_at").execute(),
        )
        return [_route_from_row(row) for row in rows]

    def find_by_inspector(self, inspector_id: str) -> list[Route]:
        rows = _execute(
            "find inspector routes",
            lambda: self.client.table(self.table).select("*").eq("assigned_inspector_id", inspector_id).execute(),
        )
        return [_route_from_row(row) for row in rows]

    def _update(self, route_id: str, changes: dict[str, Any]) -> Optional[Route]:
        changes = {**changes, "updated_at": datetime.now(timezone.utc).isoformat()}
        rows = _execute(
            f"update route {route_id}",
            lambda: self.client.table(self.table).update(changes).eq("id", route_id).execute(),
        )
        return _route_from_row(rows[0]) if rows else None

    def save(self, route: Route) -> Route:
        updated = self._update(
            route.id,
            {
                "name": route.name,
                "priority": route.priority,
                "zone_id": route.zone_id,
                "status": route.status,
                "assigned_inspector_id": route.assigned_inspector_id,
                "estimated_duration": route.estimated_duration_minutes,
            },
        )
        if updated is None:
            raise CollaboratorError(f"save route {route.id}")
        return updated

    def assign_to_inspector(self, route_id: str, inspector_id: str) -> Optional[Route]:
        return self._update(route_id, {"status": "assigned", "assigned_inspector_id": inspector_id})

    def unassign_from_inspector(self, route_id: str) -> Optional[Route]:
        return self._update(route_id, {"status": "pending", "assigned_inspector_id": None})


class SupabaseRoutePointRepository:
    table = "route_points"

    def __init__(self, client: Client) -> None:
        self.client = client

    def find_by_route(self, route_id: str) -> list[RoutePoint]:
        rows = _execute(
            "find route points",
            lambda: self.client.table(self.table)
            .select("*, coordinates(*)")
            .eq("route_id", route_id)
            .order("point_order")
            .execute(),
        )
        return [
            RoutePoint(
                id=str(row["id"]),
                route_id=str(row["route_id"]),
                coordinate=_coordinate_from_row(row["coordinates"]),
                point_order=int(row["point_order"]),
                estimated_minutes=row.get("estimated_time"),
                status=row.get("status") or "pending",
            )
            for row in rows
        ]

    def reorder_points(self, route_id: str, ordered_point_ids: Sequence[str]) -> None:
        # point_order is unique per route, so the new order is written through one RPC
        _execute(
            "reorder route points",
            lambda: self.client.rpc(
                "reorder_route_points", {"route_id": route_id, "point_ids": list(ordered_point_ids)}
            ).execute(),
        )


class SupabaseCoordinateRepository:
    table = "coordinates"

    def __init__(self, client: Client) -> None:
        self.client = client

    def find_by_id(self, coordinate_id: str) -> Optional[Coordinate]:
        rows = _execute(
            "find coordinate",
            lambda: self.client.table(self.table).select("*").eq("id", coordinate_id).limit(1).execute(),
        )
        return _coordinate_from_row(rows[0]) if rows else None

    def update_zone(self, coordinate_id: str, zone_id: Optional[str]) -> None:
        _execute(
            "update coordinate zone",
            lambda: self.client.table(self.table).update({"zone_id": zone_id}).eq("id", coordinate_id).execute(),
        )
