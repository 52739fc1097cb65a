"""Domain models for zones, coordinates, routes and inspectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional, Sequence

ZoneCategory = Literal["metropolitan", "rural"]
RoutePriority = Literal["low", "medium", "high"]
RouteStatus = Literal["pending", "assigned", "in_progress", "completed", "cancelled"]
RoutePointStatus = Literal["pending", "completed", "skipped"]

PRIORITY_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """WGS84 position in degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude {self.latitude} is outside [-90, 90]")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude {self.longitude} is outside [-180, 180]")


# Ordered ring of vertices; a repeated closing vertex is tolerated everywhere.
Polygon = Sequence[GeoPoint]


@dataclass(slots=True)
class Zone:
    """Named administrative area with a polygonal boundary."""

    id: str
    name: str
    category: ZoneCategory
    boundary: tuple[GeoPoint, ...]
    is_active: bool = True
    color: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Coordinate:
    """Imported location; only ``zone_id`` is ever backfilled (via ``dataclasses.replace``)."""

    id: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    zone_id: Optional[str] = None
    imported_from: Optional[str] = None


@dataclass(slots=True)
class Route:
    id: str
    name: str
    priority: RoutePriority = "medium"
    zone_id: Optional[str] = None
    status: RouteStatus = "pending"
    assigned_inspector_id: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class RoutePoint:
    id: str
    route_id: str
    coordinate: Coordinate
    point_order: int
    estimated_minutes: Optional[int] = None
    status: RoutePointStatus = "pending"


@dataclass(slots=True)
class Inspector:
    id: str
    name: str
    identification: str
    preferred_zones: frozenset[str] = field(default_factory=frozenset)
    max_daily_routes: int = 1
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.max_daily_routes <= 0:
            raise ValueError("max_daily_routes must be > 0")
        self.preferred_zones = frozenset(self.preferred_zones)


@dataclass(slots=True)
class WorkloadMetrics:
    """Per-inspector load snapshot as reported by the workload collaborator."""

    inspector_id: str
    inspector_name: str
    current_routes: int
    max_daily_routes: int
    available_capacity: int
    utilization_percentage: float
    estimated_work_hours: float
