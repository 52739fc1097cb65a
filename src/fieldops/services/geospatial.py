"""Geospatial helper functions.

Pure functions over ``GeoPoint`` sequences. Polygons are rings of vertices in
(latitude, longitude) order; a repeated closing vertex is accepted but never
required.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, TypeVar

from ..config import COUNTRY_BOUNDS
from ..models.domain import GeoPoint

EARTH_RADIUS_KM = 6371.0
METERS_PER_DEGREE = 111_320.0
MIN_DEGREE_AREA = 1e-10
_COLLINEAR_EPSILON = 1e-10

_Located = TypeVar("_Located")


@dataclass(frozen=True, slots=True)
class BoundingBox:
    north: float
    south: float
    east: float
    west: float

    @property
    def center(self) -> GeoPoint:
        return GeoPoint((self.north + self.south) / 2, (self.east + self.west) / 2)

    def intersects(self, other: "BoundingBox") -> bool:
        return not (
            self.east < other.west
            or other.east < self.west
            or self.north < other.south
            or other.north < self.south
        )


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_meters(p1, p2) -> float:
    """Great-circle distance in meters between two objects with latitude/longitude."""

    return haversine_km(p1.latitude, p1.longitude, p2.latitude, p2.longitude) * 1000.0


def _open_ring(polygon: Sequence[GeoPoint]) -> list[GeoPoint]:
    ring = list(polygon)
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring.pop()
    return ring


def point_in_polygon(point: GeoPoint, polygon: Sequence[GeoPoint]) -> bool:
    """Ray-casting parity test; longitude is x and latitude is y."""

    lat, lon = point.latitude, point.longitude
    vertices = list(polygon)
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i].longitude, vertices[i].latitude
        xj, yj = vertices[j].longitude, vertices[j].latitude
        if (yi > lat) != (yj > lat) and lon < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def signed_degree_area(polygon: Sequence[GeoPoint]) -> float:
    """Shoelace area in square degrees; positive for counter-clockwise rings."""

    vertices = list(polygon)
    if len(vertices) < 3:
        return 0.0
    total = 0.0
    for i, current in enumerate(vertices):
        nxt = vertices[(i + 1) % len(vertices)]
        total += current.longitude * nxt.latitude
        total -= nxt.longitude * current.latitude
    return total / 2


def polygon_area(polygon: Sequence[GeoPoint]) -> float:
    """Approximate area in square meters (flat 111.32 km per degree scale)."""

    return abs(signed_degree_area(polygon)) * METERS_PER_DEGREE * METERS_PER_DEGREE


def polygon_perimeter(polygon: Sequence[GeoPoint]) -> float:
    """Perimeter in meters, treating the ring as closed."""

    vertices = list(polygon)
    if len(vertices) < 2:
        return 0.0
    return sum(
        distance_meters(vertices[i], vertices[(i + 1) % len(vertices)])
        for i in range(len(vertices))
    )


def _orientation(p: GeoPoint, q: GeoPoint, r: GeoPoint) -> int:
    value = (q.longitude - p.longitude) * (r.latitude - q.latitude) - (q.latitude - p.latitude) * (
        r.longitude - q.longitude
    )
    if abs(value) < _COLLINEAR_EPSILON:
        return 0
    return 1 if value > 0 else 2


def _on_segment(p: GeoPoint, q: GeoPoint, r: GeoPoint) -> bool:
    """True when ``q`` lies within the bounding box of segment ``p``-``r``."""
    return (
        min(p.longitude, r.longitude) <= q.longitude <= max(p.longitude, r.longitude)
        and min(p.latitude, r.latitude) <= q.latitude <= max(p.latitude, r.latitude)
    )


def segments_intersect(p1: GeoPoint, q1: GeoPoint, p2: GeoPoint, q2: GeoPoint) -> bool:
    o1 = _orientation(p1, q1, p2)
    o2 = _orientation(p1, q1, q2)
    o3 = _orientation(p2, q2, p1)
    o4 = _orientation(p2, q2, q1)

    if o1 != o2 and o3 != o4:
        return True

    # collinear and touching
    if o1 == 0 and _on_segment(p1, p2, q1):
        return True
    if o2 == 0 and _on_segment(p1, q2, q1):
        return True
    if o3 == 0 and _on_segment(p2, p1, q2):
        return True
    if o4 == 0 and _on_segment(p2, q1, q2):
        return True
    return False


def has_self_intersections(polygon: Sequence[GeoPoint]) -> bool:
    ring = _open_ring(polygon)
    if not ring:
        return False
    ring.append(ring[0])
    edge_count = len(ring) - 1
    for i in range(edge_count):
        for j in range(i + 2, edge_count):
            if i == 0 and j == edge_count - 1:
                continue  # first and last edge share the closing vertex
            if segments_intersect(ring[i], ring[i + 1], ring[j], ring[j + 1]):
                return True
    return False


def polygon_valid(polygon: Sequence[GeoPoint]) -> bool:
    """At least three vertices, non-zero area and no crossing non-adjacent edges."""

    ring = _open_ring(polygon)
    if len(ring) < 3:
        return False
    if abs(signed_degree_area(ring)) <= MIN_DEGREE_AREA:
        return False
    return not has_self_intersections(ring)


def centroid(points: Iterable) -> GeoPoint | None:
    """Arithmetic mean of the given positions; ``None`` for an empty input."""

    items = list(points)
    if not items:
        return None
    lat = sum(item.latitude for item in items) / len(items)
    lon = sum(item.longitude for item in items) / len(items)
    return GeoPoint(lat, lon)


def bounding_box(points: Iterable) -> BoundingBox | None:
    items = list(points)
    if not items:
        return None
    return BoundingBox(
        north=max(item.latitude for item in items),
        south=min(item.latitude for item in items),
        east=max(item.longitude for item in items),
        west=min(item.longitude for item in items),
    )


def points_within_radius(points: Iterable[_Located], center: GeoPoint, radius_meters: float) -> list[_Located]:
    return [item for item in points if distance_meters(center, item) <= radius_meters]


def within_country_bounds(latitude: float, longitude: float) -> bool:
    return (
        COUNTRY_BOUNDS["south"] <= latitude <= COUNTRY_BOUNDS["north"]
        and COUNTRY_BOUNDS["west"] <= longitude <= COUNTRY_BOUNDS["east"]
    )
