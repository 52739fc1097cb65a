"""GeoJSON/WKT conversion for zone boundaries."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from ...models.domain import GeoPoint, Zone


def _closed(boundary: Sequence[GeoPoint]) -> List[GeoPoint]:
    ring = list(boundary)
    if ring and ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


def polygon_to_wkt(boundary: Sequence[GeoPoint]) -> str:
    """Convert a boundary to a WKT POLYGON (lon lat order as per WKT spec)."""

    if not boundary or len(boundary) < 3:
        raise ValueError("Polygon must have at least 3 coordinates")

    coord_pairs = [f"{point.longitude} {point.latitude}" for point in _closed(boundary)]
    return f"POLYGON(({','.join(coord_pairs)}))"


def boundary_to_geojson(boundary: Sequence[GeoPoint]) -> Dict[str, Any]:
    if not boundary or len(boundary) < 3:
        raise ValueError("Polygon must have at least 3 coordinates")
    return {
        "type": "Polygon",
        "coordinates": [[[point.longitude, point.latitude] for point in _closed(boundary)]],
    }


def geojson_to_boundary(geometry: Dict[str, Any]) -> tuple[GeoPoint, ...]:
    """Read the exterior ring of a GeoJSON Polygon (or the first part of a MultiPolygon)."""

    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []
    if geometry_type == "MultiPolygon":
        coordinates = coordinates[0] if coordinates else []
    elif geometry_type != "Polygon":
        raise ValueError(f"Unsupported geometry type '{geometry_type}'")
    if not coordinates:
        return tuple()
    return tuple(GeoPoint(latitude=float(lat), longitude=float(lon)) for lon, lat, *_ in coordinates[0])


def zone_to_feature(zone: Zone) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "id": zone.id,
        "geometry": boundary_to_geojson(zone.boundary),
        "properties": {
            "name": zone.name,
            "type": zone.category,
            "color": zone.color,
            "is_active": zone.is_active,
        },
    }


def zones_to_feature_collection(zones: Sequence[Zone]) -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [zone_to_feature(zone) for zone in zones if len(zone.boundary) >= 3],
    }
