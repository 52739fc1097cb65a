"""Export services."""

from .geojson import polygon_to_wkt, zone_to_feature, zones_to_feature_collection

__all__ = [
    "polygon_to_wkt",
    "zone_to_feature",
    "zones_to_feature_collection",
]
