"""Coordinate to zone classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import settings
from ..models.domain import Coordinate, Zone
from ..persistence.repositories import ZoneRepository
from .geospatial import centroid, distance_meters

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ZoneDetection:
    """Outcome of classifying one coordinate.

    ``error`` carries the collaborator failure message when classification
    degraded to "no zone"; it is never raised.
    """

    coordinate: Coordinate
    zone: Optional[Zone]
    confidence: float
    error: Optional[str] = None

    @property
    def zone_id(self) -> Optional[str]:
        return self.zone.id if self.zone else None


def nearest_zone(
    coordinate: Coordinate,
    zones: Sequence[Zone],
    max_distance_meters: float,
) -> tuple[Optional[Zone], float]:
    """Closest zone by boundary centroid, with a linear confidence falloff."""

    closest: Optional[Zone] = None
    min_distance = float("inf")
    for zone in zones:
        center = centroid(zone.boundary)
        if center is None:
            continue
        distance = distance_meters(coordinate, center)
        if distance < min_distance:
            closest, min_distance = zone, distance

    if closest is not None and min_distance < max_distance_meters:
        return closest, max(0.0, 1 - min_distance / max_distance_meters)
    return None, 0.0


class ZoneClassifier:
    def __init__(self, zones: ZoneRepository, *, max_distance_meters: float | None = None) -> None:
        self.zones = zones
        self.max_distance_meters = max_distance_meters or settings.nearest_zone_max_distance_meters

    def detect(self, coordinate: Coordinate) -> ZoneDetection:
        try:
            zone = self.zones.find_zone_containing_point(coordinate.latitude, coordinate.longitude)
            if zone is not None:
                return ZoneDetection(coordinate, zone, 1.0)

            closest, confidence = nearest_zone(coordinate, self.zones.find_all_active(), self.max_distance_meters)
            return ZoneDetection(coordinate, closest, confidence)
        except Exception as exc:
            logger.warning(f"Error detecting zone for coordinate {coordinate.id}: {exc}")
            return ZoneDetection(coordinate, None, 0.0, error=str(exc))
