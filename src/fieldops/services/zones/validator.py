"""Completeness, accuracy, coverage and overlap checks for a set of zone boundaries."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal, Optional, Protocol, Sequence

from ...config import ZONE_CATALOG
from ...models.domain import GeoPoint
from ..geospatial import bounding_box, polygon_area, signed_degree_area, within_country_bounds
from .catalog import normalize_zone_name

SMALL_AREA_DEGREES = 0.001


class BoundaryLike(Protocol):
    name: str
    boundary: Sequence[GeoPoint]


@dataclass(frozen=True, slots=True)
class ValidationFinding:
    level: Literal["error", "warning"]
    message: str
    zone_name: Optional[str] = None


@dataclass(slots=True)
class Completeness:
    expected_zones: int
    found_zones: int
    missing_zones: list[str]


@dataclass(slots=True)
class Accuracy:
    valid_boundaries: int = 0
    invalid_boundaries: int = 0


@dataclass(slots=True)
class Coverage:
    total_area: float = 0.0
    average_area: float = 0.0
    smallest_zone: Optional[str] = None
    largest_zone: Optional[str] = None


@dataclass(slots=True)
class ZoneBoundaryReport:
    is_valid: bool
    completeness: Completeness
    accuracy: Accuracy
    coverage: Coverage
    findings: list[ValidationFinding] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [finding.message for finding in self.findings if finding.level == "error"]

    @property
    def warnings(self) -> list[str]:
        return [finding.message for finding in self.findings if finding.level == "warning"]


def _boundary_error(boundary: Sequence[GeoPoint]) -> Optional[str]:
    if boundary is None or len(boundary) < 3:
        return "has fewer than 3 boundary points"
    for point in boundary:
        lat, lon = point.latitude, point.longitude
        if math.isnan(lat) or math.isnan(lon) or not (-90 <= lat <= 90 and -180 <= lon <= 180):
            return "has coordinates out of range"
    for point in boundary:
        if not within_country_bounds(point.latitude, point.longitude):
            return "has coordinates outside the country bounds"
    return None


def find_overlaps(zones: Sequence[BoundaryLike]) -> list[tuple[str, str]]:
    """Pairs of zones whose bounding boxes intersect."""

    boxes = [(zone.name, bounding_box(zone.boundary)) for zone in zones]
    overlaps: list[tuple[str, str]] = []
    for i, (first_name, first_box) in enumerate(boxes):
        for second_name, second_box in boxes[i + 1 :]:
            if first_box and second_box and first_box.intersects(second_box):
                overlaps.append((first_name, second_name))
    return overlaps


def validate_zone_boundaries(zones: Sequence[BoundaryLike]) -> ZoneBoundaryReport:
    """Check a polygon set against the zone catalog.

    The set is valid when every catalog zone is present and every boundary
    passes the accuracy checks. Overlaps and suspicious shapes only produce
    warnings.
    """

    if not zones:
        return ZoneBoundaryReport(
            is_valid=False,
            completeness=Completeness(len(ZONE_CATALOG), 0, list(ZONE_CATALOG)),
            accuracy=Accuracy(),
            coverage=Coverage(),
            findings=[ValidationFinding("error", "No zones found")],
            recommendations=["Import zone boundaries from KMZ file"],
        )

    findings: list[ValidationFinding] = []
    found = {normalize_zone_name(zone.name) for zone in zones}
    missing = [name for name in ZONE_CATALOG if normalize_zone_name(name) not in found]
    if missing:
        findings.append(ValidationFinding("error", f"Missing zones: {', '.join(missing)}"))

    accuracy = Accuracy()
    coverage = Coverage()
    smallest = math.inf
    largest = -math.inf
    for zone in zones:
        problem = _boundary_error(zone.boundary)
        if problem:
            accuracy.invalid_boundaries += 1
            findings.append(ValidationFinding("error", f'Zone "{zone.name}" {problem}', zone.name))
            continue

        accuracy.valid_boundaries += 1
        boundary = list(zone.boundary)
        if boundary[0] != boundary[-1]:
            findings.append(
                ValidationFinding("warning", f'Zone "{zone.name}" polygon may not be properly closed', zone.name)
            )
        if abs(signed_degree_area(boundary)) < SMALL_AREA_DEGREES:
            findings.append(
                ValidationFinding("warning", f'Zone "{zone.name}" has very small area, may be invalid', zone.name)
            )

        area = polygon_area(boundary)
        coverage.total_area += area
        if area < smallest:
            smallest, coverage.smallest_zone = area, zone.name
        if area > largest:
            largest, coverage.largest_zone = area, zone.name

    if accuracy.valid_boundaries:
        coverage.average_area = coverage.total_area / accuracy.valid_boundaries

    for first, second in find_overlaps(zones):
        findings.append(ValidationFinding("warning", f"Potential zone overlap: {first} and {second}"))

    recommendations: list[str] = []
    if missing:
        recommendations.append(f"Import missing zones: {', '.join(missing)}")
    if accuracy.invalid_boundaries:
        recommendations.append("Review and fix zones with invalid boundaries")
    if len(zones) > len(ZONE_CATALOG):
        recommendations.append("Review extra zones that may not be needed")

    return ZoneBoundaryReport(
        is_valid=not missing and accuracy.invalid_boundaries == 0,
        completeness=Completeness(len(ZONE_CATALOG), len(zones), missing),
        accuracy=accuracy,
        coverage=coverage,
        findings=findings,
        recommendations=recommendations,
    )
