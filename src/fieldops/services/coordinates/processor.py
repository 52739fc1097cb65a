"""Batch zone assignment, duplicate grouping and cleaning for coordinates."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Literal, Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate
from ..classifier import ZoneClassifier
from ..geospatial import distance_meters, within_country_bounds

logger = logging.getLogger(__name__)

COORDINATE_PRECISION = 6
MIN_ZONE_CONFIDENCE = 0.5

ResolutionStrategy = Literal["keep_first", "keep_last", "merge"]
RESOLUTION_STRATEGIES = ("keep_first", "keep_last", "merge")


@dataclass(slots=True)
class ProcessingOptions:
    enable_duplicate_detection: bool = True
    duplicate_threshold_meters: float = field(default_factory=lambda: settings.duplicate_threshold_meters)
    enable_zone_validation: bool = True


@dataclass(frozen=True, slots=True)
class CoordinateError:
    coordinate: Coordinate
    error: str


@dataclass(slots=True)
class ProcessingResult:
    processed_coordinates: list[Coordinate] = field(default_factory=list)
    duplicates: list[list[Coordinate]] = field(default_factory=list)
    zone_assignments: dict[str, str] = field(default_factory=dict)
    processing_errors: list[CoordinateError] = field(default_factory=list)


@dataclass(slots=True)
class BulkStats:
    total_processed: int = 0
    successful_assignments: int = 0
    failed_assignments: int = 0
    chunks: int = 0
    processing_time_ms: float = 0.0


@dataclass(slots=True)
class BulkAssignmentResult:
    assigned_coordinates: list[Coordinate] = field(default_factory=list)
    unassigned_coordinates: list[Coordinate] = field(default_factory=list)
    zone_assignments: dict[str, str] = field(default_factory=dict)
    stats: BulkStats = field(default_factory=BulkStats)


@dataclass(slots=True)
class CleaningResult:
    cleaned_coordinates: list[Coordinate]
    removed_coordinates: list[Coordinate]
    normalized_count: int

    @property
    def report(self) -> str:
        total = len(self.cleaned_coordinates) + len(self.removed_coordinates)
        return "\n".join(
            [
                "Coordinate Cleaning Report:",
                f"- Total coordinates processed: {total}",
                f"- Coordinates kept: {len(self.cleaned_coordinates)}",
                f"- Coordinates removed (out of bounds): {len(self.removed_coordinates)}",
                f"- Coordinates normalized (precision adjusted): {self.normalized_count}",
            ]
        )


@dataclass(slots=True)
class DuplicateResolution:
    resolved_coordinates: list[Coordinate]
    duplicate_groups: list[list[Coordinate]]
    strategy: ResolutionStrategy
    total: int

    @property
    def removed_count(self) -> int:
        return self.total - len(self.resolved_coordinates)

    @property
    def report(self) -> str:
        return "\n".join(
            [
                "Duplicate Resolution Report:",
                f"- Total coordinates processed: {self.total}",
                f"- Duplicate groups found: {len(self.duplicate_groups)}",
                f"- Total duplicates removed: {self.removed_count}",
                f"- Resolution strategy: {self.strategy}",
                f"- Final coordinate count: {len(self.resolved_coordinates)}",
            ]
        )


@dataclass(slots=True)
class ZoneValidationResult:
    valid_coordinates: list[Coordinate] = field(default_factory=list)
    invalid_coordinates: list[CoordinateError] = field(default_factory=list)

    @property
    def report(self) -> str:
        total = len(self.valid_coordinates) + len(self.invalid_coordinates)
        rate = f"{len(self.valid_coordinates) / total * 100:.1f}%" if total else "0%"
        return "\n".join(
            [
                "Zone Validation Report:",
                f"- Total coordinates validated: {total}",
                f"- Valid coordinates: {len(self.valid_coordinates)}",
                f"- Invalid coordinates: {len(self.invalid_coordinates)}",
                f"- Validation success rate: {rate}",
            ]
        )


def _duplicate_index_groups(coordinates: Sequence[Coordinate], threshold_meters: float) -> list[list[int]]:
    groups: list[list[int]] = []
    grouped: set[int] = set()
    for i, seed in enumerate(coordinates):
        if i in grouped:
            continue
        group = [i]
        grouped.add(i)
        for j in range(i + 1, len(coordinates)):
            if j in grouped:
                continue
            if distance_meters(seed, coordinates[j]) <= threshold_meters:
                group.append(j)
                grouped.add(j)
        if len(group) > 1:
            groups.append(group)
    return groups


def detect_duplicates(coordinates: Sequence[Coordinate], threshold_meters: float) -> list[list[Coordinate]]:
    """Group coordinates lying within ``threshold_meters`` of a seed coordinate.

    Each not-yet-grouped coordinate seeds a group with every later ungrouped
    coordinate close to it. Grouping is not transitive: a chain of points that
    are each close to a neighbour can still split across groups.
    """

    return [[coordinates[i] for i in group] for group in _duplicate_index_groups(coordinates, threshold_meters)]


def merge_coordinates(group: Sequence[Coordinate]) -> Coordinate:
    """Average a duplicate group into its first member, keeping the longest address."""

    if not group:
        raise ValueError("Cannot merge an empty coordinate group")
    if len(group) == 1:
        return group[0]
    addresses = [c.address.strip() for c in group if c.address and c.address.strip()]
    return replace(
        group[0],
        latitude=round(sum(c.latitude for c in group) / len(group), COORDINATE_PRECISION),
        longitude=round(sum(c.longitude for c in group) / len(group), COORDINATE_PRECISION),
        address=max(addresses, key=len) if addresses else group[0].address,
        imported_from=f"merged_from_{len(group)}_coordinates",
    )


def resolve_duplicates(
    coordinates: Sequence[Coordinate],
    threshold_meters: Optional[float] = None,
    strategy: ResolutionStrategy = "keep_first",
) -> DuplicateResolution:
    """Collapse each duplicate group to one coordinate.

    Coordinates outside any group keep their order; one representative per
    group follows them, in group order.
    """

    if strategy not in RESOLUTION_STRATEGIES:
        raise ValueError(f"Unknown duplicate resolution strategy '{strategy}'")
    if threshold_meters is None:
        threshold_meters = settings.duplicate_threshold_meters

    index_groups = _duplicate_index_groups(coordinates, threshold_meters)
    grouped = {i for group in index_groups for i in group}
    resolved = [coordinate for i, coordinate in enumerate(coordinates) if i not in grouped]
    groups = [[coordinates[i] for i in group] for group in index_groups]
    for group in groups:
        if strategy == "keep_last":
            resolved.append(group[-1])
        elif strategy == "merge":
            resolved.append(merge_coordinates(group))
        else:
            resolved.append(group[0])
    return DuplicateResolution(resolved, groups, strategy, len(coordinates))


def clean_coordinates(coordinates: Sequence[Coordinate]) -> CleaningResult:
    """Drop coordinates outside the country bounds and round the rest to 6 decimals."""

    cleaned: list[Coordinate] = []
    removed: list[Coordinate] = []
    normalized = 0
    for coordinate in coordinates:
        if not within_country_bounds(coordinate.latitude, coordinate.longitude):
            removed.append(coordinate)
            continue
        rounded = replace(
            coordinate,
            latitude=round(coordinate.latitude, COORDINATE_PRECISION),
            longitude=round(coordinate.longitude, COORDINATE_PRECISION),
        )
        if rounded != coordinate:
            normalized += 1
        cleaned.append(rounded)
    return CleaningResult(cleaned, removed, normalized)


class CoordinateBatchProcessor:
    def __init__(self, classifier: ZoneClassifier, *, chunk_size: int | None = None) -> None:
        self.classifier = classifier
        self.chunk_size = chunk_size or settings.bulk_chunk_size

    def process(
        self,
        coordinates: Sequence[Coordinate],
        options: Optional[ProcessingOptions] = None,
    ) -> ProcessingResult:
        options = options or ProcessingOptions()
        result = ProcessingResult()

        if options.enable_duplicate_detection:
            result.duplicates = detect_duplicates(coordinates, options.duplicate_threshold_meters)

        for coordinate in coordinates:
            if not options.enable_zone_validation:
                result.processed_coordinates.append(coordinate)
                continue

            detection = self.classifier.detect(coordinate)
            if detection.error is not None:
                result.processing_errors.append(CoordinateError(coordinate, detection.error))
            if detection.zone is not None:
                result.zone_assignments[coordinate.id] = detection.zone.id
                coordinate = replace(coordinate, zone_id=detection.zone.id)
            result.processed_coordinates.append(coordinate)

        logger.info(
            "Processed %d coordinates: %d zoned, %d duplicate groups, %d errors",
            len(result.processed_coordinates),
            len(result.zone_assignments),
            len(result.duplicates),
            len(result.processing_errors),
        )
        return result

    def bulk_assign_zones(self, coordinates: Sequence[Coordinate]) -> BulkAssignmentResult:
        """Exact-containment classification only, walked in fixed-size chunks."""

        started = time.perf_counter()
        result = BulkAssignmentResult()
        zones = self.classifier.zones
        for start in range(0, len(coordinates), self.chunk_size):
            result.stats.chunks += 1
            for coordinate in coordinates[start : start + self.chunk_size]:
                try:
                    zone = zones.find_zone_containing_point(coordinate.latitude, coordinate.longitude)
                except Exception as exc:
                    logger.warning(f"Error processing coordinate {coordinate.id}: {exc}")
                    zone = None
                if zone is None:
                    result.unassigned_coordinates.append(coordinate)
                    result.stats.failed_assignments += 1
                    continue
                result.zone_assignments[coordinate.id] = zone.id
                result.assigned_coordinates.append(replace(coordinate, zone_id=zone.id))
                result.stats.successful_assignments += 1

        result.stats.total_processed = len(coordinates)
        result.stats.processing_time_ms = (time.perf_counter() - started) * 1000
        return result

    def validate_against_zones(self, coordinates: Sequence[Coordinate]) -> ZoneValidationResult:
        """Split coordinates into those that confidently fall in a zone and the rest."""

        result = ZoneValidationResult()
        for coordinate in coordinates:
            if not within_country_bounds(coordinate.latitude, coordinate.longitude):
                result.invalid_coordinates.append(CoordinateError(coordinate, "Coordinate is outside the country bounds"))
                continue
            detection = self.classifier.detect(coordinate)
            if detection.confidence > MIN_ZONE_CONFIDENCE:
                result.valid_coordinates.append(coordinate)
            else:
                result.invalid_coordinates.append(CoordinateError(coordinate, "No suitable zone found for coordinate"))
        return result
