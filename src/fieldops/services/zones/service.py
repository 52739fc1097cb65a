"""Zone boundary import and verification against the zone collaborator."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ...errors import CollaboratorError, NotFoundError
from ...persistence.repositories import ZoneRepository
from .catalog import default_zone_color
from .kmz import KMZZoneExtractor
from .validator import ZoneBoundaryReport, validate_zone_boundaries

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ZoneSetupResult:
    success: bool
    zones_created: int = 0
    zones_updated: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    color_mapping: dict[str, str] = field(default_factory=dict)
    processing_time_ms: float = 0.0


@dataclass(frozen=True, slots=True)
class ProbeSample:
    latitude: float
    longitude: float
    expected_zone: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ProbeOutcome:
    sample: ProbeSample
    detected_zone: Optional[str]
    is_correct: bool


@dataclass(slots=True)
class ProbeReport:
    results: list[ProbeOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def accuracy(self) -> float:
        if not self.results:
            return 0.0
        return sum(1 for outcome in self.results if outcome.is_correct) / len(self.results)


class ZoneBoundaryService:
    def __init__(self, zones: ZoneRepository, extractor: Optional[KMZZoneExtractor] = None) -> None:
        self.zones = zones
        self.extractor = extractor or KMZZoneExtractor()

    def setup_zone_boundaries(
        self,
        payload: bytes,
        *,
        overwrite_existing: bool = False,
        validate_only: bool = False,
    ) -> ZoneSetupResult:
        """Extract zones from a KMZ archive, validate them and persist them.

        Zones are matched to existing ones by name. Existing zones are updated
        only with ``overwrite_existing``; ``validate_only`` stops before any
        write. A failed write is reported and the remaining zones still run.
        """

        started = time.perf_counter()
        parsed = self.extractor.parse(payload)
        result = ZoneSetupResult(success=False, errors=list(parsed.errors))

        if not parsed.zones:
            result.errors.insert(0, "No valid zones found in KMZ file")
            result.processing_time_ms = (time.perf_counter() - started) * 1000
            return result

        report = validate_zone_boundaries(parsed.zones)
        result.errors.extend(report.errors)
        result.warnings.extend(report.warnings)
        result.color_mapping = parsed.color_mapping()

        if validate_only:
            result.success = report.is_valid
            result.processing_time_ms = (time.perf_counter() - started) * 1000
            return result

        try:
            existing = {zone.name: zone for zone in self.zones.find_all_active()}
        except CollaboratorError as exc:
            result.errors.append(f"Zone boundary setup failed: {exc}")
            result.processing_time_ms = (time.perf_counter() - started) * 1000
            return result

        for extracted in parsed.zones:
            current = existing.get(extracted.name)
            try:
                if current is None:
                    self.zones.create(
                        name=extracted.name,
                        category=extracted.category,
                        boundary=extracted.boundary,
                        color=extracted.color,
                    )
                    result.zones_created += 1
                elif overwrite_existing:
                    self.zones.update(
                        current.id,
                        category=extracted.category,
                        boundary=extracted.boundary,
                        color=extracted.color,
                    )
                    result.zones_updated += 1
                else:
                    result.warnings.append(
                        f'Zone "{extracted.name}" already exists, skipping (use overwrite_existing to update)'
                    )
            except CollaboratorError as exc:
                logger.warning(f"Failed to persist zone {extracted.name}: {exc}")
                result.errors.append(f'Failed to process zone "{extracted.name}": {exc}')

        result.success = not result.errors
        result.processing_time_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Zone setup finished: %d created, %d updated, %d errors",
            result.zones_created,
            result.zones_updated,
            len(result.errors),
        )
        return result

    def validate_active_zones(self) -> ZoneBoundaryReport:
        return validate_zone_boundaries(self.zones.find_all_active())

    def color_mapping(self) -> dict[str, str]:
        return {zone.name: zone.color or default_zone_color(zone.name) for zone in self.zones.find_all_active()}

    def deactivate_zone(self, zone_id: str) -> None:
        """Soft-delete a zone; it stays stored but no longer classifies coordinates."""
        if not self.zones.deactivate(zone_id):
            raise NotFoundError(f"Zone '{zone_id}' not found.")
        logger.info("Deactivated zone %s", zone_id)

    def probe_zone_boundaries(self, samples: Sequence[ProbeSample]) -> ProbeReport:
        """Check exact containment for sample points.

        A sample with an expected zone is correct when that zone is detected;
        one without is correct when any zone is detected.
        """

        report = ProbeReport()
        for sample in samples:
            try:
                zone = self.zones.find_zone_containing_point(sample.latitude, sample.longitude)
            except CollaboratorError as exc:
                report.errors.append(f"Error testing coordinate ({sample.latitude}, {sample.longitude}): {exc}")
                report.results.append(ProbeOutcome(sample, None, False))
                continue
            detected = zone.name if zone else None
            correct = detected == sample.expected_zone if sample.expected_zone else detected is not None
            report.results.append(ProbeOutcome(sample, detected, correct))
        return report
