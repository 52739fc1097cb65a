"""Extraction of catalog zone boundaries from KMZ archives.

A KMZ archive is a ZIP container holding a KML document. Every ``Placemark``
is treated as one feature; features whose name matches a catalog zone become
``ExtractedZone`` records, the rest are counted as skipped.
"""

from __future__ import annotations

import io
import logging
import time
import zipfile
from dataclasses import dataclass, field
from typing import Optional

from lxml import etree

from ...config import settings
from ...errors import ParseError
from ...models.domain import GeoPoint, ZoneCategory
from ..geospatial import signed_degree_area
from .catalog import category_for, default_zone_color, match_catalog_name

logger = logging.getLogger(__name__)

_COLOR_PROPERTIES = ("fill", "color", "marker-color", "stroke", "stroke-color")


@dataclass(slots=True)
class ExtractedZone:
    name: str
    category: ZoneCategory
    boundary: tuple[GeoPoint, ...]
    color: str
    description: Optional[str] = None


@dataclass(slots=True)
class KMZParsingResult:
    zones: list[ExtractedZone] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    total_placemarks: int = 0
    skipped_placemarks: int = 0
    parsing_time_ms: float = 0.0

    @property
    def processed_zones(self) -> int:
        return len(self.zones)

    def color_mapping(self) -> dict[str, str]:
        return {zone.name: zone.color for zone in self.zones}


def _local(tag: str) -> str:
    return f"*[local-name()='{tag}']"


def _child_text(element, tag: str) -> Optional[str]:
    found = element.xpath(f"./{_local(tag)}")
    if not found or found[0].text is None:
        return None
    text = found[0].text.strip()
    return text or None


def read_kml_document(payload: bytes) -> bytes:
    """Return the raw KML document stored inside a KMZ archive."""

    if len(payload) > settings.kmz_max_bytes:
        raise ParseError(f"KMZ archive exceeds {settings.kmz_max_bytes} bytes")
    try:
        archive = zipfile.ZipFile(io.BytesIO(payload))
    except zipfile.BadZipFile as exc:
        raise ParseError("File is not a valid KMZ archive") from exc

    with archive:
        documents = [name for name in archive.namelist() if name.lower().endswith(".kml")]
        if not documents:
            raise ParseError("No KML file found in KMZ archive")
        if len(documents) > 1:
            logger.warning("KMZ archive holds %d KML documents, reading %s", len(documents), documents[0])
        return archive.read(documents[0])


def parse_coordinates(text: str) -> list[GeoPoint]:
    """Parse whitespace separated ``lon,lat[,alt]`` tuples."""

    points: list[GeoPoint] = []
    for chunk in text.split():
        parts = chunk.split(",")
        if len(parts) < 2:
            raise ValueError(f"Malformed coordinate tuple '{chunk}'")
        points.append(GeoPoint(latitude=float(parts[1]), longitude=float(parts[0])))
    return points


def _kml_color_to_hex(value: str) -> Optional[str]:
    """KML colors are aabbggrr; convert to #rrggbb."""
    value = value.strip().lstrip("#")
    if len(value) != 8:
        return None
    return f"#{value[6:8]}{value[4:6]}{value[2:4]}".upper()


class KMZZoneExtractor:
    """Turns a KMZ archive into catalog zones with boundaries and colors."""

    def parse(self, payload: bytes) -> KMZParsingResult:
        started = time.perf_counter()
        result = KMZParsingResult()
        try:
            document = self._load_document(read_kml_document(payload))
            placemarks = document.xpath(f"//{_local('Placemark')}")
            if not placemarks:
                raise ParseError("No features found in KML file")

            styles = self._collect_styles(document)
            result.total_placemarks = len(placemarks)
            for placemark in placemarks:
                try:
                    zone = self._extract_zone(placemark, styles)
                except (ValueError, etree.XPathError) as exc:
                    result.errors.append(f"Error processing feature: {exc}")
                    result.skipped_placemarks += 1
                    continue
                if zone is None:
                    result.skipped_placemarks += 1
                else:
                    result.zones.append(zone)
        except ParseError as exc:
            result = KMZParsingResult(errors=[f"KMZ parsing failed: {exc}"])

        result.parsing_time_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Parsed KMZ: %d placemarks, %d zones, %d skipped, %d errors",
            result.total_placemarks,
            result.processed_zones,
            result.skipped_placemarks,
            len(result.errors),
        )
        return result

    @staticmethod
    def _load_document(raw: bytes):
        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
        try:
            return etree.fromstring(raw, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise ParseError(f"Invalid KML document: {exc}") from exc

    @staticmethod
    def _collect_styles(document) -> dict[str, str]:
        styles: dict[str, str] = {}
        for style in document.xpath(f"//{_local('Style')}[@id]"):
            color = KMZZoneExtractor._style_color(style)
            if color:
                styles[style.get("id")] = color
        return styles

    @staticmethod
    def _style_color(style) -> Optional[str]:
        for owner in ("PolyStyle", "LineStyle", "IconStyle"):
            found = style.xpath(f"./{_local(owner)}/{_local('color')}")
            if found and found[0].text:
                converted = _kml_color_to_hex(found[0].text)
                if converted:
                    return converted
        return None

    def _extract_zone(self, placemark, styles: dict[str, str]) -> Optional[ExtractedZone]:
        name = _child_text(placemark, "name")
        if not name:
            return None

        matched = match_catalog_name(name)
        if matched is None:
            return None

        boundary = self._largest_ring(placemark)
        if boundary is None or len(boundary) < 3:
            return None

        return ExtractedZone(
            name=matched,
            category=category_for(matched),
            boundary=tuple(boundary),
            color=self._feature_color(placemark, styles) or default_zone_color(matched),
            description=_child_text(placemark, "description"),
        )

    @staticmethod
    def _largest_ring(placemark) -> Optional[list[GeoPoint]]:
        rings = placemark.xpath(
            f".//{_local('Polygon')}/{_local('outerBoundaryIs')}/{_local('LinearRing')}/{_local('coordinates')}"
        )
        best: Optional[list[GeoPoint]] = None
        best_area = -1.0
        for ring in rings:
            points = parse_coordinates(ring.text or "")
            area = abs(signed_degree_area(points))
            if area > best_area:
                best, best_area = points, area
        return best

    @staticmethod
    def _feature_color(placemark, styles: dict[str, str]) -> Optional[str]:
        extended = {
            (data.get("name") or "").lower(): (_child_text(data, "value") or "")
            for data in placemark.xpath(f"./{_local('ExtendedData')}/{_local('Data')}")
        }
        for key in _COLOR_PROPERTIES:
            if extended.get(key):
                return extended[key]

        for inline in placemark.xpath(f"./{_local('Style')}"):
            color = KMZZoneExtractor._style_color(inline)
            if color:
                return color

        style_url = _child_text(placemark, "styleUrl")
        if style_url:
            return styles.get(style_url.lstrip("#"))
        return None


def parse_kmz(payload: bytes) -> KMZParsingResult:
    return KMZZoneExtractor().parse(payload)
