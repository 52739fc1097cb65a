import io
import zipfile
from typing import Callable

import pytest

from fieldops.models.domain import GeoPoint, Zone

KML_NAMESPACE = "http://www.opengis.net/kml/2.2"


def _square(south: float, west: float, size: float = 0.2, closed: bool = False) -> tuple[GeoPoint, ...]:
    ring = [
        GeoPoint(south, west),
        GeoPoint(south + size, west),
        GeoPoint(south + size, west + size),
        GeoPoint(south, west + size),
    ]
    if closed:
        ring.append(ring[0])
    return tuple(ring)


@pytest.fixture
def make_square() -> Callable[..., tuple[GeoPoint, ...]]:
    return _square


@pytest.fixture
def bogota_zone() -> Zone:
    # centroid of the open ring is (4.6, -74.1)
    return Zone(
        id="z1",
        name="Zona I - Metropolitana Suroriente",
        category="metropolitan",
        boundary=_square(4.5, -74.2),
        color="#FF0000",
    )


@pytest.fixture
def neighbour_zone() -> Zone:
    return Zone(
        id="z2",
        name="Zona VII - Rural Oriental Norte",
        category="rural",
        boundary=_square(4.8, -74.2),
    )


def ring_text(points: tuple[GeoPoint, ...]) -> str:
    return " ".join(f"{point.longitude},{point.latitude},0" for point in points)


def placemark(name: str, *rings: tuple[GeoPoint, ...], extra: str = "") -> str:
    polygons = "".join(
        "<Polygon><outerBoundaryIs><LinearRing><coordinates>"
        f"{ring_text(ring)}"
        "</coordinates></LinearRing></outerBoundaryIs></Polygon>"
        for ring in rings
    )
    geometry = f"<MultiGeometry>{polygons}</MultiGeometry>" if len(rings) > 1 else polygons
    return f"<Placemark><name>{name}</name>{extra}{geometry}</Placemark>"


def kml_document(*placemarks: str, styles: str = "") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<kml xmlns="{KML_NAMESPACE}"><Document>{styles}{"".join(placemarks)}</Document></kml>'
    )


def kmz_bytes(files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content.encode("utf-8"))
    return buffer.getvalue()


@pytest.fixture
def kmz_builder():
    """Helpers for assembling KMZ archives in-test."""

    class Builder:
        placemark = staticmethod(placemark)
        document = staticmethod(kml_document)
        archive = staticmethod(kmz_bytes)

        @staticmethod
        def zones(*placemarks: str, styles: str = "") -> bytes:
            return kmz_bytes({"doc.kml": kml_document(*placemarks, styles=styles)})

    return Builder
