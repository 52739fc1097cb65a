"""Coordinate import from spreadsheet workbooks."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import PurePath
from typing import Any, Optional

from openpyxl import load_workbook

from ...config import settings
from ...models.domain import Coordinate
from ..zones.catalog import normalize_zone_name


_HEADER_ALIASES = {
    "latitude": {"latitude", "latitud", "lat"},
    "longitude": {"longitude", "longitud", "lng", "lon", "long"},
    "address": {"address", "direccion", "dir"},
    "id": {"id", "codigo", "code", "coordinate id"},
}


@dataclass(frozen=True, slots=True)
class RowError:
    row: int
    field: str
    message: str
    value: Any = None


@dataclass(slots=True)
class ImportedCoordinates:
    coordinates: list[Coordinate] = field(default_factory=list)
    validation_errors: list[RowError] = field(default_factory=list)
    total_rows: int = 0

    @property
    def valid_rows(self) -> int:
        return len(self.coordinates)

    @property
    def invalid_rows(self) -> int:
        return len(self.validation_errors)


def _canonical_header(value: Any) -> Optional[str]:
    if value is None:
        return None
    normalized = normalize_zone_name(str(value).replace("_", " "))
    for canonical, aliases in _HEADER_ALIASES.items():
        if normalized in aliases:
            return canonical
    return None


def _as_float(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return float(str(value).strip().replace(",", "."))


def _parse_row(row: tuple, columns: dict[str, int], source: str) -> Coordinate:
    def cell(name: str) -> Any:
        index = columns.get(name)
        return row[index] if index is not None and index < len(row) else None

    latitude = _as_float(cell("latitude"))
    longitude = _as_float(cell("longitude"))
    if latitude is None:
        raise ValueError("latitude is required")
    if longitude is None:
        raise ValueError("longitude is required")
    if not -90 <= latitude <= 90:
        raise ValueError(f"latitude {latitude} is outside [-90, 90]")
    if not -180 <= longitude <= 180:
        raise ValueError(f"longitude {longitude} is outside [-180, 180]")

    raw_id = cell("id")
    address = cell("address")
    return Coordinate(
        id=str(raw_id).strip() if raw_id not in (None, "") else str(uuid.uuid4()),
        latitude=latitude,
        longitude=longitude,
        address=str(address).strip() if address not in (None, "") else None,
        imported_from=source,
    )


def _is_blank(row: tuple) -> bool:
    return all(value in (None, "") for value in row)


def import_coordinates_workbook(payload: bytes, file_name: str) -> ImportedCoordinates:
    """Read coordinates from the first worksheet of a workbook.

    Row problems are collected as ``RowError`` entries numbered by their sheet
    row; only an unreadable or structurally broken workbook raises
    ``ValueError``. Blank rows are skipped and not counted.
    """

    if len(payload) > settings.spreadsheet_max_bytes:
        raise ValueError(f"File size exceeds maximum limit of {settings.spreadsheet_max_bytes} bytes")
    extensions = tuple(extension.lower() for extension in settings.spreadsheet_extensions)
    if PurePath(file_name).suffix.lower() not in extensions:
        raise ValueError(f"Unsupported file format. Supported formats: {', '.join(extensions)}")

    try:
        workbook = load_workbook(BytesIO(payload), data_only=True, read_only=True)
    except Exception as exc:
        raise ValueError(f"Invalid spreadsheet file: {exc}") from exc

    try:
        if not workbook.worksheets:
            raise ValueError("No worksheets found in spreadsheet")
        rows = [
            (number, row)
            for number, row in enumerate(workbook.worksheets[0].iter_rows(min_row=1, values_only=True), start=1)
            if not _is_blank(row)
        ]
    finally:
        workbook.close()

    if len(rows) < 2:
        raise ValueError("Spreadsheet must contain a header row and at least one data row")

    columns: dict[str, int] = {}
    for index, header in enumerate(rows[0][1]):
        canonical = _canonical_header(header)
        if canonical and canonical not in columns:
            columns[canonical] = index
    missing = {"latitude", "longitude"} - set(columns)
    if missing:
        raise ValueError(f"Spreadsheet missing columns: {', '.join(sorted(missing))}")

    result = ImportedCoordinates(total_rows=len(rows) - 1)
    seen_ids: set[str] = set()
    for number, row in rows[1:]:
        try:
            coordinate = _parse_row(row, columns, file_name)
        except ValueError as exc:
            result.validation_errors.append(RowError(number, "coordinate", str(exc), list(row)))
            continue
        if coordinate.id in seen_ids:
            result.validation_errors.append(RowError(number, "id", f"Duplicate coordinate id '{coordinate.id}'", coordinate.id))
            continue
        seen_ids.add(coordinate.id)
        result.coordinates.append(coordinate)
    return result
