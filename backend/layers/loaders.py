from __future__ import annotations

import csv
import io
import json
import math
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlsplit

from loguru import logger

from layers.types import DataFormat, PointRecord
from maps.errors import MalformedPayload, UnsupportedFormat

_EXTENSION_FORMATS: dict[str, DataFormat] = {
    ".csv": "csv",
    ".geojson": "geojson",
}


@dataclass
class ParsedRecords:
    records: list[PointRecord] = field(default_factory=list)
    # Rows/features that could not be turned into a record (bad coordinates, no geometry).
    skipped: int = 0


def format_for_source(source: str) -> DataFormat:
    """
    Pick the data format from a file path or URL extension.
    """
    path = urlsplit(source).path if "://" in source else source
    ext = PurePosixPath(path).suffix.lower()
    fmt = _EXTENSION_FORMATS.get(ext)
    if fmt is None:
        raise UnsupportedFormat(ext or "<none>", source)
    return fmt


def parse_records(fmt: str, raw: str) -> ParsedRecords:
    if fmt == "csv":
        return parse_csv_records(raw)
    if fmt == "geojson":
        return parse_geojson_records(raw)
    raise UnsupportedFormat(fmt)


def valid_lonlat(lon: Any, lat: Any) -> tuple[float, float] | None:
    if isinstance(lon, bool) or isinstance(lat, bool):
        return None
    try:
        x, y = float(lon), float(lat)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    if not (-180.0 <= x <= 180.0 and -90.0 <= y <= 90.0):
        return None
    return x, y


def parse_csv_records(raw: str) -> ParsedRecords:
    """
    Header-row CSV with at least `lat` and `long` columns.

    Cells are typed like a spreadsheet would: ints, floats and true/false become
    Python values, empty cells become None.
    """
    out = ParsedRecords()
    reader = csv.DictReader(io.StringIO(raw))
    if not reader.fieldnames:
        return out
    for i, row in enumerate(reader):
        props = {
            (k or "").strip(): _typed(v)
            for k, v in row.items()
            if k is not None
        }
        coords = valid_lonlat(props.get("long"), props.get("lat"))
        if coords is None:
            logger.warning(f"Skipping CSV row {i + 1}: invalid coordinates")
            out.skipped += 1
            continue
        out.records.append(PointRecord(index=i, lon=coords[0], lat=coords[1], props=props))
    return out


def _typed(value: Any) -> Any:
    if value is None:
        return None
    s = value.strip()
    if s == "":
        return None
    low = s.lower()
    if low == "true":
        return True
    if low == "false":
        return False
    try:
        return int(s)
    except ValueError:
        pass
    try:
        f = float(s)
    except ValueError:
        return value
    return f if math.isfinite(f) else value


def parse_geojson_records(raw: str) -> ParsedRecords:
    """
    A single GeoJSON FeatureCollection of points ([lon, lat] coordinates).
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedPayload("geojson", f"invalid JSON ({e.msg} at line {e.lineno})") from e

    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        raise MalformedPayload("geojson", "root is not a FeatureCollection")
    features = data.get("features")
    if not isinstance(features, list):
        raise MalformedPayload("geojson", "`features` is missing or not a list")

    out = ParsedRecords()
    for i, feature in enumerate(features):
        feature = feature if isinstance(feature, dict) else {}
        geom = feature.get("geometry")
        props = feature.get("properties")
        coords = geom.get("coordinates") if isinstance(geom, dict) else None
        lonlat = None
        if isinstance(coords, (list, tuple)) and len(coords) >= 2:
            lonlat = valid_lonlat(coords[0], coords[1])
        if lonlat is None:
            logger.warning(f"Skipping GeoJSON feature {i}: missing or invalid point geometry")
            out.skipped += 1
            continue
        out.records.append(
            PointRecord(
                index=i,
                lon=lonlat[0],
                lat=lonlat[1],
                props=dict(props) if isinstance(props, dict) else {},
            )
        )
    return out
