from __future__ import annotations

import json

import pytest

from layers.loaders import (
    format_for_source,
    parse_csv_records,
    parse_geojson_records,
    parse_records,
)
from maps.errors import MalformedPayload, UnsupportedFormat


def test_csv_rows_are_typed():
    parsed = parse_csv_records("lat,long,type,count,ok,note\n48.85,2.35,A,3,true,\n")
    assert parsed.skipped == 0
    (rec,) = parsed.records
    assert (rec.lat, rec.lon) == (48.85, 2.35)
    assert rec.props["type"] == "A"
    assert rec.props["count"] == 3
    assert rec.props["ok"] is True
    assert rec.props["note"] is None


def test_csv_rows_with_bad_coordinates_are_skipped():
    raw = "lat,long,type\n48.85,2.35,A\nnope,4.85,B\n,,C\n95,2,D\n45.75,4.85,E\n"
    parsed = parse_csv_records(raw)
    assert [r.props["type"] for r in parsed.records] == ["A", "E"]
    assert parsed.skipped == 3


def test_csv_without_header_is_empty():
    parsed = parse_csv_records("")
    assert parsed.records == []
    assert parsed.skipped == 0


def test_geojson_feature_collection():
    raw = json.dumps(
        {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "geometry": {"type": "Point", "coordinates": [2.35, 48.85]}, "properties": {"type": "A"}},
                {"type": "Feature", "geometry": None, "properties": {"type": "B"}},
                {"type": "Feature", "geometry": {"type": "Point", "coordinates": [0, 0]}, "properties": None},
            ],
        }
    )
    parsed = parse_geojson_records(raw)
    assert parsed.skipped == 1
    assert [(r.lon, r.lat) for r in parsed.records] == [(2.35, 48.85), (0.0, 0.0)]
    assert parsed.records[0].props == {"type": "A"}
    assert parsed.records[1].props == {}


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        json.dumps({"type": "Feature", "features": []}),
        json.dumps({"type": "FeatureCollection"}),
        json.dumps([1, 2, 3]),
    ],
)
def test_malformed_geojson_raises(raw):
    with pytest.raises(MalformedPayload):
        parse_geojson_records(raw)


def test_unknown_format_raises():
    with pytest.raises(UnsupportedFormat):
        parse_records("kml", "<kml/>")


def test_format_for_source():
    assert format_for_source("data/sites.csv") == "csv"
    assert format_for_source("https://example.org/x/points.GeoJSON?v=2") == "geojson"
    with pytest.raises(UnsupportedFormat):
        format_for_source("https://example.org/points.json")
    with pytest.raises(UnsupportedFormat):
        format_for_source("README")
