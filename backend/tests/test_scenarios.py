from __future__ import annotations

import pytest
from pydantic import ValidationError

from maps.errors import MissingRadiusEntry
from scenarios.build import build_scenario_map, load_scenario_source
from scenarios.registry import get_scenario, list_scenarios
from scenarios.types import ScenarioConfig

SCENARIO_YAML = """
id: tiny
title: Tiny
options:
  vue-zoom: 7
  url_hash: false
source:
  path: points.csv
groupFields: [type]
features:
  - fields: [type]
    popup: "{name}"
radiusByZoom: {7: 3, 9: 5}
radiusClamp: false
filters:
  type: [A, B]
legend:
  entries:
    - {fields: {type: A}, name: Alpha}
    - {fields: {type: B}}
"""

POINTS = "lat,long,type,name\n48.85,2.35,A,Paris\n45.75,4.85,B,Lyon\n43.30,5.37,C,Marseille\n"


@pytest.fixture
def scenarios_dir(tmp_path, monkeypatch):
    d = tmp_path / "scenarios" / "tiny"
    d.mkdir(parents=True)
    (d / "scenario.yaml").write_text(SCENARIO_YAML, encoding="utf-8")
    (d / "points.csv").write_text(POINTS, encoding="utf-8")
    monkeypatch.setenv("POINTMAP_SCENARIOS_DIR", str(tmp_path / "scenarios"))
    return d


def test_registry_discovers_scenario(scenarios_dir):
    assert [c.id for c in list_scenarios()] == ["tiny"]
    entry = get_scenario("tiny")
    assert entry.path == scenarios_dir / "scenario.yaml"
    with pytest.raises(KeyError):
        get_scenario("nope")


def test_scenario_map_end_to_end(scenarios_dir):
    entry = get_scenario("tiny")
    pmap = build_scenario_map(entry.config)
    report = load_scenario_source(pmap, entry)

    assert report.layers == 3
    assert {g.key: g.active for g in pmap.index} == {"A": True, "B": True, "C": False}
    assert [layer.popup for layer in pmap.surface.layers()] == ["Paris", "Lyon"]
    assert {layer.radius for layer in pmap.index.all_layers()} == {3}
    assert [e.label for e in pmap.legend.entries] == ["Alpha", "B"]
    assert pmap.surface.to_hash() is None


def test_strict_radius_map_reports_missing_levels(scenarios_dir):
    entry = get_scenario("tiny")
    pmap = build_scenario_map(entry.config)
    load_scenario_source(pmap, entry)
    with pytest.raises(MissingRadiusEntry):
        pmap.set_zoom(8)
    assert pmap.surface.get_zoom() == 7.0


def test_repo_sample_scenario_loads():
    entry = get_scenario("sites_demo")
    pmap = build_scenario_map(entry.config)
    report = load_scenario_source(pmap, entry)
    assert report.skipped == 0
    assert report.layers == report.records
    assert pmap.index.get("Orange,4G") is not None


def test_source_needs_exactly_one_location():
    with pytest.raises(ValidationError):
        ScenarioConfig.model_validate({"id": "x", "title": "x", "source": {}})
    with pytest.raises(ValidationError):
        ScenarioConfig.model_validate(
            {"id": "x", "title": "x", "source": {"path": "a.csv", "url": "https://e.org/a.csv"}}
        )


def test_invalid_zoom_bounds_rejected():
    with pytest.raises(ValidationError):
        ScenarioConfig.model_validate({"id": "x", "title": "x", "options": {"minzoom": 10, "maxzoom": 5}})
