from __future__ import annotations

import pytest

from groups.filters import FieldValueFilter, FilterEngine
from groups.index import GroupIndex
from layers.types import CircleMarker, MarkerStyle
from maps.errors import FilterPredicateFailure
from surface.memory import InMemoryMapSurface


@pytest.fixture
def setup():
    surface = InMemoryMapSurface()
    holder: dict = {}
    index = GroupIndex(["type"], surface, is_active=lambda f: holder["engine"].is_active(f))
    engine = FilterEngine(index)
    holder["engine"] = engine
    for t in ("A", "B", "C"):
        index.add_feature_layer(
            {"type": t}, CircleMarker(lat=45.0, lon=3.0, style=MarkerStyle(), fields={"type": t})
        )
    return index, engine, surface


def _active(index) -> dict[str, bool]:
    return {g.key: g.active for g in index}


def test_no_filters_is_vacuously_active(setup):
    index, engine, surface = setup
    assert engine.is_active({"type": "anything"})
    assert all(_active(index).values())
    assert len(surface.layers()) == 3


def test_always_true_filter_changes_nothing(setup):
    index, engine, surface = setup
    before = (surface.add_calls, surface.remove_calls)
    assert engine.add_filter(lambda f: True) == 0
    assert all(_active(index).values())
    assert (surface.add_calls, surface.remove_calls) == before


def test_always_false_filter_deactivates_everything(setup):
    index, engine, surface = setup
    engine.add_filter(lambda f: False)
    assert not any(_active(index).values())
    assert surface.layers() == []


def test_filters_combine_with_and(setup):
    index, engine, _surface = setup
    engine.add_filter(lambda f: f["type"] in {"A", "B"})
    second = engine.add_filter(lambda f: f["type"] != "A")
    assert second == 1
    assert _active(index) == {"A": False, "B": True, "C": False}


def test_refresh_is_idempotent(setup):
    _index, engine, surface = setup
    engine.add_filter(FieldValueFilter({"type": ["A"]}))
    calls = (surface.add_calls, surface.remove_calls)
    engine.refresh_all_filters()
    engine.refresh_all_filters()
    engine.refresh_filter(0)
    assert (surface.add_calls, surface.remove_calls) == calls


def test_new_groups_start_with_current_filter_result(setup):
    index, engine, surface = setup
    engine.add_filter(FieldValueFilter({"type": ["A", "D"]}))
    layer = CircleMarker(lat=45.0, lon=3.0, style=MarkerStyle(), fields={"type": "D"})
    index.add_feature_layer({"type": "D"}, layer)
    assert index.get("D").active
    assert surface.has_layer(layer)
    assert not index.get_group({"type": "E"}).active


def test_raising_predicate_fails_loudly_without_partial_refresh(setup):
    index, engine, surface = setup
    engine.add_filter(FieldValueFilter({"type": ["A", "B"]}))
    state = _active(index)
    calls = (surface.add_calls, surface.remove_calls)

    def explode(fields):
        if fields["type"] == "B":
            raise KeyError("boom")
        return fields["type"] == "A"

    with pytest.raises(FilterPredicateFailure) as excinfo:
        engine.add_filter(explode)
    assert excinfo.value.filter_id == 1
    assert isinstance(excinfo.value.cause, KeyError)
    assert _active(index) == state
    assert (surface.add_calls, surface.remove_calls) == calls
    # The failing predicate was not kept.
    assert len(engine) == 1


def test_non_boolean_result_is_rejected(setup):
    _index, engine, _surface = setup
    with pytest.raises(FilterPredicateFailure) as excinfo:
        engine.add_filter(lambda f: f.get("type"))
    assert excinfo.value.result == "A"


def test_refresh_unknown_filter_id(setup):
    _index, engine, _surface = setup
    with pytest.raises(KeyError):
        engine.refresh_filter(3)


def test_field_value_filter_compares_as_text():
    f = FieldValueFilter({"code": [5], "kind": ["x", None]})
    assert f({"code": "5", "kind": "x"})
    assert f({"code": 5, "kind": None})
    assert not f({"code": 6, "kind": "x"})
