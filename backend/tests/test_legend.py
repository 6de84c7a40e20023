from __future__ import annotations

from layers.types import FeatureSpec
from legend.control import LegendControl, LegendEntry, LegendOptions, circle_symbol_svg
from maps.filtered import FilteredPointMap
from surface.memory import InMemoryMapSurface

CSV = "lat,long,type\n48.85,2.35,A\n45.75,4.85,B\n43.30,5.37,A\n"


def _by_type(props):
    return [FeatureSpec(fields={"type": props["type"]})]


def _loaded_map() -> FilteredPointMap:
    pmap = FilteredPointMap(["type"], InMemoryMapSurface(), features=_by_type)
    pmap.add_legend(
        [
            {"fields": {"type": "A"}, "name": "Type A", "fillColor": "#ff0000"},
            {"fields": {"type": "B"}},
            {"fields": {"type": "C"}, "type": "square"},
        ]
    )
    pmap.load_csv_layer(CSV)
    return pmap


def test_legend_binds_groups_and_drops_unsupported_symbols():
    pmap = _loaded_map()
    legend = pmap.legend
    assert [e.label for e in legend.entries] == ["Type A", "B"]
    assert [len(e.groups[0].layers) for e in legend.entries] == [2, 1]
    # The legend created the group for "C" even though it has no layers.
    assert pmap.index.get("C") is not None


def test_toggle_hides_and_restores_bound_layers():
    pmap = _loaded_map()
    surface = pmap.surface
    group_a = pmap.index.get("A")

    assert pmap.toggle_legend(0) is True
    assert not any(surface.has_layer(layer) for layer in group_a.layers)
    assert len(surface.layers()) == 1

    assert pmap.toggle_legend(0) is False
    assert all(surface.has_layer(layer) for layer in group_a.layers)
    assert len(surface.layers()) == 3


def test_legend_and_filters_are_both_required():
    pmap = _loaded_map()
    surface = pmap.surface
    group_a = pmap.index.get("A")

    pmap.toggle_legend(0)
    pmap.add_filter(lambda f: True)
    # Filters passing do not override the legend.
    assert not any(surface.has_layer(layer) for layer in group_a.layers)

    pmap.toggle_legend(0)
    filter_id = pmap.add_filter(lambda f: f["type"] == "B")
    assert filter_id == 1
    # Legend re-enabled but the filter now hides A.
    assert not any(surface.has_layer(layer) for layer in group_a.layers)
    assert group_a.legend_enabled and not group_a.active


def test_legend_state_survives_reload():
    pmap = _loaded_map()
    pmap.toggle_legend(1)
    pmap.load_csv_layer(CSV)
    group_b = pmap.index.get("B")
    assert len(group_b.layers) == 1
    assert not pmap.surface.has_layer(group_b.layers[0])


def test_render_columns_and_symbols():
    pmap = FilteredPointMap(["type"], InMemoryMapSurface())
    legend = pmap.add_legend(
        [{"fields": {"type": t}} for t in "ABCDE"],
        title="Types",
        column=2,
        collapsed=True,
    )
    out = legend.render()
    assert out["title"] == "Types"
    assert out["position"] == "bottomleft"
    assert out["expanded"] is False
    assert [[row["label"] for row in col] for col in out["columns"]] == [
        ["A", "B", "C"],
        ["D", "E"],
    ]
    assert out["columns"][0][0]["symbol"].startswith("<svg")
    assert legend.expand().render()["expanded"] is True


def test_entry_without_groups_is_not_clickable():
    pmap = FilteredPointMap(["type"], InMemoryMapSurface())
    entry = LegendEntry(label="Decoration")
    legend = LegendControl(pmap.index, [entry], LegendOptions())
    assert legend.toggle(0) is False
    assert legend.render()["columns"][0][0]["clickable"] is False


def test_circle_symbol_geometry():
    entry = LegendEntry(label="x", color="black", fill_color="#FFFFFF", fill_opacity=0.7, weight=1)
    svg = circle_symbol_svg(entry, width=18, height=24)
    # Centre of the cell, radius limited by the narrower side minus the stroke.
    assert 'cx="9"' in svg and 'cy="12"' in svg and 'r="8"' in svg
    assert 'fill="#FFFFFF"' in svg and 'fill-opacity="0.7"' in svg
    assert 'stroke="black"' in svg and 'stroke-width="1"' in svg

    small = circle_symbol_svg(LegendEntry(label="y", radius=3, fill_color=None), width=18, height=24)
    assert 'r="3"' in small and 'fill="none"' in small


SITES = "lat,long,op,techno\n48.85,2.35,Orange,4G\n45.75,4.85,Orange,5G\n43.30,5.37,SFR,4G\n"


def _by_operator_and_techno(props):
    return [
        FeatureSpec(
            popup=f"{props['op']}{props['techno']}",
            fields={"op": props["op"], "techno": props["techno"]},
        )
    ]


def _drawn_popups(pmap: FilteredPointMap) -> list[str]:
    return sorted(layer.popup for layer in pmap.surface.layers())


def test_partial_fields_entry_binds_every_matching_group():
    pmap = FilteredPointMap(["op", "techno"], InMemoryMapSurface(), features=_by_operator_and_techno)
    legend = pmap.add_legend([{"fields": {"op": "Orange"}}])
    pmap.load_csv_layer(SITES)

    assert [g.key for g in pmap.index] == ["Orange,4G", "Orange,5G", "SFR,4G"]
    assert [g.key for g in legend.entries[0].groups] == ["Orange,4G", "Orange,5G"]
    assert legend.entries[0].label == "Orange"

    assert pmap.toggle_legend(0) is True
    assert _drawn_popups(pmap) == ["SFR4G"]
    assert pmap.toggle_legend(0) is False
    assert _drawn_popups(pmap) == ["Orange4G", "Orange5G", "SFR4G"]


def test_groups_created_after_a_toggle_start_hidden():
    pmap = FilteredPointMap(["op", "techno"], InMemoryMapSurface(), features=_by_operator_and_techno)
    pmap.add_legend([{"fields": {"op": "Orange"}}])
    # Clickable before any group matches, since it binds by field values.
    assert pmap.legend.render()["columns"][0][0]["clickable"] is True

    pmap.toggle_legend(0)
    pmap.load_csv_layer(SITES)
    assert _drawn_popups(pmap) == ["SFR4G"]
    assert not pmap.index.get("Orange,5G").legend_enabled


def test_replacing_the_legend_restores_groups_it_hid():
    pmap = _loaded_map()
    group_a = pmap.index.get("A")
    pmap.toggle_legend(0)
    assert not group_a.legend_enabled

    pmap.add_legend([{"fields": {"type": "B"}}])
    assert group_a.legend_enabled
    assert all(pmap.surface.has_layer(layer) for layer in group_a.layers)
    assert len(pmap.surface.layers()) == 3
