from __future__ import annotations

from typing import Any

from layers.types import CircleMarker

DEFAULT_TRACE_NAME = "Points"


def _marker_color(layer: CircleMarker) -> str:
    return layer.style.fill_color or layer.style.color


def trace_markers(name: str, layers: list[CircleMarker]) -> dict[str, Any]:
    """
    One scattermapbox trace for a set of circle markers. Per-point arrays keep
    individual styles; Plotly sizes are diameters, so radius * 2.
    """
    return {
        "type": "scattermapbox",
        "name": name,
        "lon": [m.lon for m in layers],
        "lat": [m.lat for m in layers],
        "mode": "markers",
        "text": [m.popup or "" for m in layers],
        "customdata": [m.id for m in layers],
        "marker": {
            "size": [round(m.radius * 2, 2) for m in layers],
            "color": [_marker_color(m) for m in layers],
            "opacity": [m.style.opacity for m in layers],
        },
        "hovertemplate": "%{text}<extra></extra>",
        "hoverinfo": "text",
    }


def traces_by_group(layers: list[CircleMarker]) -> list[dict[str, Any]]:
    """
    Split drawn markers into one trace per group, in first-seen order.
    Markers without a group go to a single default trace.
    """
    buckets: dict[str, list[CircleMarker]] = {}
    for layer in layers:
        buckets.setdefault(layer.group_key or DEFAULT_TRACE_NAME, []).append(layer)
    return [trace_markers(name, items) for name, items in buckets.items()]
