from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from typing import Any, Literal


DataFormat = Literal["csv", "geojson"]

_marker_ids = itertools.count(1)


@dataclass(frozen=True)
class PointRecord:
    """
    One input row (CSV) or feature (GeoJSON): a location plus its properties.
    """

    index: int
    lon: float
    lat: float
    props: dict[str, Any]


@dataclass(frozen=True)
class MarkerStyle:
    radius: float = 5.0
    color: str = "#000000"
    opacity: float = 1.0
    fill_color: str | None = None
    fill_opacity: float = 0.2
    weight: float = 1.0

    def merged(self, overrides: dict[str, Any] | None) -> "MarkerStyle":
        if not overrides:
            return self
        return replace(self, **overrides)


@dataclass(frozen=True)
class FeatureSpec:
    """
    What the feature extractor produces for one record: how to draw it, an
    optional popup and the field values used for grouping/filtering.
    """

    marker: MarkerStyle = field(default_factory=MarkerStyle)
    popup: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class CircleMarker:
    """
    A drawn layer handle. Identity-compared: two markers at the same place are
    still two layers on the surface.
    """

    lat: float
    lon: float
    style: MarkerStyle
    popup: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)
    group_key: str | None = None
    id: int = field(default_factory=lambda: next(_marker_ids))

    @property
    def radius(self) -> float:
        return self.style.radius

    def set_radius(self, radius: float) -> None:
        self.style = replace(self.style, radius=float(radius))


@dataclass(frozen=True)
class LoadReport:
    format: DataFormat
    records: int
    skipped: int
    features: int
    layers: int
