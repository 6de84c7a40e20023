from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from loguru import logger

from groups.filters import FilterEngine, Predicate
from groups.index import Group, GroupIndex, group_key
from layers.extract import FeatureExtractor
from layers.types import CircleMarker, DataFormat, LoadReport
from legend.control import LegendControl, LegendEntry, LegendOptions
from lod.radius import RadiusByZoom
from maps.base import PointMap
from surface.types import MapSurface


class FilteredPointMap:
    """
    A PointMap whose markers are grouped by `field_names`, shown or hidden per
    group by filters and by the legend, and resized on zoom.

    Composition: the wrapped PointMap does the loading and hands every marker to
    this object (its layer sink).
    """

    def __init__(
        self,
        field_names: list[str],
        surface: MapSurface,
        *,
        features: FeatureExtractor | None = None,
    ) -> None:
        self.surface = surface
        self.base = PointMap(surface, features=features, sink=self)
        self.index = GroupIndex(field_names, surface, is_active=self._is_active, on_new_group=self._on_new_group)
        self.filters = FilterEngine(self.index)
        self.legend: LegendControl | None = None
        self.radius_map: RadiusByZoom | None = None
        self.radius: float | None = None
        surface.on_zoom(self._on_zoom)

    @property
    def field_names(self) -> list[str]:
        return self.index.field_names

    @property
    def lock(self):
        return self.base.lock

    def _is_active(self, fields: Mapping[str, Any]) -> bool:
        return self.filters.is_active(fields)

    def _on_new_group(self, group: Group) -> None:
        if self.legend is not None:
            self.legend.bind(group)

    # Loading (delegated)

    def load_layer(self, fmt: str, raw: str) -> LoadReport:
        return self.base.load_layer(fmt, raw)

    def load_csv_layer(self, raw: str) -> LoadReport:
        return self.base.load_csv_layer(raw)

    def load_geojson_layer(self, raw: str) -> LoadReport:
        return self.base.load_geojson_layer(raw)

    def load_url(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        fmt: DataFormat | None = None,
        timeout_s: float | None = None,
    ) -> LoadReport:
        return self.base.load_url(url, headers=headers, fmt=fmt, timeout_s=timeout_s)

    def load_file(self, path: Path | str, *, fmt: DataFormat | None = None) -> LoadReport:
        return self.base.load_file(path, fmt=fmt)

    # Layer sink

    def prepare_load(self) -> None:
        self._current_radius()

    def add_feature_layer(self, fields: Mapping[str, Any], layer: CircleMarker) -> None:
        radius = self._current_radius()
        if radius is not None:
            layer.set_radius(radius)
        self.index.add_feature_layer(fields, layer)

    def clear_all_layers(self) -> None:
        self.index.clear_all_layers()

    def on_new_data(self) -> None:
        self.refresh_radius(force=True)

    # Groups and filters

    def get_group(self, fields: Mapping[str, Any]) -> Group:
        return self.index.get_group(fields)

    def add_filter(self, predicate: Predicate) -> int:
        with self.lock:
            return self.filters.add_filter(predicate)

    def is_active(self, fields: Mapping[str, Any]) -> bool:
        return self.filters.is_active(fields)

    def refresh_filter(self, filter_id: int) -> None:
        with self.lock:
            self.filters.refresh_filter(filter_id)

    def refresh_all_filters(self) -> None:
        with self.lock:
            self.filters.refresh_all_filters()

    # Radius by zoom

    def add_radius_map(self, mapping: Mapping[int, float] | RadiusByZoom) -> None:
        self.radius_map = mapping if isinstance(mapping, RadiusByZoom) else RadiusByZoom(mapping)
        self.radius = None

    def _current_radius(self) -> float | None:
        # Once resolved, `radius` is the value for the surface's current zoom.
        if self.radius_map is None:
            return None
        if self.radius is None:
            self.radius = self.radius_map.lookup(self.surface.get_zoom())
        return self.radius

    def refresh_radius(self, force: bool = False) -> None:
        if self.radius_map is None:
            return
        new_radius = self.radius_map.lookup(self.surface.get_zoom())
        if new_radius != self.radius or force:
            self.radius = new_radius
            for layer in self.index.all_layers():
                layer.set_radius(new_radius)

    def _on_zoom(self, _zoom: float) -> None:
        with self.lock:
            self.refresh_radius()

    def set_zoom(self, zoom: float) -> float:
        """
        Change the surface zoom (clamped to its bounds); only surfaces that
        support it, like InMemoryMapSurface. If the radius for the new zoom
        cannot be resolved the surface keeps its previous zoom.
        """
        return self.surface.set_zoom(zoom)  # type: ignore[attr-defined]

    # Legend

    def add_legend(self, entries: list[Mapping[str, Any]], **params: Any) -> LegendControl:
        """
        Build the legend from entries like
        {"fields": {"type": "A"}, "name": "Type A", "color": "red", "fillColor": "red"}.
        An entry naming every grouping field is bound to that group (created if
        needed); one naming fewer is bound to every group matching it, including
        groups created by later loads.
        """
        rows: list[LegendEntry] = []
        for raw in entries:
            fields = dict(raw.get("fields") or {})
            groups: list[Group] = []
            if fields and all(name in fields for name in self.field_names):
                groups.append(self.get_group(fields))
            label = raw.get("name") or (groups[0].name if groups else group_key(list(fields), fields))
            rows.append(
                LegendEntry(
                    label=label,
                    type=raw.get("type") or "circle",
                    color=raw.get("color") or "black",
                    fill_color=raw.get("fillColor") or "#FFFFFF",
                    fill_opacity=raw.get("fillOpacity") or 0.7,
                    weight=1,
                    radius=raw.get("radius"),
                    groups=groups,
                    fields=fields,
                )
            )
        options = LegendOptions(
            title=params.get("title") or "Legend",
            position=params.get("position") or "bottomleft",
            opacity=params.get("opacity") or 0.8,
            symbol_width=params.get("symbolWidth") or 18,
            symbol_height=params.get("symbolHeight") or 24,
            column=params.get("column") or 1,
            collapsed=bool(params.get("collapsed", False)),
        )
        with self.lock:
            if self.legend is not None:
                self.legend.release()
            self.legend = LegendControl(self.index, rows, options)
        logger.debug(f"Legend with {len(self.legend.entries)} entries")
        return self.legend

    def toggle_legend(self, position: int) -> bool:
        if self.legend is None:
            raise LookupError("This map has no legend")
        with self.lock:
            return self.legend.toggle(position)
