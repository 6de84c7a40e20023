from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Mapping, Protocol, cast

from loguru import logger

from layers.extract import FeatureExtractor, default_features
from layers.fetch import fetch_text
from layers.loaders import format_for_source, parse_records
from layers.types import CircleMarker, DataFormat, LoadReport
from surface.types import MapSurface


class LayerSink(Protocol):
    """
    Receives the markers a load produces.

    - DirectLayerSink: draws everything
    - FilteredPointMap: groups, filters and sizes markers first
    """

    def prepare_load(self) -> None: ...

    def add_feature_layer(self, fields: Mapping[str, Any], layer: CircleMarker) -> None: ...

    def clear_all_layers(self) -> None: ...

    def on_new_data(self) -> None: ...


class DirectLayerSink:
    def __init__(self, surface: MapSurface) -> None:
        self.surface = surface
        self._layers: list[CircleMarker] = []

    def prepare_load(self) -> None:
        pass

    def add_feature_layer(self, fields: Mapping[str, Any], layer: CircleMarker) -> None:
        self._layers.append(layer)
        self.surface.add_layer(layer)

    def clear_all_layers(self) -> None:
        for layer in self._layers:
            self.surface.remove_layer(layer)
        self._layers.clear()

    def on_new_data(self) -> None:
        pass


class PointMap:
    """
    Loads point datasets onto a map surface.

    Every load replaces the previous one: the sink is cleared, each record goes
    through the feature extractor, each feature becomes a CircleMarker, and the
    sink is notified once all records are in. Loads on one map are serialized.
    """

    def __init__(
        self,
        surface: MapSurface,
        *,
        features: FeatureExtractor | None = None,
        sink: LayerSink | None = None,
    ) -> None:
        self.surface = surface
        self.features: FeatureExtractor = features or default_features
        self.sink: LayerSink = sink or DirectLayerSink(surface)
        self.lock = threading.RLock()

    def load_layer(self, fmt: str, raw: str) -> LoadReport:
        with self.lock:
            # Parse and prepare before clearing so a failure keeps the current data.
            parsed = parse_records(fmt, raw)
            self.sink.prepare_load()
            self.sink.clear_all_layers()

            skipped = parsed.skipped
            n_features = 0
            n_layers = 0
            for record in parsed.records:
                try:
                    specs = self.features(record.props)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping record {record.index}: feature extraction failed ({e})")
                    skipped += 1
                    continue
                for spec in specs:
                    n_features += 1
                    layer = CircleMarker(
                        lat=record.lat,
                        lon=record.lon,
                        style=spec.marker,
                        popup=spec.popup,
                        fields=dict(spec.fields),
                    )
                    self.sink.add_feature_layer(spec.fields, layer)
                    n_layers += 1

            self.sink.on_new_data()

        report = LoadReport(
            format=cast(DataFormat, fmt),
            records=len(parsed.records) + parsed.skipped,
            skipped=skipped,
            features=n_features,
            layers=n_layers,
        )
        logger.info(
            f"Loaded {report.format}: {report.records} records, "
            f"{report.layers} layers, {report.skipped} skipped"
        )
        return report

    def load_csv_layer(self, raw: str) -> LoadReport:
        return self.load_layer("csv", raw)

    def load_geojson_layer(self, raw: str) -> LoadReport:
        return self.load_layer("geojson", raw)

    def load_url(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        fmt: DataFormat | None = None,
        timeout_s: float | None = None,
    ) -> LoadReport:
        fmt = fmt or format_for_source(url)
        raw = fetch_text(url, headers=headers, timeout_s=timeout_s)
        return self.load_layer(fmt, raw)

    def load_file(self, path: Path | str, *, fmt: DataFormat | None = None) -> LoadReport:
        p = Path(path)
        fmt = fmt or format_for_source(str(p))
        return self.load_layer(fmt, p.read_text(encoding="utf-8"))
