from __future__ import annotations

import math

from loguru import logger
from shapely.geometry import Point
from shapely.geometry import box as shapely_box

from layers.types import CircleMarker
from scenarios.types import MapOptions
from surface.types import ZoomListener


class InMemoryMapSurface:
    """
    Server-side model of the interactive map: which layers are drawn, the current
    view and the zoom listeners. The payload renderer reads it to build the
    frontend's plot.

    `add_calls` / `remove_calls` count effective layer changes.
    """

    def __init__(self, options: MapOptions | None = None) -> None:
        self.options = options or MapOptions()
        self._layers: dict[int, CircleMarker] = {}
        self._listeners: list[ZoomListener] = []
        self.add_calls = 0
        self.remove_calls = 0

        o = self.options
        self._bounds = None
        if o.max_bounds is not None:
            min_lon, min_lat, max_lon, max_lat = o.max_bounds
            m = o.bounds_margin
            self._bounds = shapely_box(min_lon - m, min_lat - m, max_lon + m, max_lat + m)

        self._zoom = self._clamp_zoom(o.view_zoom)
        self._lat, self._lon = self._clamp_center(o.view_lat, o.view_lon)

    # Layers

    def add_layer(self, layer: CircleMarker) -> None:
        if layer.id in self._layers:
            return
        self._layers[layer.id] = layer
        self.add_calls += 1

    def remove_layer(self, layer: CircleMarker) -> None:
        if self._layers.pop(layer.id, None) is not None:
            self.remove_calls += 1

    def has_layer(self, layer: CircleMarker) -> bool:
        return layer.id in self._layers

    def layers(self) -> list[CircleMarker]:
        return list(self._layers.values())

    # View

    def get_zoom(self) -> float:
        return self._zoom

    @property
    def center(self) -> dict[str, float]:
        return {"lat": self._lat, "lon": self._lon}

    def on_zoom(self, listener: ZoomListener) -> None:
        self._listeners.append(listener)

    def set_zoom(self, zoom: float) -> float:
        z = self._clamp_zoom(zoom)
        if z == self._zoom:
            return z
        previous, self._zoom = self._zoom, z
        notified: list[ZoomListener] = []
        try:
            for listener in list(self._listeners):
                listener(z)
                notified.append(listener)
        except Exception:
            # A listener rejected the zoom: restore it and resync those already told.
            logger.warning(f"Zoom {z} rejected, staying at {previous}")
            self._zoom = previous
            for listener in notified:
                listener(previous)
            raise
        return z

    def set_view(self, lat: float, lon: float, zoom: float | None = None) -> None:
        if zoom is not None:
            self.set_zoom(zoom)
        self._lat, self._lon = self._clamp_center(lat, lon)

    def _clamp_zoom(self, zoom: float) -> float:
        o = self.options
        return float(min(max(float(zoom), o.min_zoom), o.max_zoom))

    def _clamp_center(self, lat: float, lon: float) -> tuple[float, float]:
        if self._bounds is None or self._bounds.covers(Point(lon, lat)):
            return float(lat), float(lon)
        min_lon, min_lat, max_lon, max_lat = self._bounds.bounds
        clamped = (
            min(max(float(lat), min_lat), max_lat),
            min(max(float(lon), min_lon), max_lon),
        )
        logger.debug(f"View center ({lat}, {lon}) clamped into max bounds -> {clamped}")
        return clamped

    # URL hash ("#zoom/lat/lon")

    def to_hash(self) -> str | None:
        if not self.options.url_hash:
            return None
        z = self._zoom
        zoom = str(int(z)) if float(z).is_integer() else f"{z:g}"
        # Fewer decimals are needed the further out we are zoomed.
        precision = max(0, math.ceil(math.log2(z))) if z > 0 else 0
        return f"#{zoom}/{self._lat:.{precision}f}/{self._lon:.{precision}f}"

    def apply_hash(self, value: str) -> bool:
        """
        Restore the view from a "#zoom/lat/lon" hash. Returns False (view unchanged)
        when hashes are disabled or the value does not parse.
        """
        if not self.options.url_hash:
            return False
        parts = value.lstrip("#").split("/")
        if len(parts) != 3:
            return False
        try:
            zoom, lat, lon = (float(p) for p in parts)
        except ValueError:
            return False
        self.set_view(lat, lon, zoom)
        return True
