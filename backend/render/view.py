from __future__ import annotations

import math

from shapely.geometry import MultiPoint

from layers.types import CircleMarker


def fit_view_to_markers(
    markers: list[CircleMarker],
    *,
    viewport: dict[str, int] | None = None,
    max_zoom: float = 16.0,
) -> tuple[dict[str, float], float]:
    """
    Center and zoom that show every marker, with a padding of the data extent on
    each side.
    """
    min_lon, min_lat, max_lon, max_lat = MultiPoint([(m.lon, m.lat) for m in markers]).bounds

    pad_lon = max(0.003, (max_lon - min_lon) * 0.1)
    pad_lat = max(0.003, (max_lat - min_lat) * 0.1)
    min_lon, max_lon = min_lon - pad_lon, max_lon + pad_lon
    min_lat, max_lat = max(min_lat - pad_lat, -85.0), min(max_lat + pad_lat, 85.0)

    center = {"lon": (min_lon + max_lon) / 2.0, "lat": (min_lat + max_lat) / 2.0}
    width = int((viewport or {}).get("width") or 900)
    height = int((viewport or {}).get("height") or 600)
    zoom = bbox_to_zoom(min_lon, min_lat, max_lon, max_lat, width=width, height=height)
    return center, min(zoom, float(max_zoom))


def bbox_to_zoom(
    min_lon: float,
    min_lat: float,
    max_lon: float,
    max_lat: float,
    *,
    width: int,
    height: int,
) -> float:
    # Web Mercator heuristic with 256px tiles.
    def merc_y(lat: float) -> float:
        s = math.sin(math.radians(lat))
        return math.log((1 + s) / (1 - s)) / 2.0

    lon_delta = max(max_lon - min_lon, 1e-6)
    lat_delta = max(math.degrees(merc_y(max_lat) - merc_y(min_lat)), 1e-6)

    zoom_x = math.log2((width * 360.0) / (256.0 * lon_delta))
    zoom_y = math.log2((height * 170.0) / (256.0 * lat_delta))
    return float(max(0.0, min(zoom_x, zoom_y)))
