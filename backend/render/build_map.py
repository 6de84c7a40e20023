from __future__ import annotations

from typing import Any

from maps.filtered import FilteredPointMap
from render.traces import traces_by_group
from render.view import fit_view_to_markers
from surface.memory import InMemoryMapSurface


def build_map_plot(
    pmap: FilteredPointMap,
    *,
    fit_to_data: bool = False,
    viewport: dict[str, int] | None = None,
) -> dict[str, Any]:
    """
    Plotly mapbox payload for what is currently drawn on the map's surface,
    with the tile source, controls and legend in the layout.
    """
    surface = pmap.surface
    if not isinstance(surface, InMemoryMapSurface):
        raise TypeError("build_map_plot needs an InMemoryMapSurface")
    o = surface.options

    with pmap.lock:
        drawn = surface.layers()
        traces = traces_by_group(drawn)
        groups = pmap.index.groups()
        legend = pmap.legend.render() if pmap.legend is not None else None
        center = surface.center
        zoom = surface.get_zoom()
        url_hash = surface.to_hash()

    if fit_to_data and drawn:
        center, zoom = fit_view_to_markers(drawn, viewport=viewport, max_zoom=o.max_zoom)
        zoom = max(zoom, float(o.min_zoom))

    mapbox: dict[str, Any] = {
        "center": center,
        "zoom": zoom,
        "style": "white-bg",
        "layers": [
            {
                "below": "traces",
                "sourcetype": "raster",
                "sourceattribution": o.attribution,
                "source": [o.url_template],
            }
        ],
    }
    if o.max_bounds is not None:
        min_lon, min_lat, max_lon, max_lat = o.max_bounds
        m = o.bounds_margin
        mapbox["bounds"] = {
            "west": min_lon - m,
            "south": min_lat - m,
            "east": max_lon + m,
            "north": max_lat + m,
        }

    meta: dict[str, Any] = {
        "controls": {
            "fullscreen": o.fullscreen,
            "scale": {"position": "topright", "imperial": False} if o.show_scale else None,
            "locate": {"position": "topleft", "keepCurrentZoomLevel": True} if o.show_locate else None,
            "search": {"countryCodes": o.search_country_codes} if o.show_search else None,
            "hash": url_hash,
        },
        "zoomBounds": {"min": o.min_zoom, "max": o.max_zoom},
        "legend": legend,
        "stats": {
            "groups": len(groups),
            "activeGroups": sum(1 for g in groups if g.active),
            "visibleGroups": sum(1 for g in groups if g.visible),
            "totalLayers": sum(len(g.layers) for g in groups),
            "renderedPoints": len(drawn),
            "radius": pmap.radius,
        },
    }

    return {
        "data": traces,
        "layout": {
            "mapbox": mapbox,
            "showlegend": False,
            "margin": {"l": 0, "r": 0, "t": 0, "b": 0},
            "meta": meta,
        },
    }
