from __future__ import annotations

from typing import Callable, Protocol

from layers.types import CircleMarker

ZoomListener = Callable[[float], None]


class MapSurface(Protocol):
    """
    What the grouping/filtering code needs from the interactive map.
    """

    def add_layer(self, layer: CircleMarker) -> None: ...

    def remove_layer(self, layer: CircleMarker) -> None: ...

    def get_zoom(self) -> float: ...

    def on_zoom(self, listener: ZoomListener) -> None: ...
