from .memory import InMemoryMapSurface
from .types import MapSurface, ZoomListener

__all__ = ["InMemoryMapSurface", "MapSurface", "ZoomListener"]
