from __future__ import annotations

from typing import Mapping

from maps.errors import MissingRadiusEntry


class RadiusByZoom:
    """
    Marker radius per integer zoom level.

    A zoom level without an entry uses the nearest configured level (the lower one
    on a tie). With `clamp=False` a miss raises MissingRadiusEntry instead.
    """

    def __init__(self, mapping: Mapping[int, float], *, clamp: bool = True) -> None:
        self.clamp = clamp
        self._by_level: dict[int, float] = {
            int(level): float(radius) for level, radius in mapping.items()
        }
        self._levels = sorted(self._by_level)

    def __bool__(self) -> bool:
        return bool(self._by_level)

    def as_dict(self) -> dict[int, float]:
        return dict(self._by_level)

    def lookup(self, zoom: float, *, clamp: bool | None = None) -> float:
        if clamp is None:
            clamp = self.clamp
        level = int(round(float(zoom)))
        if level in self._by_level:
            return self._by_level[level]
        if not clamp or not self._levels:
            raise MissingRadiusEntry(zoom)
        nearest = min(self._levels, key=lambda lv: (abs(lv - level), lv))
        return self._by_level[nearest]
