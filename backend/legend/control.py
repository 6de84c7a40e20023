from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from groups.index import Group, GroupIndex

SUPPORTED_SYMBOLS = ("circle",)


@dataclass(eq=False)
class LegendEntry:
    label: str
    type: str = "circle"
    color: str | None = "black"
    fill_color: str | None = "#FFFFFF"
    fill_opacity: float | None = 0.7
    opacity: float | None = None
    weight: float | None = 1
    radius: float | None = None
    groups: list[Group] = field(default_factory=list)
    inactive: bool = False
    # Field values a group must carry to be bound to this row; empty binds nothing.
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def clickable(self) -> bool:
        return bool(self.groups or self.fields)

    def matches(self, group: Group) -> bool:
        if not self.fields:
            return False
        return all(_as_text(group.fields.get(k)) == _as_text(v) for k, v in self.fields.items())


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class LegendOptions:
    title: str = "Legend"
    position: str = "bottomleft"
    opacity: float = 0.8
    symbol_width: int = 18
    symbol_height: int = 24
    column: int = 1
    collapsed: bool = False


def circle_symbol_svg(entry: LegendEntry, *, width: int, height: int) -> str:
    """
    Small SVG preview of a circle marker, sized to fit the legend cell.
    """
    weight = entry.weight or 3
    cx = width / 2
    cy = height / 2
    max_radius = min(cx, cy) - weight
    radius = min(entry.radius, max_radius) if entry.radius else max_radius

    attrs = [f'cx="{cx:g}"', f'cy="{cy:g}"', f'r="{max(radius, 0):g}"']
    if entry.fill_color:
        attrs.append(f'fill="{entry.fill_color}"')
        attrs.append(f'fill-opacity="{entry.fill_opacity or 1:g}"')
    else:
        attrs.append('fill="none"')
    if entry.color:
        attrs.append(f'stroke="{entry.color}"')
        attrs.append(f'stroke-opacity="{entry.opacity or 1.0:g}"')
        attrs.append(f'stroke-width="{entry.weight or 2:g}"')
        attrs.append('stroke-linecap="round" stroke-linejoin="round"')
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}">'
        f"<circle {' '.join(attrs)}/></svg>"
    )


class LegendControl:
    """
    Clickable legend. Each row is bound to one or more groups; clicking a row
    switches the groups' legend channel, which combines with the filter channel
    (a group is drawn only when both allow it).
    """

    def __init__(
        self,
        index: GroupIndex,
        entries: list[LegendEntry],
        options: LegendOptions | None = None,
    ) -> None:
        self.index = index
        self.options = options or LegendOptions()
        self.expanded = not self.options.collapsed
        self.entries: list[LegendEntry] = []
        for entry in entries:
            if entry.type not in SUPPORTED_SYMBOLS:
                logger.warning(
                    f"Dropping legend entry {entry.label!r}: unsupported symbol type {entry.type!r}"
                )
                continue
            self.entries.append(entry)
        for group in index.groups():
            self._attach(group)
        for entry in self.entries:
            if entry.inactive:
                self._apply(entry)

    def _attach(self, group: Group) -> bool:
        bound = False
        for entry in self.entries:
            if group not in entry.groups and entry.matches(group):
                entry.groups.append(group)
                bound = True
        return bound

    def bind(self, group: Group) -> None:
        """
        Attach a group created after the legend to every row whose fields it
        matches, and apply those rows' current state to it.
        """
        if self._attach(group):
            enabled = not any(e.inactive and group in e.groups for e in self.entries)
            self.index.set_legend_enabled(group, enabled)

    def release(self) -> None:
        """
        Give every bound group its legend channel back, for when this legend is
        replaced.
        """
        for entry in self.entries:
            for group in entry.groups:
                self.index.set_legend_enabled(group, True)

    def toggle(self, position: int) -> bool:
        """
        Flip a row's state. Returns True when the row is now inactive.
        """
        entry = self.entries[position]
        if not entry.clickable:
            return entry.inactive
        entry.inactive = not entry.inactive
        self._apply(entry)
        return entry.inactive

    def _apply(self, entry: LegendEntry) -> None:
        for group in entry.groups:
            enabled = not any(e.inactive and group in e.groups for e in self.entries)
            self.index.set_legend_enabled(group, enabled)

    def expand(self) -> "LegendControl":
        self.expanded = True
        return self

    def collapse(self) -> "LegendControl":
        self.expanded = False
        return self

    def render(self) -> dict[str, Any]:
        o = self.options
        rows = [
            {
                "label": entry.label,
                "symbol": circle_symbol_svg(entry, width=o.symbol_width, height=o.symbol_height),
                "inactive": entry.inactive,
                "clickable": entry.clickable,
                "groups": [g.key for g in entry.groups],
            }
            for entry in self.entries
        ]
        col_size = max(1, math.ceil(len(rows) / o.column))
        columns = [rows[i : i + col_size] for i in range(0, len(rows), col_size)]
        return {
            "title": o.title or "Legend",
            "position": o.position,
            "opacity": o.opacity,
            "expanded": self.expanded,
            "symbolWidth": o.symbol_width,
            "symbolHeight": o.symbol_height,
            "columns": columns,
        }
