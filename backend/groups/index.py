from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping

from loguru import logger

from layers.types import CircleMarker
from surface.types import MapSurface

GROUP_KEY_SEPARATOR = ","


def group_key(field_names: list[str], field_values: Mapping[str, Any]) -> str:
    return GROUP_KEY_SEPARATOR.join(
        "" if field_values.get(name) is None else str(field_values.get(name))
        for name in field_names
    )


@dataclass(eq=False)
class Group:
    """
    Drawn layers sharing the same values on the grouping fields.

    Two independent switches gate display: `active` (all filters pass) and
    `legend_enabled` (no legend row bound to the group is toggled off).
    `shown` records what is currently on the surface.
    """

    key: str
    fields: dict[str, Any]
    active: bool
    legend_enabled: bool = True
    shown: bool = False
    layers: list[CircleMarker] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.key

    @property
    def visible(self) -> bool:
        return self.active and self.legend_enabled


class GroupIndex:
    """
    Group key -> Group, plus the surface bookkeeping that keeps "layer is drawn"
    equal to "its group is visible".
    """

    def __init__(
        self,
        field_names: list[str],
        surface: MapSurface,
        *,
        is_active: Callable[[Mapping[str, Any]], bool] | None = None,
        on_new_group: Callable[[Group], None] | None = None,
    ) -> None:
        self.field_names = list(field_names)
        self.surface = surface
        self._is_active = is_active or (lambda _fields: True)
        self._on_new_group = on_new_group
        self._groups: dict[str, Group] = {}

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[Group]:
        return iter(list(self._groups.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._groups

    def groups(self) -> list[Group]:
        return list(self._groups.values())

    def get(self, key: str) -> Group | None:
        return self._groups.get(key)

    def key_for(self, field_values: Mapping[str, Any]) -> str:
        return group_key(self.field_names, field_values)

    def get_group(self, field_values: Mapping[str, Any]) -> Group:
        key = self.key_for(field_values)
        group = self._groups.get(key)
        if group is None:
            active = self._is_active(field_values)
            # A new group has no layers, so it is trivially "shown" when visible.
            group = Group(key=key, fields=dict(field_values), active=active, shown=active)
            self._groups[key] = group
            logger.debug(f"Created group {key!r} (active={group.active})")
            if self._on_new_group is not None:
                self._on_new_group(group)
        return group

    def add_feature_layer(self, field_values: Mapping[str, Any], layer: CircleMarker) -> Group:
        group = self.get_group(field_values)
        layer.group_key = group.key
        group.layers.append(layer)
        if group.shown:
            self.surface.add_layer(layer)
        return group

    def set_active(self, group: Group, active: bool) -> None:
        if group.active != active:
            logger.debug(f"Group {group.key!r} {'enabled' if active else 'disabled'}")
        group.active = active
        self.sync(group)

    def set_legend_enabled(self, group: Group, enabled: bool) -> None:
        group.legend_enabled = enabled
        self.sync(group)

    def sync(self, group: Group) -> None:
        """
        Bring the surface in line with `group.visible`. No surface calls when it
        already matches.
        """
        want = group.visible
        if want == group.shown:
            return
        if want:
            for layer in group.layers:
                self.surface.add_layer(layer)
        else:
            for layer in group.layers:
                self.surface.remove_layer(layer)
        group.shown = want

    def clear_all_layers(self) -> None:
        for group in self._groups.values():
            if group.shown:
                for layer in group.layers:
                    self.surface.remove_layer(layer)
            group.layers.clear()

    def all_layers(self) -> list[CircleMarker]:
        return [layer for group in self._groups.values() for layer in group.layers]
