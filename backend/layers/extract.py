from __future__ import annotations

from dataclasses import dataclass, field
from string import Formatter
from typing import Any, Callable, Mapping

from layers.types import FeatureSpec, MarkerStyle

FeatureExtractor = Callable[[Mapping[str, Any]], list[FeatureSpec]]

# Scenario YAML uses the rendering library's camelCase style keys.
_STYLE_KEYS: dict[str, str] = {
    "radius": "radius",
    "color": "color",
    "opacity": "opacity",
    "fillColor": "fill_color",
    "fill_color": "fill_color",
    "fillOpacity": "fill_opacity",
    "fill_opacity": "fill_opacity",
    "weight": "weight",
}


def default_features(props: Mapping[str, Any]) -> list[FeatureSpec]:
    # One plain black marker per record, no popup and nothing to group on.
    return [FeatureSpec(marker=MarkerStyle(radius=5, color="#000000", opacity=1), fields={})]


def style_overrides(raw: Mapping[str, Any] | None) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in (raw or {}).items():
        key = _STYLE_KEYS.get(k)
        if key is None:
            raise ValueError(f"Unknown marker style key: {k}")
        out[key] = v
    return out


class _BlankMissing(dict):
    def __missing__(self, key: str) -> str:
        return ""


class _PopupFormatter(Formatter):
    def format_field(self, value: Any, format_spec: str) -> str:
        if value is None:
            return ""
        return super().format_field(value, format_spec)


_popup_formatter = _PopupFormatter()


def render_popup(template: str, props: Mapping[str, Any]) -> str:
    return _popup_formatter.vformat(template, (), _BlankMissing(props))


@dataclass(frozen=True)
class FeatureRule:
    """
    One declarative feature: drawn for every record matching `when`.

    - `when`: field -> allowed values (compared as strings); all must match.
    - `style_by`: (field, {value: style overrides}) applied on top of `marker`.
    """

    marker: MarkerStyle = field(default_factory=MarkerStyle)
    popup: str | None = None
    fields: tuple[str, ...] = ()
    when: dict[str, tuple[str, ...]] = field(default_factory=dict)
    style_by: tuple[str, dict[str, dict[str, Any]]] | None = None

    def matches(self, props: Mapping[str, Any]) -> bool:
        for name, allowed in self.when.items():
            if _as_text(props.get(name)) not in allowed:
                return False
        return True

    def build(self, props: Mapping[str, Any]) -> FeatureSpec:
        marker = self.marker
        if self.style_by is not None:
            name, by_value = self.style_by
            marker = marker.merged(by_value.get(_as_text(props.get(name))))
        popup = render_popup(self.popup, props) if self.popup else None
        return FeatureSpec(
            marker=marker,
            popup=popup,
            fields={name: props.get(name) for name in self.fields},
        )


class RuleExtractor:
    """
    Feature extractor driven by scenario rules instead of code.
    """

    def __init__(self, rules: list[FeatureRule]) -> None:
        self.rules = list(rules)

    def __call__(self, props: Mapping[str, Any]) -> list[FeatureSpec]:
        return [rule.build(props) for rule in self.rules if rule.matches(props)]

    @classmethod
    def from_config(cls, raw_rules: list[Mapping[str, Any]]) -> "RuleExtractor":
        rules: list[FeatureRule] = []
        for raw in raw_rules:
            style_by = None
            sb = raw.get("styleBy")
            if sb:
                style_by = (
                    str(sb["field"]),
                    {str(k): style_overrides(v) for k, v in (sb.get("values") or {}).items()},
                )
            rules.append(
                FeatureRule(
                    marker=MarkerStyle().merged(style_overrides(raw.get("marker"))),
                    popup=raw.get("popup"),
                    fields=tuple(raw.get("fields") or ()),
                    when={
                        str(k): tuple(_as_text(v) for v in vals)
                        for k, vals in (raw.get("when") or {}).items()
                    },
                    style_by=style_by,
                )
            )
        return cls(rules)


def _as_text(v: Any) -> str:
    return "" if v is None else str(v)
