from __future__ import annotations

from layers.extract import RuleExtractor
from layers.types import LoadReport
from groups.filters import FieldValueFilter
from lod.radius import RadiusByZoom
from maps.filtered import FilteredPointMap
from scenarios.registry import ScenarioEntry, resolve_data_path
from scenarios.types import ScenarioConfig
from surface.memory import InMemoryMapSurface


def build_scenario_map(cfg: ScenarioConfig) -> FilteredPointMap:
    """
    Wire a FilteredPointMap from a scenario: surface options, feature rules,
    radius map, initial filters and legend. No data is loaded here.
    """
    surface = InMemoryMapSurface(cfg.options)
    extractor = None
    if cfg.features:
        extractor = RuleExtractor.from_config(
            [rule.model_dump(exclude_none=True) for rule in cfg.features]
        )
    pmap = FilteredPointMap(list(cfg.groupFields), surface, features=extractor)

    if cfg.radiusByZoom:
        pmap.add_radius_map(RadiusByZoom(cfg.radiusByZoom, clamp=cfg.radiusClamp))
    if cfg.filters:
        pmap.add_filter(FieldValueFilter(dict(cfg.filters)))
    if cfg.legend is not None:
        legend = cfg.legend
        pmap.add_legend(
            [e.model_dump(exclude_none=True) for e in legend.entries],
            title=legend.title,
            position=legend.position,
            opacity=legend.opacity,
            symbolWidth=legend.symbolWidth,
            symbolHeight=legend.symbolHeight,
            column=legend.column,
            collapsed=legend.collapsed,
        )
    return pmap


def load_scenario_source(pmap: FilteredPointMap, entry: ScenarioEntry) -> LoadReport:
    src = entry.config.source
    if src is None:
        raise ValueError(f"Scenario '{entry.config.id}' has no data source")
    if src.url:
        return pmap.load_url(src.url, headers=src.headers, fmt=src.format, timeout_s=src.timeoutS)

    path = resolve_data_path(entry, src.path or "")
    if not path.exists():
        raise FileNotFoundError(f"Scenario '{entry.config.id}' missing file: {src.path}")
    return pmap.load_file(path, fmt=src.format)
