from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable

import yaml

from scenarios.types import ScenarioConfig


def _repo_root() -> Path:
    # .../backend/scenarios/registry.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


def _scenarios_root() -> Path:
    override = (os.getenv("POINTMAP_SCENARIOS_DIR") or "").strip()
    if override:
        return Path(override)
    return _repo_root() / "scenarios"


@dataclass(frozen=True)
class ScenarioEntry:
    config: ScenarioConfig
    # Absolute path to scenario.yaml on disk (useful for debugging).
    path: Path


def _iter_scenario_yaml_files() -> Iterable[Path]:
    root = _scenarios_root()
    if not root.exists():
        return []
    # Convention: scenarios/*/scenario.yaml
    return root.glob("*/scenario.yaml")


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid scenario yaml root: {path}")
    return data


@lru_cache(maxsize=1)
def get_registry() -> dict[str, ScenarioEntry]:
    out: dict[str, ScenarioEntry] = {}
    for p in sorted(_iter_scenario_yaml_files(), key=lambda x: str(x)):
        cfg = ScenarioConfig.model_validate(_load_yaml(p))
        if cfg.id in out:
            raise ValueError(f"Duplicate scenario id '{cfg.id}': {p}")
        out[cfg.id] = ScenarioEntry(config=cfg, path=p)
    return out


def list_scenarios() -> list[ScenarioConfig]:
    reg = get_registry()
    return [e.config for e in reg.values() if e.config.enabled]


def get_scenario(scenario_id: str) -> ScenarioEntry:
    reg = get_registry()
    sid = (scenario_id or "").strip()
    entry = reg.get(sid)
    if entry is None or not entry.config.enabled:
        raise KeyError(f"Unknown scenario: {scenario_id!r}")
    return entry


def resolve_data_path(entry: ScenarioEntry, relative: str) -> Path:
    """
    Scenario data paths are relative to the scenario's own directory first,
    then to the repo root ("data/..." style).
    """
    rel = (relative or "").lstrip("/")
    local = entry.path.parent / rel
    if local.exists():
        return local
    return _repo_root() / rel


def clear_registry_cache() -> None:
    """
    Clear in-memory scenario registry cache.

    Useful during development and tests: scenario YAML changes are otherwise not
    picked up until the process restarts.
    """
    get_registry.cache_clear()
