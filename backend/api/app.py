from __future__ import annotations

import threading
from dataclasses import asdict
from typing import Any, Literal

import requests
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from groups.filters import FieldValueFilter
from maps.errors import MissingRadiusEntry, PointMapError
from maps.filtered import FilteredPointMap
from render.build_map import build_map_plot
from scenarios.build import build_scenario_map, load_scenario_source
from scenarios.registry import ScenarioEntry, get_scenario, list_scenarios
from telemetry.log import configure_logging


class LoadRequest(BaseModel):
    # All empty: load the scenario's configured source.
    url: str | None = None
    text: str | None = None
    format: Literal["csv", "geojson"] | None = None
    headers: dict[str, str] = Field(default_factory=dict)


class ZoomRequest(BaseModel):
    zoom: float


class ViewRequest(BaseModel):
    lat: float | None = None
    lon: float | None = None
    zoom: float | None = None
    hash: str | None = None


class FilterRequest(BaseModel):
    # All conditions must match, e.g. {"type": ["A"]}.
    props: dict[str, list[Any]]


class MapSessions:
    """
    One FilteredPointMap per scenario, built on first use and kept in memory.
    """

    def __init__(self) -> None:
        self._maps: dict[str, tuple[ScenarioEntry, FilteredPointMap]] = {}
        self._lock = threading.Lock()

    def get(self, scenario_id: str) -> tuple[ScenarioEntry, FilteredPointMap]:
        with self._lock:
            hit = self._maps.get(scenario_id)
            if hit is None:
                try:
                    entry = get_scenario(scenario_id)
                except KeyError as e:
                    raise HTTPException(status_code=404, detail=str(e)) from e
                hit = (entry, build_scenario_map(entry.config))
                self._maps[scenario_id] = hit
                logger.info(f"Created map session for scenario '{scenario_id}'")
            return hit

    def drop(self, scenario_id: str) -> bool:
        with self._lock:
            return self._maps.pop(scenario_id, None) is not None


def _group_rows(pmap: FilteredPointMap) -> list[dict[str, Any]]:
    return [
        {
            "key": g.key,
            "fields": g.fields,
            "active": g.active,
            "legendEnabled": g.legend_enabled,
            "visible": g.visible,
            "layers": len(g.layers),
        }
        for g in pmap.index.groups()
    ]


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Grouped point map")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    sessions = MapSessions()
    app.state.sessions = sessions

    @app.exception_handler(PointMapError)
    async def _point_map_error(_request: Request, exc: PointMapError) -> JSONResponse:
        status = 409 if isinstance(exc, MissingRadiusEntry) else 422
        logger.warning(f"{type(exc).__name__}: {exc}")
        return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})

    @app.get("/scenarios")
    def get_scenarios() -> list[dict[str, Any]]:
        return [
            {
                "id": cfg.id,
                "title": cfg.title,
                "groupFields": cfg.groupFields,
                "hasLegend": cfg.legend is not None,
                "hasSource": cfg.source is not None,
            }
            for cfg in list_scenarios()
        ]

    @app.post("/maps/{scenario_id}/load")
    def load(scenario_id: str, body: LoadRequest | None = None) -> dict[str, Any]:
        entry, pmap = sessions.get(scenario_id)
        body = body or LoadRequest()
        try:
            if body.text is not None:
                if body.format is None:
                    raise HTTPException(status_code=422, detail="`format` is required with `text`")
                report = pmap.load_layer(body.format, body.text)
            elif body.url:
                report = pmap.load_url(body.url, headers=body.headers, fmt=body.format)
            else:
                report = load_scenario_source(pmap, entry)
        except requests.RequestException as e:
            raise HTTPException(status_code=502, detail=f"Fetch failed: {e}") from e
        except PointMapError:
            raise
        except (FileNotFoundError, ValueError) as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return asdict(report)

    @app.get("/maps/{scenario_id}/plot")
    def plot(scenario_id: str, fit: bool = False) -> dict[str, Any]:
        _entry, pmap = sessions.get(scenario_id)
        return build_map_plot(pmap, fit_to_data=fit)

    @app.get("/maps/{scenario_id}/groups")
    def groups(scenario_id: str) -> list[dict[str, Any]]:
        _entry, pmap = sessions.get(scenario_id)
        return _group_rows(pmap)

    @app.post("/maps/{scenario_id}/zoom")
    def zoom(scenario_id: str, body: ZoomRequest) -> dict[str, Any]:
        _entry, pmap = sessions.get(scenario_id)
        z = pmap.set_zoom(body.zoom)
        return {"zoom": z, "radius": pmap.radius, "hash": pmap.surface.to_hash()}

    @app.post("/maps/{scenario_id}/view")
    def view(scenario_id: str, body: ViewRequest) -> dict[str, Any]:
        _entry, pmap = sessions.get(scenario_id)
        surface = pmap.surface
        if body.hash is not None:
            if not surface.apply_hash(body.hash):
                raise HTTPException(status_code=422, detail=f"Invalid or disabled view hash: {body.hash!r}")
        else:
            center = surface.center
            lat = center["lat"] if body.lat is None else body.lat
            lon = center["lon"] if body.lon is None else body.lon
            surface.set_view(lat, lon, body.zoom)
        return {"center": surface.center, "zoom": surface.get_zoom(), "hash": surface.to_hash()}

    @app.post("/maps/{scenario_id}/filters")
    def add_filter(scenario_id: str, body: FilterRequest) -> dict[str, Any]:
        _entry, pmap = sessions.get(scenario_id)
        filter_id = pmap.add_filter(FieldValueFilter(dict(body.props)))
        return {"filterId": filter_id, "groups": _group_rows(pmap)}

    @app.get("/maps/{scenario_id}/legend")
    def legend(scenario_id: str) -> dict[str, Any]:
        _entry, pmap = sessions.get(scenario_id)
        if pmap.legend is None:
            raise HTTPException(status_code=404, detail="This map has no legend")
        return pmap.legend.render()

    @app.post("/maps/{scenario_id}/legend/{position}/toggle")
    def toggle_legend(scenario_id: str, position: int) -> dict[str, Any]:
        _entry, pmap = sessions.get(scenario_id)
        if pmap.legend is None:
            raise HTTPException(status_code=404, detail="This map has no legend")
        if not 0 <= position < len(pmap.legend.entries):
            raise HTTPException(status_code=404, detail=f"No legend row {position}")
        inactive = pmap.toggle_legend(position)
        return {"position": position, "inactive": inactive, "groups": _group_rows(pmap)}

    @app.delete("/maps/{scenario_id}")
    def reset(scenario_id: str) -> dict[str, Any]:
        return {"dropped": sessions.drop(scenario_id)}

    return app
