from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

OSM_TILE_TEMPLATE = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"
OSM_ATTRIBUTION = (
    '&copy; <a href="https://www.openstreetmap.org/copyright" target="_blank">'
    "OpenStreetMap contributors</a>"
)

# Metropolitan France, (min_lon, min_lat, max_lon, max_lat).
METRO_BOUNDS: tuple[float, float, float, float] = (
    -6.14127657,
    40.33355568,
    10.56009360,
    52.08898944,
)


class MapOptions(BaseModel):
    """
    Construction options of a point map. Every option has a default; the
    historical option names (`maxzoom`, `vue-lat`, `url-template`, ...) are
    accepted as aliases.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    max_zoom: int = Field(default=16, ge=0, le=24, alias="maxzoom")
    min_zoom: int = Field(default=0, ge=0, le=24, alias="minzoom")
    view_lat: float = Field(default=46.49389, ge=-90.0, le=90.0, alias="vue-lat")
    view_lon: float = Field(default=2.602778, ge=-180.0, le=180.0, alias="vue-long")
    view_zoom: float = Field(default=6.0, ge=0.0, le=24.0, alias="vue-zoom")
    fullscreen: bool = True
    url_template: str = Field(default=OSM_TILE_TEMPLATE, alias="url-template")
    attribution: str = OSM_ATTRIBUTION
    show_locate: bool = True
    show_search: bool = True
    show_scale: bool = True
    url_hash: bool = True
    # Address search is restricted to these ISO country codes.
    search_country_codes: str = "fr"
    max_bounds: tuple[float, float, float, float] | None = METRO_BOUNDS
    bounds_margin: float = Field(default=0.0, ge=0.0)

    @model_validator(mode="after")
    def _check_zoom_bounds(self) -> "MapOptions":
        if self.min_zoom > self.max_zoom:
            raise ValueError(f"minzoom ({self.min_zoom}) > maxzoom ({self.max_zoom})")
        if self.max_bounds is not None:
            min_lon, min_lat, max_lon, max_lat = self.max_bounds
            if min_lon > max_lon or min_lat > max_lat:
                raise ValueError(f"Invalid max_bounds: {self.max_bounds}")
        return self


class ScenarioSource(BaseModel):
    """
    Where the scenario's points come from: a repo-relative `path` or a `url`.
    """

    path: str | None = None
    url: str | None = None
    format: Literal["csv", "geojson"] | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeoutS: float | None = Field(default=None, gt=0.0)

    @model_validator(mode="after")
    def _one_location(self) -> "ScenarioSource":
        if bool(self.path) == bool(self.url):
            raise ValueError("Scenario source needs exactly one of `path` or `url`")
        return self


class ScenarioStyleBy(BaseModel):
    field: str
    values: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ScenarioFeatureRule(BaseModel):
    marker: dict[str, Any] = Field(default_factory=dict)
    popup: str | None = None
    fields: list[str] = Field(default_factory=list)
    when: dict[str, list[Any]] = Field(default_factory=dict)
    styleBy: ScenarioStyleBy | None = None


class ScenarioLegendEntry(BaseModel):
    fields: dict[str, Any]
    name: str | None = None
    type: str = "circle"
    color: str | None = None
    fillColor: str | None = None
    fillOpacity: float | None = None
    radius: float | None = None


class ScenarioLegend(BaseModel):
    title: str = "Legend"
    position: str = "bottomleft"
    opacity: float = Field(default=0.8, ge=0.0, le=1.0)
    symbolWidth: int = Field(default=18, gt=0)
    symbolHeight: int = Field(default=24, gt=0)
    column: int = Field(default=1, ge=1)
    collapsed: bool = False
    entries: list[ScenarioLegendEntry] = Field(default_factory=list)


class ScenarioConfig(BaseModel):
    id: str
    title: str
    enabled: bool = True

    options: MapOptions = Field(default_factory=MapOptions)
    source: ScenarioSource | None = None

    # Field names whose values form the group key, in order.
    groupFields: list[str] = Field(default_factory=list)
    features: list[ScenarioFeatureRule] = Field(default_factory=list)
    legend: ScenarioLegend | None = None
    # Zoom level -> marker radius.
    radiusByZoom: dict[int, float] | None = None
    # False: a zoom level missing from radiusByZoom is an error instead of using the nearest level.
    radiusClamp: bool = True
    # Initial filters: all conditions must match (field -> allowed values).
    filters: dict[str, list[Any]] | None = None
