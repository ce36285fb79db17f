from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gate_map.gates import GateStatus


class GateIn(BaseModel):
    # Record-store shape; coordinates are resolved by the engine, not rejected here.
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    lng: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None
    status: GateStatus = GateStatus.active
    health_score: Optional[float] = Field(default=None, ge=0, le=100)
    healthScore: Optional[float] = Field(default=None, ge=0, le=100)
    activity_count: Optional[int] = Field(default=None, ge=0)
    activityCount: Optional[int] = Field(default=None, ge=0)
    checkin_count: Optional[int] = Field(default=None, ge=0)

    def to_record(self) -> dict:
        return self.model_dump(exclude_none=True, mode="json")


class Canvas(BaseModel):
    width: float = Field(gt=0, default=800)
    height: float = Field(gt=0, default=600)


class ImageExtent(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class ZoomBounds(BaseModel):
    min: float = 1
    max: float = 18

    @model_validator(mode="after")
    def _ordered(self) -> "ZoomBounds":
        if self.min > self.max:
            raise ValueError("zoom min must not exceed max")
        return self


class LayoutRequest(BaseModel):
    gates: list[GateIn] = Field(default_factory=list)
    canvas: Canvas = Field(default_factory=Canvas)
    mode: Optional[Literal["geo", "image"]] = None
    image: Optional[ImageExtent] = None
    zoom: ZoomBounds = Field(default_factory=ZoomBounds)
    threshold: Optional[float] = Field(default=None, gt=0)
    padding_fraction: Optional[float] = Field(default=None, ge=0)
    fit_padding: Optional[tuple[float, float]] = None
    clamp_to_image: bool = False


class GeoPointIn(BaseModel):
    type: Literal["geo"]
    latitude: float
    longitude: float


class ImagePointIn(BaseModel):
    type: Literal["image"]
    x: float
    y: float


PointIn = Annotated[Union[GeoPointIn, ImagePointIn], Field(discriminator="type")]


class ViewportRequest(BaseModel):
    points: list[PointIn] = Field(default_factory=list)
    canvas: Canvas = Field(default_factory=Canvas)
    zoom: ZoomBounds = Field(default_factory=ZoomBounds)
    padding_fraction: float = Field(ge=0, default=0.1)
    fit_padding: tuple[float, float] = (80.0, 40.0)

    @model_validator(mode="after")
    def _one_system(self) -> "ViewportRequest":
        kinds = {p.type for p in self.points}
        if len(kinds) > 1:
            raise ValueError("points must all use the same coordinate system")
        return self


class ViewportOut(BaseModel):
    center_x: float
    center_y: float
    zoom: float
    fallback: bool


class ValidateRequest(BaseModel):
    gates: list[GateIn]
    mode: Optional[Literal["geo", "image"]] = None
    image: Optional[ImageExtent] = None


class NearestRequest(BaseModel):
    gate_id: str
    gates: list[GateIn] = Field(min_length=1)
