from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from loguru import logger

from gate_map.config import LayoutSettings, load_settings
from gate_map.distance import find_nearest_gate
from gate_map.gates import GateMapError, GeoPoint, ImageSize, Point, coerce_gates, resolve_mode, validate_gates
from gate_map.layout import GateLayout, build_layout
from gate_map.projection import CanvasSize
from gate_map.storage import clusters_csv
from gate_map.viewport import ZoomRange, fit_viewport_to_points

from .schemas import ImageExtent, LayoutRequest, NearestRequest, ValidateRequest, ViewportOut, ViewportRequest


app = FastAPI(title="Gate Map API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _settings() -> LayoutSettings:
    try:
        return load_settings()
    except GateMapError as e:
        logger.error(f"invalid GATE_MAP_* settings: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


def _image_size(image: Optional[ImageExtent]) -> Optional[ImageSize]:
    return ImageSize(image.width, image.height) if image else None


def _layout(payload: LayoutRequest) -> GateLayout:
    settings = _settings()
    image_size = _image_size(payload.image)
    overrides: dict = {
        "padding_fraction": payload.padding_fraction,
        "clamp_to_image": payload.clamp_to_image or None,
    }
    if payload.fit_padding is not None:
        overrides["fit_padding_x"], overrides["fit_padding_y"] = payload.fit_padding
    try:
        gates = coerce_gates(g.to_record() for g in payload.gates)
        mode = resolve_mode(gates, payload.mode, image_size)
        if payload.threshold is not None:
            overrides["image_threshold" if mode == "image" else "geo_threshold"] = payload.threshold
        settings = settings.with_overrides(**overrides)
        return build_layout(
            gates,
            CanvasSize(payload.canvas.width, payload.canvas.height),
            mode=mode,
            image_size=image_size,
            zoom_range=ZoomRange(payload.zoom.min, payload.zoom.max),
            settings=settings,
        )
    except GateMapError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.post("/layout")
def layout(payload: LayoutRequest) -> dict:
    return _layout(payload).to_dict()


@app.post("/layout.csv")
def layout_csv(payload: LayoutRequest) -> Response:
    return Response(
        content=clusters_csv(_layout(payload)),
        media_type="text/csv",
        headers={"content-disposition": 'attachment; filename="gate_clusters.csv"'},
    )


@app.post("/viewport", response_model=ViewportOut)
def viewport(payload: ViewportRequest) -> ViewportOut:
    settings = _settings()
    points: list[Point] = []
    mode = "geo"
    for p in payload.points:
        if p.type == "geo":
            gp = GeoPoint(latitude=p.latitude, longitude=p.longitude)
            points.append(Point(gp.x, gp.y))
        else:
            mode = "image"
            points.append(Point(p.x, p.y))
    try:
        vp = fit_viewport_to_points(
            points,
            CanvasSize(payload.canvas.width, payload.canvas.height),
            ZoomRange(payload.zoom.min, payload.zoom.max),
            mode=mode,
            padding=payload.fit_padding,
            padding_fraction=payload.padding_fraction,
            min_span=settings.min_span(mode),
        )
    except GateMapError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return ViewportOut(center_x=vp.center.x, center_y=vp.center.y, zoom=vp.zoom, fallback=vp.fallback)


@app.post("/gates/validate")
def validate(payload: ValidateRequest) -> dict:
    try:
        gates = coerce_gates(g.to_record() for g in payload.gates)
        report = validate_gates(gates, mode=payload.mode, image_size=_image_size(payload.image))
    except GateMapError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return report.to_dict()


@app.post("/gates/nearest")
def nearest(payload: NearestRequest) -> dict:
    try:
        gates = coerce_gates(g.to_record() for g in payload.gates)
    except GateMapError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    target = next((g for g in gates if g.id == payload.gate_id), None)
    if target is None:
        raise HTTPException(status_code=404, detail="gate not found")
    found = find_nearest_gate(target, gates)
    if found is None:
        return {"gate_id": payload.gate_id, "nearest": None}
    gate, dist = found
    unit = "km" if gate.location is not None and gate.location.kind == "geo" else "px"
    return {"gate_id": payload.gate_id, "nearest": {"id": gate.id, "name": gate.name, "distance": dist, "unit": unit}}
