from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Optional

from loguru import logger

from .bounds import DEFAULT_PADDING_FRACTION, GEO_MIN_SPAN, IMAGE_MIN_SPAN, BoundingBox, compute_bounds
from .gates import EmptyInputError, GateMapError, Point, ViewportFitFailure
from .projection import CanvasSize, check_canvas


TILE_SIZE = 256.0
FALLBACK_ZOOM = 10
DEFAULT_FIT_PADDING = (80.0, 40.0)


class ZoomRange(NamedTuple):
    min: float
    max: float


def check_zoom_range(zoom_range: ZoomRange) -> ZoomRange:
    if zoom_range.min > zoom_range.max:
        raise GateMapError(f"zoom range min ({zoom_range.min}) exceeds max ({zoom_range.max})")
    return zoom_range


@dataclass(frozen=True)
class Viewport:
    center: Point
    zoom: float
    fallback: bool = False

    def to_dict(self) -> dict:
        return {"center": {"x": self.center.x, "y": self.center.y}, "zoom": self.zoom, "fallback": self.fallback}


def pixels_per_unit(mode: str) -> float:
    """Scale at zoom 0: a 256px world tile spans 360 degrees; image maps use 1px per unit."""
    return 1.0 if mode == "image" else TILE_SIZE / 360.0


def _fit_zoom(bounds: BoundingBox, canvas: CanvasSize, padding: tuple[float, float], mode: str) -> float:
    avail_w = canvas.width - 2 * padding[0]
    avail_h = canvas.height - 2 * padding[1]
    if avail_w <= 0 or avail_h <= 0:
        raise ViewportFitFailure(f"padding {padding} leaves no room on a {canvas.width}x{canvas.height} canvas")
    w, h = bounds.width, bounds.height
    if not (math.isfinite(w) and math.isfinite(h)) or w <= 0 or h <= 0:
        raise ViewportFitFailure(f"bounds have unusable extent {w}x{h}")
    scale = pixels_per_unit(mode)
    try:
        zoom_x = math.log2(avail_w / (w * scale))
        zoom_y = math.log2(avail_h / (h * scale))
        return float(math.floor(min(zoom_x, zoom_y)))
    except (ValueError, ZeroDivisionError, OverflowError) as e:
        raise ViewportFitFailure(str(e)) from e


def fit_viewport(
    bounds: BoundingBox,
    canvas: CanvasSize,
    zoom_range: ZoomRange,
    *,
    mode: str = "geo",
    padding: tuple[float, float] = DEFAULT_FIT_PADDING,
    first_point: Optional[Point] = None,
) -> Viewport:
    """
    Centre on the middle of `bounds` at the deepest zoom that still shows
    all of it inside `canvas` minus `padding` pixels per side.

    If the zoom cannot be computed the viewport falls back to `first_point`
    (or the box centre) at a fixed zoom.
    """
    check_canvas(canvas)
    check_zoom_range(zoom_range)
    try:
        zoom = _fit_zoom(bounds, canvas, padding, mode)
    except ViewportFitFailure as e:
        center = first_point if first_point is not None else bounds.center
        zoom = min(max(zoom_range.min, FALLBACK_ZOOM), zoom_range.max)
        logger.warning(f"viewport fit failed ({e}); falling back to {center} at zoom {zoom}")
        return Viewport(center=Point(center.x, center.y), zoom=zoom, fallback=True)

    clamped = min(max(zoom, zoom_range.min), zoom_range.max)
    return Viewport(center=bounds.center, zoom=clamped)


def fit_viewport_to_points(
    points: Iterable[Point],
    canvas: CanvasSize,
    zoom_range: ZoomRange,
    *,
    mode: str = "geo",
    padding: tuple[float, float] = DEFAULT_FIT_PADDING,
    padding_fraction: float = DEFAULT_PADDING_FRACTION,
    min_span: Optional[float] = None,
) -> Viewport:
    pts = [Point(float(p[0]), float(p[1])) for p in points]
    if not pts:
        raise EmptyInputError("cannot fit a viewport to zero points")
    if min_span is None:
        min_span = IMAGE_MIN_SPAN if mode == "image" else GEO_MIN_SPAN
    bounds = compute_bounds(pts, padding_fraction, min_span=min_span)
    return fit_viewport(bounds, canvas, zoom_range, mode=mode, padding=padding, first_point=pts[0])
