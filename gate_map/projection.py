from __future__ import annotations

from typing import NamedTuple

from .bounds import BoundingBox
from .gates import GateMapError, Point


class CanvasSize(NamedTuple):
    width: float
    height: float


class PixelPoint(NamedTuple):
    x: float
    y: float


def check_canvas(canvas: CanvasSize) -> CanvasSize:
    if canvas.width <= 0 or canvas.height <= 0:
        raise GateMapError(f"canvas must have positive width and height, got {canvas.width}x{canvas.height}")
    return canvas


def project(point: Point, bounds: BoundingBox, canvas: CanvasSize, *, mode: str = "geo") -> PixelPoint:
    """
    Linear map from source units to canvas pixels.

    Geographic Y is flipped so north is up; image Y already grows downward.
    """
    check_canvas(canvas)
    px = (point.x - bounds.min_x) / bounds.width * canvas.width
    fy = (point.y - bounds.min_y) / bounds.height * canvas.height
    py = fy if mode == "image" else canvas.height - fy
    return PixelPoint(px, py)


def scale_radius(radius: float, bounds: BoundingBox, canvas: CanvasSize) -> float:
    check_canvas(canvas)
    sx = canvas.width / bounds.width
    sy = canvas.height / bounds.height
    return radius * min(sx, sy)
