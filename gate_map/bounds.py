from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from loguru import logger
from shapely.geometry import MultiPoint

from .gates import EmptyInputError, GateMapError, Point


DEFAULT_PADDING_FRACTION = 0.1
# Spans substituted for an axis on which every point shares one value.
GEO_MIN_SPAN = 0.01  # degrees
IMAGE_MIN_SPAN = 50.0  # pixels
_EPSILON = 1e-12


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    degenerate: bool = False

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point:
        return Point((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def contains(self, p: Point, *, strict: bool = False) -> bool:
        if strict:
            return self.min_x < p.x < self.max_x and self.min_y < p.y < self.max_y
        return self.min_x <= p.x <= self.max_x and self.min_y <= p.y <= self.max_y

    def clamped(self, width: float, height: float) -> "BoundingBox":
        """Clip to an image extent [0, width] x [0, height], keeping a positive area."""
        min_x = max(0.0, self.min_x)
        max_x = min(float(width), self.max_x)
        min_y = max(0.0, self.min_y)
        max_y = min(float(height), self.max_y)
        if max_x <= min_x or max_y <= min_y:
            return self
        return BoundingBox(min_x, max_x, min_y, max_y, degenerate=self.degenerate)

    def to_dict(self) -> dict:
        return {"min_x": self.min_x, "max_x": self.max_x, "min_y": self.min_y, "max_y": self.max_y}


def _widen(lo: float, hi: float, min_span: float) -> tuple[float, float, bool]:
    if hi - lo >= _EPSILON:
        return lo, hi, False
    mid = (lo + hi) / 2.0
    return mid - min_span / 2.0, mid + min_span / 2.0, True


def compute_bounds(
    points: Iterable[Point] | Sequence[tuple[float, float]],
    padding_fraction: float = DEFAULT_PADDING_FRACTION,
    *,
    min_span: float = GEO_MIN_SPAN,
) -> BoundingBox:
    pts = [(float(p[0]), float(p[1])) for p in points]
    if not pts:
        raise EmptyInputError("cannot compute bounds of zero points")
    if padding_fraction < 0:
        raise GateMapError("padding_fraction must be >= 0")
    if min_span <= 0:
        raise GateMapError("min_span must be positive")

    min_x, min_y, max_x, max_y = MultiPoint(pts).bounds

    min_x, max_x, widened_x = _widen(min_x, max_x, min_span)
    min_y, max_y, widened_y = _widen(min_y, max_y, min_span)
    degenerate = widened_x or widened_y
    if degenerate:
        logger.debug(f"degenerate bounds over {len(pts)} point(s), widened to min span {min_span}")

    pad_x = (max_x - min_x) * padding_fraction
    pad_y = (max_y - min_y) * padding_fraction
    return BoundingBox(
        min_x=min_x - pad_x,
        max_x=max_x + pad_x,
        min_y=min_y - pad_y,
        max_y=max_y + pad_y,
        degenerate=degenerate,
    )
