from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .bounds import DEFAULT_PADDING_FRACTION, GEO_MIN_SPAN, IMAGE_MIN_SPAN
from .clusters import GEO_CLUSTER_THRESHOLD, GEO_MIN_RADIUS, IMAGE_CLUSTER_THRESHOLD, IMAGE_MIN_RADIUS
from .gates import GateMapError
from .viewport import DEFAULT_FIT_PADDING, ZoomRange


ENV_PREFIX = "GATE_MAP_"


@dataclass(frozen=True)
class LayoutSettings:
    padding_fraction: float = DEFAULT_PADDING_FRACTION
    geo_threshold: float = GEO_CLUSTER_THRESHOLD
    image_threshold: float = IMAGE_CLUSTER_THRESHOLD
    geo_min_span: float = GEO_MIN_SPAN
    image_min_span: float = IMAGE_MIN_SPAN
    geo_min_radius: float = GEO_MIN_RADIUS
    image_min_radius: float = IMAGE_MIN_RADIUS
    fit_padding_x: float = DEFAULT_FIT_PADDING[0]
    fit_padding_y: float = DEFAULT_FIT_PADDING[1]
    min_zoom: float = 1.0
    max_zoom: float = 18.0
    clamp_to_image: bool = False
    log_level: str = "WARNING"

    def threshold(self, mode: str) -> float:
        return self.image_threshold if mode == "image" else self.geo_threshold

    def min_span(self, mode: str) -> float:
        return self.image_min_span if mode == "image" else self.geo_min_span

    def min_radius(self, mode: str) -> float:
        return self.image_min_radius if mode == "image" else self.geo_min_radius

    @property
    def fit_padding(self) -> tuple[float, float]:
        return (self.fit_padding_x, self.fit_padding_y)

    @property
    def zoom_range(self) -> ZoomRange:
        return ZoomRange(self.min_zoom, self.max_zoom)

    def with_overrides(self, **changes) -> "LayoutSettings":
        changes = {k: v for k, v in changes.items() if v is not None}
        return validate_settings(replace(self, **changes))


def validate_settings(s: LayoutSettings) -> LayoutSettings:
    if s.padding_fraction < 0:
        raise GateMapError("padding_fraction must be >= 0")
    for name in ("geo_threshold", "image_threshold", "geo_min_span", "image_min_span", "geo_min_radius", "image_min_radius"):
        if getattr(s, name) <= 0:
            raise GateMapError(f"{name} must be positive")
    if s.fit_padding_x < 0 or s.fit_padding_y < 0:
        raise GateMapError("fit padding must be >= 0")
    if s.min_zoom > s.max_zoom:
        raise GateMapError("min_zoom must not exceed max_zoom")
    return s


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> LayoutSettings:
    """Read GATE_MAP_<FIELD> overrides (e.g. GATE_MAP_GEO_THRESHOLD) from the environment."""
    env = os.environ if environ is None else environ
    defaults = LayoutSettings()
    changes: dict = {}
    for name, default in vars(defaults).items():
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is None or raw.strip() == "":
            continue
        if isinstance(default, bool):
            changes[name] = _parse_bool(raw)
        elif isinstance(default, float):
            try:
                changes[name] = float(raw)
            except ValueError as e:
                raise GateMapError(f"{ENV_PREFIX}{name.upper()} must be a number, got {raw!r}") from e
        else:
            changes[name] = raw.strip().upper() if name == "log_level" else raw.strip()
    return validate_settings(replace(defaults, **changes))
