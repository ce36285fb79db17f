from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from loguru import logger

from .bounds import BoundingBox, compute_bounds
from .clusters import Cluster, build_clusters
from .config import LayoutSettings
from .gates import Exclusion, Gate, GateStatus, ImageSize, coerce_gates, resolve_mode
from .markers import Emphasis, Tone, classify, weight
from .projection import CanvasSize, PixelPoint, check_canvas, project, scale_radius
from .viewport import Viewport, ZoomRange, fit_viewport


@dataclass(frozen=True)
class ClusterView:
    """Render-ready marker for one cluster."""

    index: int
    gate_ids: tuple[str, ...]
    label: str
    position: PixelPoint
    center: tuple[float, float]
    radius: float
    radius_px: float
    size: float
    emphasis: Emphasis
    status: GateStatus
    tone: Tone
    color: str
    total_activity: int

    @property
    def gate_count(self) -> int:
        return len(self.gate_ids)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "gate_ids": list(self.gate_ids),
            "gate_count": self.gate_count,
            "label": self.label,
            "position": {"x": self.position.x, "y": self.position.y},
            "center": {"x": self.center[0], "y": self.center[1]},
            "radius": self.radius,
            "radius_px": self.radius_px,
            "size": self.size,
            "emphasis": self.emphasis.value,
            "status": self.status.value,
            "tone": self.tone.value,
            "color": self.color,
            "total_activity": self.total_activity,
        }


@dataclass
class GateLayout:
    mode: str
    canvas: CanvasSize
    clusters: list[ClusterView] = field(default_factory=list)
    excluded: list[Exclusion] = field(default_factory=list)
    bounds: Optional[BoundingBox] = None
    viewport: Optional[Viewport] = None

    @property
    def is_empty(self) -> bool:
        return not self.clusters

    @property
    def excluded_ids(self) -> list[str]:
        return [e.gate_id for e in self.excluded]

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "canvas": {"width": self.canvas.width, "height": self.canvas.height},
            "empty": self.is_empty,
            "bounds": self.bounds.to_dict() if self.bounds else None,
            "viewport": self.viewport.to_dict() if self.viewport else None,
            "clusters": [c.to_dict() for c in self.clusters],
            "excluded": [e.to_dict() for e in self.excluded],
        }


def _view(index: int, cluster: Cluster, bounds: BoundingBox, canvas: CanvasSize, mode: str) -> ClusterView:
    w = weight(cluster)
    tone = classify(cluster)
    label = str(cluster.size) if cluster.size > 1 else cluster.members[0].label
    return ClusterView(
        index=index,
        gate_ids=tuple(cluster.gate_ids),
        label=label,
        position=project(cluster.center, bounds, canvas, mode=mode),
        center=(cluster.center.x, cluster.center.y),
        radius=cluster.radius,
        radius_px=scale_radius(cluster.radius, bounds, canvas),
        size=w.size,
        emphasis=w.emphasis,
        status=tone.status,
        tone=tone.tone,
        color=tone.color,
        total_activity=cluster.total_activity,
    )


def build_layout(
    gates: Iterable[Union[Gate, dict]],
    canvas: CanvasSize,
    *,
    mode: Optional[str] = None,
    image_size: Optional[ImageSize] = None,
    zoom_range: Optional[ZoomRange] = None,
    settings: Optional[LayoutSettings] = None,
) -> GateLayout:
    """
    Full render pass: exclusions, bounds, clusters, marker styling,
    projected positions and a fitted viewport.

    With no usable gate the layout is empty rather than an error.
    """
    settings = settings or LayoutSettings()
    canvas = check_canvas(CanvasSize(float(canvas[0]), float(canvas[1])))
    zoom_range = zoom_range or settings.zoom_range

    gate_list = coerce_gates(gates)
    mode = resolve_mode(gate_list, mode, image_size)

    result = build_clusters(
        gate_list,
        settings.threshold(mode),
        mode=mode,
        min_radius=settings.min_radius(mode),
        image_size=image_size,
    )
    layout = GateLayout(mode=mode, canvas=canvas, excluded=result.excluded)
    if not result.clusters:
        logger.info(f"no usable gates among {len(gate_list)} record(s); empty layout")
        return layout

    points = [g.point for c in result.clusters for g in c.members]
    bounds = compute_bounds(points, settings.padding_fraction, min_span=settings.min_span(mode))
    if mode == "image" and image_size is not None and settings.clamp_to_image:
        bounds = bounds.clamped(image_size.width, image_size.height)

    layout.bounds = bounds
    layout.clusters = [_view(i, c, bounds, canvas, mode) for i, c in enumerate(result.clusters)]
    layout.viewport = fit_viewport(
        bounds,
        canvas,
        zoom_range,
        mode=mode,
        padding=settings.fit_padding,
        first_point=points[0],
    )
    return layout
