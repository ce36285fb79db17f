from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from loguru import logger

from .gates import Exclusion, Gate, GateMapError, ImageSize, Point, coerce_gates, partition_gates


# Roughly "same physical location" at venue scale.
GEO_CLUSTER_THRESHOLD = 0.0005  # degrees, about 50 m
IMAGE_CLUSTER_THRESHOLD = 50.0  # pixels
GEO_MIN_RADIUS = 0.0001
IMAGE_MIN_RADIUS = 1.0


def default_threshold(mode: str) -> float:
    return IMAGE_CLUSTER_THRESHOLD if mode == "image" else GEO_CLUSTER_THRESHOLD


def default_min_radius(mode: str) -> float:
    return IMAGE_MIN_RADIUS if mode == "image" else GEO_MIN_RADIUS


@dataclass(frozen=True)
class Cluster:
    members: tuple[Gate, ...]
    center: Point
    radius: float

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def gate_ids(self) -> list[str]:
        return [g.id for g in self.members]

    @property
    def total_activity(self) -> int:
        return sum(g.activity_count for g in self.members)


@dataclass
class ClusterResult:
    clusters: list[Cluster]
    excluded: list[Exclusion] = field(default_factory=list)
    mode: str = "geo"

    @property
    def clustered_gate_ids(self) -> list[str]:
        return [gid for c in self.clusters for gid in c.gate_ids]


def _is_neighbor(a: Point, b: Point, threshold: float) -> bool:
    # Axis-aligned box test, not a circle.
    return abs(a.x - b.x) < threshold and abs(a.y - b.y) < threshold


def make_cluster(members: list[Gate], min_radius: float) -> Cluster:
    pts = [g.point for g in members]
    cx = sum(p.x for p in pts) / len(pts)
    cy = sum(p.y for p in pts) / len(pts)
    spread = max(math.hypot(p.x - cx, p.y - cy) for p in pts)
    return Cluster(members=tuple(members), center=Point(cx, cy), radius=max(spread, min_radius))


def build_clusters(
    gates: Iterable[Union[Gate, dict]],
    distance_threshold: Optional[float] = None,
    *,
    mode: Optional[str] = None,
    min_radius: Optional[float] = None,
    image_size: Optional[ImageSize] = None,
) -> ClusterResult:
    """
    Greedy single-pass grouping of nearby gates.

    Gates are visited in input order. Each unvisited gate seeds a cluster with
    every other unvisited gate whose offset from the seed is below the threshold
    on both axes. Gates with no usable coordinate are returned as exclusions.
    """
    usable, excluded, mode = partition_gates(coerce_gates(gates), mode=mode, image_size=image_size)

    threshold = default_threshold(mode) if distance_threshold is None else float(distance_threshold)
    if threshold <= 0:
        raise GateMapError("distance_threshold must be positive")
    floor = default_min_radius(mode) if min_radius is None else float(min_radius)
    if floor <= 0:
        raise GateMapError("min_radius must be positive")

    points = [g.point for g in usable]
    processed = [False] * len(usable)
    clusters: list[Cluster] = []

    for i, seed in enumerate(usable):
        if processed[i]:
            continue
        processed[i] = True
        members = [seed]
        for j in range(len(usable)):
            if processed[j]:
                continue
            if _is_neighbor(points[i], points[j], threshold):
                processed[j] = True
                members.append(usable[j])
        clusters.append(make_cluster(members, floor))

    logger.debug(f"built {len(clusters)} cluster(s) from {len(usable)} gate(s), threshold={threshold} ({mode})")
    return ClusterResult(clusters=clusters, excluded=excluded, mode=mode)
