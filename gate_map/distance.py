from __future__ import annotations

import math
from typing import Iterable, Optional

from .gates import Gate, GeoPoint


EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def pixel_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x2 - x1, y2 - y1)


def gate_distance(a: Gate, b: Gate) -> Optional[float]:
    """Kilometres between geographic gates, pixels between image gates, else None."""
    if a.location is None or b.location is None or a.location.kind != b.location.kind:
        return None
    if isinstance(a.location, GeoPoint):
        return haversine_km(a.location.latitude, a.location.longitude, b.location.latitude, b.location.longitude)
    return pixel_distance(a.location.x, a.location.y, b.location.x, b.location.y)


def find_nearest_gate(target: Gate, gates: Iterable[Gate]) -> Optional[tuple[Gate, float]]:
    best: Optional[Gate] = None
    best_d = math.inf
    for g in gates:
        if g.id == target.id:
            continue
        d = gate_distance(target, g)
        if d is not None and d < best_d:
            best, best_d = g, d
    if best is None:
        return None
    return best, best_d


def are_gates_clustered(gates: Iterable[Gate], threshold: float, mode: str) -> bool:
    """True when at least two gates of `mode` all fit in a square of side `threshold`."""
    pts = [g.point for g in gates if g.location is not None and g.location.kind == mode]
    if len(pts) < 2:
        return False
    range_x = max(p.x for p in pts) - min(p.x for p in pts)
    range_y = max(p.y for p in pts) - min(p.y for p in pts)
    return max(range_x, range_y) < threshold
