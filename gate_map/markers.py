from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .clusters import Cluster
from .gates import GateStatus


BASE_SIZE = 12.0
MAX_SIZE = 32.0
PER_GATE_GROWTH = 0.3
HIGH_ACTIVITY_THRESHOLD = 20

# (exclusive lower bound on summed activity, multiplier), highest first
ACTIVITY_TIERS: tuple[tuple[int, float], ...] = ((50, 1.5), (20, 1.3), (5, 1.1))

CRITICAL_HEALTH = 70.0
DEGRADED_HEALTH = 90.0


class Emphasis(str, Enum):
    normal = "normal"
    high = "high"


class Tone(str, Enum):
    healthy = "healthy"
    degraded = "degraded"
    critical = "critical"
    warning = "warning"
    neutral = "neutral"


TONE_COLORS: dict[Tone, str] = {
    Tone.healthy: "#10B981",
    Tone.degraded: "#F97316",
    Tone.critical: "#EF4444",
    Tone.warning: "#F59E0B",
    Tone.neutral: "#6B7280",
}


@dataclass(frozen=True)
class MarkerWeight:
    size: float
    emphasis: Emphasis


@dataclass(frozen=True)
class MarkerTone:
    status: GateStatus
    tone: Tone

    @property
    def color(self) -> str:
        return TONE_COLORS[self.tone]


def activity_multiplier(total_activity: int) -> float:
    for floor, mult in ACTIVITY_TIERS:
        if total_activity > floor:
            return mult
    return 1.0


def marker_size(gate_count: int, total_activity: int) -> float:
    cluster_mult = 1.0 + max(0, gate_count - 1) * PER_GATE_GROWTH
    return min(BASE_SIZE * cluster_mult * activity_multiplier(total_activity), MAX_SIZE)


def weight(cluster: Cluster) -> MarkerWeight:
    total = cluster.total_activity
    emphasis = Emphasis.high if total > HIGH_ACTIVITY_THRESHOLD else Emphasis.normal
    return MarkerWeight(size=marker_size(cluster.size, total), emphasis=emphasis)


def dominant_status(cluster: Cluster) -> GateStatus:
    active = sum(1 for g in cluster.members if g.status is GateStatus.active)
    if active > cluster.size / 2:
        return GateStatus.active
    if any(g.status is GateStatus.maintenance for g in cluster.members):
        return GateStatus.maintenance
    return GateStatus.inactive


def status_tone(status: GateStatus, health: float = 100.0) -> Tone:
    if status is GateStatus.inactive:
        return Tone.neutral
    if status is GateStatus.maintenance:
        return Tone.warning
    if health < CRITICAL_HEALTH:
        return Tone.critical
    if health < DEGRADED_HEALTH:
        return Tone.degraded
    return Tone.healthy


def classify(cluster: Cluster) -> MarkerTone:
    status = dominant_status(cluster)
    worst = min(g.health_score for g in cluster.members)
    return MarkerTone(status=status, tone=status_tone(status, worst))
