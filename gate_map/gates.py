from __future__ import annotations

import math
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, NamedTuple, Optional, Union

from loguru import logger
from shapely.geometry import Point as ShapelyPoint, box


MODES: tuple[str, ...] = ("geo", "image")


class GateMapError(Exception):
    pass


class EmptyInputError(GateMapError):
    pass


class ViewportFitFailure(GateMapError):
    pass


class MixedCoordinateSystemWarning(UserWarning):
    pass


class GateStatus(str, Enum):
    active = "active"
    maintenance = "maintenance"
    inactive = "inactive"


class ExclusionReason(str, Enum):
    missing_coordinates = "missing_coordinates"
    mixed_coordinates = "mixed_coordinates"
    mode_mismatch = "mode_mismatch"
    out_of_range = "out_of_range"


class Point(NamedTuple):
    x: float
    y: float


class ImageSize(NamedTuple):
    width: float
    height: float


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    kind = "geo"

    @property
    def x(self) -> float:
        return self.longitude

    @property
    def y(self) -> float:
        return self.latitude


@dataclass(frozen=True)
class ImagePoint:
    x: float
    y: float

    kind = "image"


Location = Union[GeoPoint, ImagePoint]


@dataclass(frozen=True)
class Gate:
    id: str
    location: Optional[Location] = None
    name: Optional[str] = None
    status: GateStatus = GateStatus.active
    health_score: float = 100.0
    activity_count: int = 0
    # Set by gate_from_record when the record could not be resolved to one location.
    location_issue: Optional[ExclusionReason] = field(default=None, compare=False)

    @property
    def label(self) -> str:
        return self.name or self.id

    @property
    def point(self) -> Optional[Point]:
        if self.location is None:
            return None
        return Point(self.location.x, self.location.y)


@dataclass(frozen=True)
class Exclusion:
    gate_id: str
    reason: ExclusionReason
    message: str

    def to_dict(self) -> dict:
        return {"gate_id": self.gate_id, "reason": self.reason.value, "message": self.message}


def _number(value: Any) -> Optional[float]:
    # bools are ints in Python but never coordinates
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f):
        return None
    return f


def _first_present(record: dict, *keys: str) -> Any:
    for k in keys:
        if record.get(k) is not None:
            return record[k]
    return None


def _parse_status(value: Any) -> GateStatus:
    if value is None or value == "":
        return GateStatus.active
    try:
        return GateStatus(str(value).strip().lower())
    except ValueError:
        logger.warning(f"unknown gate status {value!r}, treating as inactive")
        return GateStatus.inactive


def gate_from_record(record: dict) -> Gate:
    """
    Build a Gate from a record-store row.

    Accepts latitude/longitude (or lat/lon) and x/y. A record carrying both
    representations, or neither, gets no location and a location_issue.
    """
    gate_id = record.get("id")
    if gate_id is None or str(gate_id).strip() == "":
        raise GateMapError("gate record is missing an id")

    lat = _number(_first_present(record, "latitude", "lat"))
    lon = _number(_first_present(record, "longitude", "lon", "lng"))
    x = _number(record.get("x"))
    y = _number(record.get("y"))

    has_geo = lat is not None and lon is not None
    has_image = x is not None and y is not None

    location: Optional[Location] = None
    issue: Optional[ExclusionReason] = None
    if has_geo and has_image:
        issue = ExclusionReason.mixed_coordinates
    elif has_geo:
        location = GeoPoint(latitude=lat, longitude=lon)
    elif has_image:
        location = ImagePoint(x=x, y=y)
    else:
        issue = ExclusionReason.missing_coordinates

    health = _number(_first_present(record, "health_score", "healthScore"))
    activity = _number(_first_present(record, "activity_count", "activityCount", "checkin_count"))

    name = record.get("name")
    return Gate(
        id=str(gate_id),
        name=str(name) if name not in (None, "") else None,
        location=location,
        status=_parse_status(record.get("status")),
        health_score=100.0 if health is None else max(0.0, min(100.0, health)),
        activity_count=0 if activity is None else max(0, int(activity)),
        location_issue=issue,
    )


def coerce_gates(items: Iterable[Union[Gate, dict]]) -> list[Gate]:
    out: list[Gate] = []
    for item in items:
        if isinstance(item, Gate):
            out.append(item)
        elif isinstance(item, dict):
            out.append(gate_from_record(item))
        else:
            raise GateMapError(f"unsupported gate value: {type(item).__name__}")
    return out


def infer_mode(gates: Iterable[Gate]) -> Optional[str]:
    for g in gates:
        if g.location is not None:
            return g.location.kind
    return None


def resolve_mode(gates: Iterable[Gate], mode: Optional[str] = None, image_size: Optional[ImageSize] = None) -> str:
    """Explicit mode, else image when an image size is known, else the first located gate's system."""
    if mode is not None:
        return mode
    if image_size is not None:
        return "image"
    return infer_mode(gates) or "geo"


def _range_problem(location: Location, image_size: Optional[ImageSize]) -> Optional[str]:
    if isinstance(location, GeoPoint):
        if not -90.0 <= location.latitude <= 90.0:
            return "invalid latitude (must be -90 to 90)"
        if not -180.0 <= location.longitude <= 180.0:
            return "invalid longitude (must be -180 to 180)"
        return None
    if image_size is not None:
        extent = box(0.0, 0.0, image_size.width, image_size.height)
        if not extent.covers(ShapelyPoint(location.x, location.y)):
            return "coordinates outside image bounds"
    return None


def _exclusion_for(gate: Gate, mode: str, image_size: Optional[ImageSize]) -> Optional[Exclusion]:
    if gate.location is None:
        reason = gate.location_issue or ExclusionReason.missing_coordinates
        if reason is ExclusionReason.mixed_coordinates:
            message = "gate has both geographic and image coordinates"
        else:
            message = "missing latitude/longitude coordinates" if mode == "geo" else "missing x/y coordinates"
        return Exclusion(gate.id, reason, message)
    if gate.location.kind != mode:
        return Exclusion(
            gate.id,
            ExclusionReason.mode_mismatch,
            f"gate has {gate.location.kind} coordinates but the map is in {mode} mode",
        )
    problem = _range_problem(gate.location, image_size)
    if problem is not None:
        return Exclusion(gate.id, ExclusionReason.out_of_range, problem)
    return None


def partition_gates(
    gates: Iterable[Gate],
    *,
    mode: Optional[str] = None,
    image_size: Optional[ImageSize] = None,
) -> tuple[list[Gate], list[Exclusion], str]:
    """Split gates into usable ones and exclusions; returns (usable, excluded, mode)."""
    gates = list(gates)
    if mode is None:
        mode = infer_mode(gates) or "geo"
    if mode not in MODES:
        raise GateMapError(f"unknown coordinate mode: {mode!r}")

    usable: list[Gate] = []
    excluded: list[Exclusion] = []
    for g in gates:
        ex = _exclusion_for(g, mode, image_size)
        if ex is None:
            usable.append(g)
        else:
            excluded.append(ex)

    mixed = [e.gate_id for e in excluded if e.reason is ExclusionReason.mixed_coordinates]
    if mixed:
        warnings.warn(
            MixedCoordinateSystemWarning(f"{len(mixed)} gate(s) carry both coordinate systems: {', '.join(mixed[:10])}"),
            stacklevel=2,
        )
    if excluded:
        logger.debug(f"excluded {len(excluded)} of {len(gates)} gates in {mode} mode")
    return usable, excluded, mode


@dataclass
class ValidationReport:
    valid: list[Gate]
    invalid: list[Exclusion]

    @property
    def summary(self) -> dict:
        total = len(self.valid) + len(self.invalid)
        return {
            "total": total,
            "valid": len(self.valid),
            "invalid": len(self.invalid),
            "valid_percentage": (len(self.valid) / total) * 100 if total > 0 else 0.0,
        }

    def to_dict(self) -> dict:
        return {
            "valid": [g.id for g in self.valid],
            "invalid": [e.to_dict() for e in self.invalid],
            "summary": self.summary,
        }


def validate_gates(
    gates: Iterable[Gate],
    *,
    mode: Optional[str] = None,
    image_size: Optional[ImageSize] = None,
) -> ValidationReport:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MixedCoordinateSystemWarning)
        valid, invalid, _ = partition_gates(gates, mode=mode, image_size=image_size)
    return ValidationReport(valid=valid, invalid=invalid)


def center_point(gates: Iterable[Gate], mode: str) -> Optional[Point]:
    pts = [g.point for g in gates if g.location is not None and g.location.kind == mode]
    if not pts:
        return None
    return Point(sum(p.x for p in pts) / len(pts), sum(p.y for p in pts) / len(pts))
