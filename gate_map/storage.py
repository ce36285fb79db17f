from __future__ import annotations

import csv
import io
import json
from pathlib import Path

from .gates import Gate, GateMapError, gate_from_record
from .layout import GateLayout


CSV_FIELDS = ["id", "name", "latitude", "longitude", "x", "y", "status", "health_score", "checkin_count"]
CLUSTER_CSV_FIELDS = [
    "cluster",
    "gate_ids",
    "gate_count",
    "center_x",
    "center_y",
    "pixel_x",
    "pixel_y",
    "radius",
    "size",
    "emphasis",
    "status",
    "tone",
    "color",
    "total_activity",
]


def _records_from_json(text: str) -> list[dict]:
    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("gates")
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise GateMapError("gate JSON must be a list of objects or an object with a 'gates' list")
    return data


def _records_from_csv(text: str) -> list[dict]:
    r = csv.DictReader(io.StringIO(text))
    if "id" not in set(r.fieldnames or []):
        raise GateMapError(f"CSV must have an 'id' header (known headers: {CSV_FIELDS})")
    # empty cells mean "not set"
    return [{k: v for k, v in row.items() if k and v not in (None, "")} for row in r]


def load_gates(path: str | Path) -> list[Gate]:
    p = Path(path)
    if not p.exists():
        raise GateMapError(f"gate file not found: {p}")

    try:
        text = p.read_text(encoding="utf-8")
        records = _records_from_csv(text) if p.suffix.lower() == ".csv" else _records_from_json(text)
    except GateMapError:
        raise
    except Exception as e:  # noqa: BLE001
        raise GateMapError(f"failed to read gates from {p}: {e}") from e

    return [gate_from_record(r) for r in records]


def save_layout(layout: GateLayout, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(layout.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")


def clusters_csv(layout: GateLayout) -> str:
    out = io.StringIO()
    w = csv.writer(out)
    w.writerow(CLUSTER_CSV_FIELDS)
    for c in layout.clusters:
        w.writerow(
            [
                c.index,
                ";".join(c.gate_ids),
                c.gate_count,
                c.center[0],
                c.center[1],
                round(c.position.x, 2),
                round(c.position.y, 2),
                c.radius,
                round(c.size, 2),
                c.emphasis.value,
                c.status.value,
                c.tone.value,
                c.color,
                c.total_activity,
            ]
        )
    return out.getvalue()


def write_clusters_csv(layout: GateLayout, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", newline="", encoding="utf-8") as f:
        f.write(clusters_csv(layout))
