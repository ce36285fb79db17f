from __future__ import annotations

from .layout import ClusterView, GateLayout
from .markers import Emphasis


def _glyph(c: ClusterView) -> str:
    if c.gate_count >= 10:
        return "+"
    if c.gate_count > 1:
        return str(c.gate_count)
    return "*" if c.emphasis is Emphasis.high else "o"


def render_ascii(layout: GateLayout, *, cols: int = 60, rows: int = 20) -> str:
    """Plot cluster markers on a character grid scaled from the layout canvas."""
    if layout.is_empty:
        what = "x/y pixel" if layout.mode == "image" else "latitude/longitude"
        return f"No gates with {what} coordinates to display."

    cols = max(3, int(cols))
    rows = max(3, int(rows))
    grid = [["." for _ in range(cols)] for _ in range(rows)]

    for c in layout.clusters:
        col = int(c.position.x / layout.canvas.width * (cols - 1) + 0.5)
        row = int(c.position.y / layout.canvas.height * (rows - 1) + 0.5)
        col = max(0, min(cols - 1, col))
        row = max(0, min(rows - 1, row))
        grid[row][col] = _glyph(c)

    lines = ["".join(r) for r in grid]
    lines.append(
        f"{len(layout.clusters)} marker(s), {sum(c.gate_count for c in layout.clusters)} gate(s), "
        f"{len(layout.excluded)} excluded ({'image' if layout.mode == 'image' else 'geographic'} mode)"
    )
    return "\n".join(lines)
