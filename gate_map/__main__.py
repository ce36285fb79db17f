from __future__ import annotations

import argparse
import json
import sys
from typing import Optional

from loguru import logger

from .config import LayoutSettings, load_settings
from .distance import find_nearest_gate
from .gates import GateMapError, ImageSize, resolve_mode, validate_gates
from .layout import GateLayout, build_layout
from .projection import CanvasSize
from .render import render_ascii
from .storage import load_gates, save_layout, write_clusters_csv
from .viewport import ZoomRange


DEFAULT_FILE = "gates.json"


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="<level>{level: <8}</level> {message}")


def _image_size(args: argparse.Namespace) -> Optional[ImageSize]:
    if args.image_width is None and args.image_height is None:
        return None
    if args.image_width is None or args.image_height is None:
        raise GateMapError("--image-width and --image-height must be given together")
    return ImageSize(args.image_width, args.image_height)


def _settings(args: argparse.Namespace, mode: str) -> LayoutSettings:
    s = load_settings()
    threshold_field = "image_threshold" if mode == "image" else "geo_threshold"
    return s.with_overrides(
        **{threshold_field: args.threshold},
        min_zoom=args.min_zoom,
        max_zoom=args.max_zoom,
        padding_fraction=args.padding,
        clamp_to_image=True if args.clamp else None,
    )


def _layout(args: argparse.Namespace) -> GateLayout:
    gates = load_gates(args.file)
    image_size = _image_size(args)
    mode = resolve_mode(gates, args.mode, image_size)
    settings = _settings(args, mode)
    return build_layout(
        gates,
        CanvasSize(args.width, args.height),
        mode=mode,
        image_size=image_size,
        zoom_range=ZoomRange(settings.min_zoom, settings.max_zoom),
        settings=settings,
    )


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--file",
        default=DEFAULT_FILE,
        help=f"Path to gates JSON or CSV file (default: {DEFAULT_FILE})",
    )
    p.add_argument("--mode", choices=["geo", "image"], help="Coordinate system (default: inferred from the gates)")
    p.add_argument("--image-width", type=float, help="Background image width in pixels (image mode)")
    p.add_argument("--image-height", type=float, help="Background image height in pixels (image mode)")
    p.add_argument("--verbose", "-v", action="store_true", help="Log engine decisions to stderr")


def _add_layout_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--width", type=float, default=800, help="Canvas width in pixels")
    p.add_argument("--height", type=float, default=600, help="Canvas height in pixels")
    p.add_argument("--threshold", type=float, help="Cluster distance threshold in source units")
    p.add_argument("--padding", type=float, help="Bounds padding as a fraction of the range (default 0.1)")
    p.add_argument("--min-zoom", type=float)
    p.add_argument("--max-zoom", type=float)
    p.add_argument("--clamp", action="store_true", help="Clip image-mode bounds to the image extent")


def cmd_layout(args: argparse.Namespace) -> int:
    layout = _layout(args)
    if args.output:
        save_layout(layout, args.output)
        print(f"Wrote layout with {len(layout.clusters)} cluster(s) to {args.output}")
    else:
        print(json.dumps(layout.to_dict(), indent=2, sort_keys=True))
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    layout = _layout(args)
    print(render_ascii(layout, cols=args.cols, rows=args.rows))
    return 0


def cmd_viewport(args: argparse.Namespace) -> int:
    layout = _layout(args)
    if layout.viewport is None:
        print("No gates with usable coordinates")
        return 1
    vp = layout.viewport
    suffix = " (fallback)" if vp.fallback else ""
    print(f"center=({vp.center.x:.6f}, {vp.center.y:.6f}) zoom={vp.zoom:g}{suffix}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    report = validate_gates(load_gates(args.file), mode=args.mode, image_size=_image_size(args))
    s = report.summary
    print(f"{s['valid']}/{s['total']} gates valid ({s['valid_percentage']:.1f}%)")
    for e in report.invalid:
        print(f"  {e.gate_id}: {e.message}")
    return 0 if not report.invalid else 1


def cmd_nearest(args: argparse.Namespace) -> int:
    gates = load_gates(args.file)
    target = next((g for g in gates if g.id == args.id), None)
    if target is None:
        raise GateMapError(f"gate not found: {args.id}")
    found = find_nearest_gate(target, gates)
    if found is None:
        print("Not found")
        return 1
    gate, dist = found
    unit = "km" if gate.location is not None and gate.location.kind == "geo" else "px"
    print(f"Nearest to {target.label}: {gate.label} ({dist:.4f} {unit})")
    return 0


def cmd_export_csv(args: argparse.Namespace) -> int:
    layout = _layout(args)
    write_clusters_csv(layout, args.output)
    print(f"Exported {len(layout.clusters)} cluster(s) to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="gate_map", description="Gate map clustering and viewport fitting (CLI).")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_layout = sub.add_parser("layout", help="Compute the full marker layout as JSON")
    _add_common_args(p_layout)
    _add_layout_args(p_layout)
    p_layout.add_argument("--output", help="Write JSON to this file instead of stdout")
    p_layout.set_defaults(func=cmd_layout)

    p_show = sub.add_parser("show", help="Print the clustered gate map as ASCII")
    _add_common_args(p_show)
    _add_layout_args(p_show)
    p_show.add_argument("--cols", type=int, default=60, help="Grid columns")
    p_show.add_argument("--rows", type=int, default=20, help="Grid rows")
    p_show.set_defaults(func=cmd_show)

    p_viewport = sub.add_parser("viewport", help="Print the fitted map centre and zoom")
    _add_common_args(p_viewport)
    _add_layout_args(p_viewport)
    p_viewport.set_defaults(func=cmd_viewport)

    p_validate = sub.add_parser("validate", help="Report gates with missing or invalid coordinates")
    _add_common_args(p_validate)
    p_validate.set_defaults(func=cmd_validate)

    p_nearest = sub.add_parser("nearest", help="Find the gate closest to a given gate")
    _add_common_args(p_nearest)
    p_nearest.add_argument("--id", required=True)
    p_nearest.set_defaults(func=cmd_nearest)

    p_export = sub.add_parser("export-csv", help="Export one row per cluster marker to a CSV file")
    _add_common_args(p_export)
    _add_layout_args(p_export)
    p_export.add_argument("--output", required=True)
    p_export.set_defaults(func=cmd_export_csv)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    try:
        _configure_logging("DEBUG" if args.verbose else load_settings().log_level)
        return int(args.func(args))
    except GateMapError as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
