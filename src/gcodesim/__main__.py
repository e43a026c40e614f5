"""CLI entry point: ``python -m gcodesim program.nc``"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config.machine_profiles import MachineLimits, MachineModel, get_profile
from .config.settings import AppSettings
from .core.estimator import estimate_time, format_duration
from .core.playback import PlaybackIndex, clamp_speed
from .gcode.parser import GCodeParser


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gcodesim",
        description="Interpret a G-code program and estimate its run time.",
    )
    p.add_argument("input", type=Path, help="G-code program (.nc, .ngc, .gcode)")
    p.add_argument(
        "--machine", choices=[m.value for m in MachineModel], default=None,
        help="Machine profile (default: saved setting, else 'default')",
    )
    p.add_argument(
        "--controller-dump", type=Path, default=None,
        help="Controller settings listing ($$ output) to read limits from",
    )

    # Per-axis overrides
    for axis in "xyz":
        p.add_argument(f"--rapid-{axis}", type=float, default=None,
                       help=f"{axis.upper()} rapid ceiling in mm/min")
        p.add_argument(f"--accel-{axis}", type=float, default=None,
                       help=f"{axis.upper()} acceleration in mm/s^2")
    p.add_argument("--manual-change", type=float, default=None,
                   help="Seconds per manual (M0) tool change")
    p.add_argument("--auto-change", type=float, default=None,
                   help="Seconds per automatic (M6) tool change")

    # Playback
    p.add_argument("--seek", type=float, default=None,
                   help="Report the playback position after this many seconds")
    p.add_argument("--speed", type=float, default=None,
                   help="Playback speed multiplier for --seek (0.1-10)")
    p.add_argument("--line", type=int, default=None,
                   help="Report the first segment drawn for this source line")

    p.add_argument("-v", "--verbose", action="store_true",
                   help="Debug logging")
    return p


def _resolve_limits(args: argparse.Namespace, settings: AppSettings) -> MachineLimits:
    if args.machine is not None:
        limits = get_profile(args.machine).limits
    else:
        limits = settings.machine_limits()
    if args.controller_dump is not None:
        limits = MachineLimits.from_controller_dump(
            args.controller_dump.read_text(), base=limits
        )
    return limits.with_overrides(
        max_rate_x=args.rapid_x,
        max_rate_y=args.rapid_y,
        max_rate_z=args.rapid_z,
        accel_x=args.accel_x,
        accel_y=args.accel_y,
        accel_z=args.accel_z,
        manual_tool_change=args.manual_change,
        auto_tool_change=args.auto_change,
    )


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.input.exists():
        print(f"Error: {args.input} not found", file=sys.stderr)
        return 1

    settings = AppSettings.load()
    limits = _resolve_limits(args, settings)
    try:
        limits.validate()
    except ValueError as exc:
        print(f"Error: invalid machine limits: {exc}", file=sys.stderr)
        return 2

    print(f"Parsing {args.input} ...")
    result = GCodeParser().parse_file(args.input)
    segments = result.segments
    rapids = sum(1 for s in segments if s.is_rapid)
    print(f"  {result.line_count} lines, {len(segments)} segments "
          f"({len(segments) - rapids} cut, {rapids} rapid)")

    bounds = result.bounds.as_tuple()
    if bounds is None:
        print("  Bounds: (no motion)")
    else:
        minx, maxx, miny, maxy, minz, maxz = bounds
        unit = result.units.label()
        print(f"  Bounds ({unit}) X[{minx:.3f}..{maxx:.3f}] "
              f"Y[{miny:.3f}..{maxy:.3f}] Z[{minz:.3f}..{maxz:.3f}]")

    if result.issues.has_warnings:
        for issue in result.issues:
            print(f"  Warning: {issue}")

    estimate = estimate_time(segments, limits)
    print(f"Estimated time: {estimate.formatted()}")
    for entry in result.tool_entries():
        print(f"  T{entry.number} {entry.display_name} ({entry.color}): "
              f"{estimate.formatted_tool_time(entry.number)}")

    if args.line is not None:
        found = PlaybackIndex(segments).index_for_line(args.line)
        if found is None:
            print(f"Line {args.line}: no motion at or after this line")
        else:
            print(f"Line {args.line}: segment {found} of {len(segments)}")

    if args.seek is not None:
        speed = clamp_speed(args.speed if args.speed is not None else settings.playback_speed)
        index = PlaybackIndex(segments, estimate)
        pos = index.seek(args.seek, speed)
        print(f"Playback at {format_duration(args.seek)} ({speed:g}x): "
              f"segment {pos.index} progress {pos.progress:.2f}"
              f"{' (finished)' if pos.finished else ''}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
