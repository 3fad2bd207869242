from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import random
import time
from pathlib import Path

from backend.app.analysis import AnalysisError, analyze_floor_plan
from backend.app.capacity import InvalidInput, build_input, calculate
from backend.app.config import load_settings
from backend.app.models import MonitorInterval, VenueType
from backend.app.monitor import DEMO_INTERVAL_S, CrowdSimulator

from .render import render_reading, render_result
from .storage import CapacityFileError, load_capacities, load_result, save_result


DEFAULT_FILE = "capacity_result.json"


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--file",
        default=DEFAULT_FILE,
        help=f"Path to a saved calculation result (default: {DEFAULT_FILE})",
    )


def cmd_calculate(args: argparse.Namespace) -> int:
    inp = build_input(args.area, args.venue_type, args.entrances, args.aisle_width)
    result = calculate(inp).to_dict()
    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print(render_result(result, bar_width=args.width))
    if args.output:
        save_result(result, args.output)
        print(f"Saved result to {args.output}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    result = load_result(args.file)
    print(render_result(result, bar_width=args.width))
    return 0


def cmd_monitor(args: argparse.Namespace) -> int:
    capacities = load_capacities(args.file)
    sim = CrowdSimulator(capacities, rng=random.Random(args.seed))
    period = 0.0 if args.fast else DEMO_INTERVAL_S[MonitorInterval(args.interval)]
    for i in range(args.ticks):
        if i and period:
            time.sleep(period)
        reading = sim.tick()
        print(render_reading(reading.to_dict(), capacities.level5))
        alert = sim.alert()
        if alert:
            print(f"  ALERT L{alert['level']} ({alert['threshold']:,}): {alert['message']}")
            sim.dismiss_alert()
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    path = Path(args.image)
    if not path.exists():
        raise AnalysisError(f"image not found: {path}")
    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    settings = load_settings()
    booth_size = args.booth_size or settings.default_booth_size_m2
    result = asyncio.run(analyze_floor_plan(path.read_bytes(), mime_type, booth_size, settings))
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="crowd_capacity", description="Venue capacity calculator and crowd monitor (CLI).")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_calc = sub.add_parser("calculate", help="Calculate tiered capacities for a venue")
    p_calc.add_argument("--area", type=float, required=True, help="Total floor area in m2")
    p_calc.add_argument("--venue-type", required=True, choices=[v.value for v in VenueType])
    p_calc.add_argument("--entrances", type=int, help="Number of entrances/exits (default: 2)")
    p_calc.add_argument("--aisle-width", type=float, help="Aisle width in meters (default: 2)")
    p_calc.add_argument("--output", help="Save the result JSON to this path")
    p_calc.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    p_calc.add_argument("--width", type=int, default=30, help="Bar width for display")
    p_calc.set_defaults(func=cmd_calculate)

    p_show = sub.add_parser("show", help="Print a saved calculation result")
    _add_common_args(p_show)
    p_show.add_argument("--width", type=int, default=30, help="Bar width for display")
    p_show.set_defaults(func=cmd_show)

    p_mon = sub.add_parser("monitor", help="Run the simulated crowd monitor against saved capacities")
    _add_common_args(p_mon)
    p_mon.add_argument("--interval", default=MonitorInterval.one_minute.value, choices=[i.value for i in MonitorInterval])
    p_mon.add_argument("--ticks", type=int, default=10)
    p_mon.add_argument("--seed", type=int, help="Random seed for a reproducible run")
    p_mon.add_argument("--fast", action="store_true", help="Do not wait between readings")
    p_mon.set_defaults(func=cmd_monitor)

    p_an = sub.add_parser("analyze", help="Analyze a floor plan image with the vision model")
    p_an.add_argument("--image", required=True)
    p_an.add_argument("--booth-size", type=float, help="Booth size in m2 (default from config)")
    p_an.set_defaults(func=cmd_analyze)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    try:
        return int(args.func(args))
    except (InvalidInput, CapacityFileError, AnalysisError) as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
