"""Command-line entry point.

Usage:
    switchyard generate --score 250 --seed 7     # print one layout
    switchyard check --runs 500                   # invariant sweep, all tiers
    switchyard simulate --seconds 120 --seed 3    # headless run, no operator
"""

from __future__ import annotations

import argparse
import sys

from loguru import logger

from switchyard.config import settings
from switchyard.simulation import (
    RailSimulation,
    check_layout,
    get_available_tracks,
    get_game_level,
    make_rng,
)
from switchyard.simulation.layout import Layout
from switchyard.simulation.layout_gen import LayoutGenerator
from switchyard.simulation.level_policy import TIER1_POINTS, TIER2_POINTS, stop_duration_multiplier

_TIER_SCORES = (0, TIER1_POINTS, TIER2_POINTS)


def _print_layout(layout: Layout) -> None:
    counts = layout.switch_counts()
    print(f"  Tracks: {', '.join(layout.tracks)}")
    print(f"  Switches per track: {counts}")
    print(f"\n  {'ID':<10s} {'SOURCE':<8s} {'TARGET':<8s} {'X':>6s}")
    for c in sorted(layout.connections, key=lambda c: (c.source, c.x)):
        flag = "  (forced)" if c.forced else ""
        print(f"  {c.id:<10s} {c.source:<8s} {c.target:<8s} {c.x:6.0f}{flag}")
    print(f"\n  {'ID':<10s} {'TRACK':<8s} {'X':>6s} {'DURATION':>10s}")
    for s in layout.stops:
        print(f"  {s.id:<10s} {s.track:<8s} {s.x:6.0f} {s.duration:8.0f}ms")
    if layout.repairs:
        print(f"\n  Repairs ({len(layout.repairs)}):")
        for r in layout.repairs:
            print(f"    - {r}")


def cmd_generate(args: argparse.Namespace) -> int:
    rng = make_rng(args.seed)
    generator = LayoutGenerator(zone_count=args.zones)
    layout = generator.generate(
        get_available_tracks(args.score), rng, stop_duration_multiplier(args.score),
    )
    print(f"Layout for score {args.score} (tier {get_game_level(args.score)})")
    _print_layout(layout)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    rng = make_rng(args.seed)
    generator = LayoutGenerator(zone_count=args.zones)
    failures = 0
    for score in _TIER_SCORES:
        tracks = get_available_tracks(score)
        for _ in range(args.runs):
            layout = generator.generate(tracks, rng, stop_duration_multiplier(score))
            violations = check_layout(layout, zone_count=args.zones)
            if violations:
                failures += 1
                for v in violations:
                    print(f"  tier {get_game_level(score)}: [{v.kind}] {v.detail}")
        print(f"Tier {get_game_level(score)}: {args.runs} layouts checked")
    print(f"{failures} invalid layout(s)")
    return 1 if failures else 0


def cmd_simulate(args: argparse.Namespace) -> int:
    sim = RailSimulation(rng=make_rng(args.seed), score=args.score)
    result = sim.run(args.seconds, dt=1.0 / settings.tick_rate)
    print(f"Simulated {result['elapsed']:.1f}s: status={result['status']} "
          f"score={result['score']} tier={result['tier']} trains={result['trains']}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="switchyard",
        description="Rail layout generator and spawn-arbitration sandbox",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--log-level", default=settings.log_level,
        help=f"Loguru level (default: {settings.log_level})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate and print one layout")
    gen.add_argument("--score", type=int, default=0, help="Score used to pick the tier (default: 0)")
    gen.add_argument("--seed", type=int, default=settings.seed)
    gen.add_argument("--zones", type=int, default=settings.zone_count)
    gen.set_defaults(func=cmd_generate)

    chk = sub.add_parser("check", help="Generate many layouts and verify coverage guarantees")
    chk.add_argument("--runs", type=int, default=200, help="Layouts per tier (default: 200)")
    chk.add_argument("--seed", type=int, default=settings.seed)
    chk.add_argument("--zones", type=int, default=settings.zone_count)
    chk.set_defaults(func=cmd_check)

    simp = sub.add_parser("simulate", help="Run the headless tick loop without an operator")
    simp.add_argument("--seconds", type=float, default=60.0)
    simp.add_argument("--score", type=int, default=0, help="Starting score (default: 0)")
    simp.add_argument("--seed", type=int, default=settings.seed)
    simp.set_defaults(func=cmd_simulate)

    args = parser.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
