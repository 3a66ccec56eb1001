"""Layout invariant checker.

Re-derives the generator's five coverage guarantees from a finished Layout
and reports every breach it finds.  The generator never calls this; it is
used by the test-suite property runs and by ``switchyard check``.
"""

from __future__ import annotations

from dataclasses import dataclass

from .layout import Layout
from .layout_gen import (
    BIDIRECTIONAL_TOLERANCE,
    DEFAULT_ZONE_COUNT,
    MIN_SWITCH_SPACING,
    MIN_SWITCH_TO_STOP,
    ULTRA_EARLY_X,
    build_zones,
)
from .tracks import PLAY_WIDTH


@dataclass(frozen=True)
class InvariantViolation:
    """One breached guarantee.  ``kind`` is a short machine-readable label."""

    kind: str  # "ultra_early", "zone", "spacing", "round_trip", "stop_reach"
    detail: str
    ids: tuple[str, ...] = ()


def check_layout(
    layout: Layout,
    zone_count: int = DEFAULT_ZONE_COUNT,
    play_width: float = PLAY_WIDTH,
) -> list[InvariantViolation]:
    """Return all invariant violations in *layout* (empty list = valid)."""
    violations: list[InvariantViolation] = []

    for track in layout.tracks:
        if not any(c.x < ULTRA_EARLY_X for c in layout.connections_from(track)):
            violations.append(InvariantViolation(
                "ultra_early", f"{track} has no switch below x={ULTRA_EARLY_X:.0f}", (track,),
            ))

    for zone in build_zones(play_width, zone_count):
        if not any(zone.contains(c.x) for c in layout.connections):
            violations.append(InvariantViolation(
                "zone", f"zone {zone.index} [{zone.lo:.0f}, {zone.hi:.0f}) has no switch",
            ))

    for track in layout.tracks:
        conns = layout.connections_from(track)
        for i, a in enumerate(conns):
            for b in conns[i + 1:]:
                if b.x - a.x >= MIN_SWITCH_SPACING:
                    break
                if a.forced or b.forced:
                    continue
                violations.append(InvariantViolation(
                    "spacing", f"{a.id} and {b.id} on {track} are {b.x - a.x:.0f}px apart",
                    (a.id, b.id),
                ))

    conns = list(layout.connections)
    for i, a in enumerate(conns):
        for b in conns[i + 1:]:
            if (a.source == b.target and a.target == b.source
                    and abs(a.x - b.x) < BIDIRECTIONAL_TOLERANCE):
                violations.append(InvariantViolation(
                    "round_trip", f"{a.id} and {b.id} form a same-position round trip",
                    (a.id, b.id),
                ))

    for stop in layout.stops:
        if not any(stop.x - c.x >= MIN_SWITCH_TO_STOP for c in layout.connections_from(stop.track)):
            violations.append(InvariantViolation(
                "stop_reach", f"{stop.id} on {stop.track} at x={stop.x:.0f} has no switch "
                f"{MIN_SWITCH_TO_STOP:.0f}px before it", (stop.id,),
            ))

    return violations
