"""LayoutGenerator — randomized switch and stop placement with hard guarantees.

Every generated Layout satisfies, over the active track set:

  - ultra-early coverage: each track has a switch with x < ULTRA_EARLY_X,
    so even the fastest train spawned behind slow traffic can divert
    before it catches up.
  - zone coverage: each zone of the play-width partition holds a switch.
  - spacing: same-track switches are at least MIN_SWITCH_SPACING apart,
    unless one of them is flagged ``forced``.
  - no null round-trips: never A->B and B->A within BIDIRECTIONAL_TOLERANCE.
  - stop reachability: each stop has a switch on its own track at least
    MIN_SWITCH_TO_STOP earlier.

Architecture
------------
Generation is a fixed sequence of passes over an immutable Placement value.
The randomized passes (forward, extra, backward, skip) give each level its
own shape.  The repair sweeps that follow (empty tracks, missing
ultra-early switches, stop reachability, empty zones) each end in a
deterministic forced placement, which is what turns the guarantees above
from likely into certain.  A forced placement may crowd its neighbours;
coverage wins over tidiness.

Every loop is capped (see the *_ATTEMPTS constants), so a call always
finishes in bounded time regardless of what the random source returns.

Usage:
    layout = generate_layout(get_available_tracks(score), random.Random())
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from loguru import logger

from .layout import Layout
from .placement import Placement, place_with_fallback
from .rng import RandomSource
from .tracks import PLAY_WIDTH, TRACK_OFFSETS, validate_tracks

# -- Placement geometry ------------------------------------------------------

ULTRA_EARLY_MIN_X = 50.0     # leftmost visible switch position
ULTRA_EARLY_X = 250.0        # ultra-early band is [ULTRA_EARLY_MIN_X, ULTRA_EARLY_X)
RIGHT_MARGIN = 100.0         # switches stay left of PLAY_WIDTH - RIGHT_MARGIN
MIN_SWITCH_SPACING = 75.0    # same source track
CROWDING_SPACING = 50.0      # any track; relaxed across ultra-early retries
BIDIRECTIONAL_TOLERANCE = 30.0
POOL_COLUMNS = 8
POOL_JITTER = 20.0

# -- Stops --------------------------------------------------------------------

STOP_FRACTIONS = (0.4, 0.6, 0.8)
MIN_SWITCH_TO_STOP = 300.0
EMERGENCY_JITTER = 150.0
STOP_BASE_MIN_MS = 1000.0
STOP_BASE_MAX_MS = 2500.0

# -- Pass probabilities & retry caps -------------------------------------------

MAX_EXTRA_FORWARD = 2
BACKWARD_CHANCE = 0.4
SKIP_CHANCE = 0.2
ULTRA_EARLY_ATTEMPTS = 8
ENRICH_ATTEMPTS = 12
REPAIR_ATTEMPTS = 10
DEFAULT_ZONE_COUNT = 4


@dataclass(frozen=True)
class Zone:
    """A contiguous [lo, hi) slice of the x-axis with preferred positions."""

    index: int
    lo: float
    hi: float
    pool: tuple[float, ...]

    def contains(self, x: float) -> bool:
        return self.lo <= x < self.hi


def build_zones(play_width: float = PLAY_WIDTH, zone_count: int = DEFAULT_ZONE_COUNT) -> list[Zone]:
    """Partition [0, play_width) into *zone_count* equal zones.

    Each zone's pool holds the evenly spaced layout columns that fall in it
    plus the zone midpoint, clipped to the placeable range.
    """
    zone_count = max(1, zone_count)
    width = play_width / zone_count
    columns = [
        round(play_width / (POOL_COLUMNS + 1) * (col + 1))
        for col in range(POOL_COLUMNS)
    ]
    lo_limit = ULTRA_EARLY_MIN_X
    hi_limit = play_width - RIGHT_MARGIN
    zones = []
    for i in range(zone_count):
        lo, hi = i * width, (i + 1) * width
        pool = sorted({
            float(x) for x in columns + [round(lo + width / 2)]
            if lo <= x < hi and lo_limit <= x < hi_limit
        })
        zones.append(Zone(index=i, lo=lo, hi=hi, pool=tuple(pool)))
    return zones


class LayoutGenerator:
    """Builds a Layout for an active track set.  Holds only configuration."""

    def __init__(
        self,
        play_width: float = PLAY_WIDTH,
        zone_count: int = DEFAULT_ZONE_COUNT,
    ) -> None:
        self.play_width = play_width
        self.zones = build_zones(play_width, zone_count)
        self._hi_limit = play_width - RIGHT_MARGIN

    # -- Public API ---------------------------------------------------------

    def generate(
        self,
        tracks: Iterable[str],
        rng: RandomSource,
        stop_duration_multiplier: float = 1.0,
    ) -> Layout:
        """Generate a Layout over *tracks* using *rng*.

        Raises ConfigurationInconsistencyError for an empty or unknown
        track set.  Never raises otherwise.
        """
        names = validate_tracks(tracks)
        state = Placement(tracks=names)

        state = self._force_ultra_early_forward(state, rng)
        state = self._add_extra_forward(state, rng)
        state = self._add_backward(state, rng)
        state = self._add_skips(state, rng)
        state = self._repair_empty_tracks(state, rng)
        state = self._repair_ultra_early(state, rng)
        state = self._place_stops(state, rng, stop_duration_multiplier)
        state = self._repair_empty_zones(state, rng)

        layout = state.to_layout()
        logger.debug(f"Switch distribution per track: {layout.switch_counts()}")
        logger.debug(
            f"Layout generated: {len(layout.connections)} switches, "
            f"{len(layout.stops)} stops, {len(layout.repairs)} repairs"
        )
        return layout

    # -- Constraint helpers -------------------------------------------------

    def _fits(self, state: Placement, source: str, target: str, x: float, relax: float = 0.0) -> bool:
        """Spacing + round-trip check.  *relax* in [0, 1] scales crowding down."""
        crowding = CROWDING_SPACING * max(0.0, 1.0 - relax)
        return (
            state.spacing_ok(source, x, MIN_SWITCH_SPACING, crowding)
            and not state.conflicts(source, target, x, BIDIRECTIONAL_TOLERANCE)
        )

    def _forced_x(self, state: Placement, source: str, target: str,
                  lo: float, hi: float, rng: RandomSource) -> float:
        x = float(math.floor(rng.uniform(lo, hi)))
        x = min(max(x, math.ceil(lo)), math.ceil(hi) - 1)
        return state.clear_of_conflict(source, target, x, lo, hi, BIDIRECTIONAL_TOLERANCE)

    def _preferred_x(self, rng: RandomSource) -> float:
        zone = rng.choice([z for z in self.zones if z.pool] or self.zones)
        if zone.pool:
            x = rng.choice(zone.pool) + rng.uniform(-POOL_JITTER, POOL_JITTER)
        else:
            x = rng.uniform(zone.lo, zone.hi)
        lo = math.ceil(max(zone.lo, ULTRA_EARLY_MIN_X))
        hi = min(zone.hi, self._hi_limit) - 1
        return min(max(x, lo), hi)

    def _escape_targets(self, tracks: tuple[str, ...], track: str) -> list[str]:
        """Adjacent lanes a switch on *track* may lead to.

        Falls back to the neighbouring lanes of the full track table when
        the active set holds a single track.
        """
        order = tracks if len(tracks) > 1 else tuple(TRACK_OFFSETS)
        i = order.index(track)
        return [order[j] for j in (i - 1, i + 1) if 0 <= j < len(order)]

    def _ultra_early(
        self, state: Placement, source: str, target: str, rng: RandomSource,
        attempts: int = ULTRA_EARLY_ATTEMPTS,
    ) -> Placement:
        """Place a switch in the ultra-early band, relaxing crowding per attempt."""
        lo, hi = ULTRA_EARLY_MIN_X, ULTRA_EARLY_X
        last = max(1, attempts - 1)
        state, _ = place_with_fallback(
            state, source, target,
            propose=lambda attempt: rng.uniform(lo, hi),
            accept=lambda st, x, attempt: lo <= x < hi and self._fits(st, source, target, x, attempt / last),
            attempts=attempts,
            fallback=lambda st: self._forced_x(st, source, target, lo, hi, rng),
        )
        return state

    def _optional(self, state: Placement, source: str, target: str, rng: RandomSource) -> Placement:
        """Place an enrichment switch at a zone-preferred position, or drop it."""
        state, _ = place_with_fallback(
            state, source, target,
            propose=lambda attempt: self._preferred_x(rng),
            accept=lambda st, x, attempt: self._fits(st, source, target, x),
            attempts=ENRICH_ATTEMPTS,
        )
        return state

    # -- Passes -------------------------------------------------------------

    def _force_ultra_early_forward(self, state: Placement, rng: RandomSource) -> Placement:
        tracks = state.tracks
        for i in range(len(tracks) - 1):
            state = self._ultra_early(state, tracks[i], tracks[i + 1], rng)
        return state

    def _add_extra_forward(self, state: Placement, rng: RandomSource) -> Placement:
        tracks = state.tracks
        for i in range(len(tracks) - 1):
            for _ in range(rng.randint(0, MAX_EXTRA_FORWARD)):
                state = self._optional(state, tracks[i], tracks[i + 1], rng)
        return state

    def _add_backward(self, state: Placement, rng: RandomSource) -> Placement:
        """Backward switches; tracks still missing an ultra-early switch come first."""
        tracks = state.tracks
        for i in range(1, len(tracks)):
            source, target = tracks[i], tracks[i - 1]
            if not state.has_connection_below(source, ULTRA_EARLY_X):
                state = self._ultra_early(state, source, target, rng)
            elif rng.random() < BACKWARD_CHANCE:
                state = self._optional(state, source, target, rng)
        return state

    def _add_skips(self, state: Placement, rng: RandomSource) -> Placement:
        tracks = state.tracks
        for i in range(len(tracks) - 2):
            if rng.random() < SKIP_CHANCE:
                state = self._optional(state, tracks[i], tracks[i + 2], rng)
        return state

    def _repair_empty_tracks(self, state: Placement, rng: RandomSource) -> Placement:
        for track in state.tracks:
            if state.count(track) > 0:
                continue
            target = rng.choice(self._escape_targets(state.tracks, track))
            lo, hi = ULTRA_EARLY_MIN_X, self._hi_limit
            state, conn = place_with_fallback(
                state, track, target,
                propose=lambda attempt: rng.uniform(lo, hi),
                accept=lambda st, x, attempt: self._fits(st, track, target, x),
                attempts=REPAIR_ATTEMPTS,
                fallback=lambda st: self._forced_x(st, track, target, ULTRA_EARLY_MIN_X, ULTRA_EARLY_X, rng),
            )
            state = state.note_repair(f"{track} had no switches; added {conn.id} at x={conn.x:.0f}")
        return state

    def _repair_ultra_early(self, state: Placement, rng: RandomSource) -> Placement:
        for track in state.tracks:
            if state.has_connection_below(track, ULTRA_EARLY_X):
                continue
            target = rng.choice(self._escape_targets(state.tracks, track))
            state = self._ultra_early(state, track, target, rng, attempts=REPAIR_ATTEMPTS)
            state = state.note_repair(f"{track} had no ultra-early switch; added {state.connections[-1].id}")
        return state

    def _place_stops(self, state: Placement, rng: RandomSource, duration_multiplier: float) -> Placement:
        """Stops at fixed fractions of the play width, each reachable by a switch."""
        for fraction in STOP_FRACTIONS:
            stop_x = float(round(self.play_width * fraction))
            limit = stop_x - MIN_SWITCH_TO_STOP
            track = rng.choice(state.tracks)

            if not state.has_connection_at_most(track, limit):
                candidates = list(state.tracks)
                rng.shuffle(candidates)
                rehomed: Optional[str] = next(
                    (t for t in candidates if state.has_connection_at_most(t, limit)), None,
                )
                if rehomed is not None:
                    track = rehomed
                else:
                    target = rng.choice(self._escape_targets(state.tracks, track))
                    lo = max(ULTRA_EARLY_MIN_X, limit - EMERGENCY_JITTER)
                    x = self._forced_x(state, track, target, lo, limit + 1, rng)
                    state, conn = state.add(track, target, x, forced=True)
                    state = state.note_repair(
                        f"stop at x={stop_x:.0f} on {track} unreachable; added {conn.id} at x={conn.x:.0f}"
                    )

            duration = rng.uniform(STOP_BASE_MIN_MS, STOP_BASE_MAX_MS) * duration_multiplier
            state = state.add_stop(track, stop_x, duration)
        return state

    def _repair_empty_zones(self, state: Placement, rng: RandomSource) -> Placement:
        for zone in self.zones:
            if state.in_range(zone.lo, zone.hi):
                continue
            track = rng.choice(state.tracks)
            target = rng.choice(self._escape_targets(state.tracks, track))
            lo = math.ceil(max(zone.lo, ULTRA_EARLY_MIN_X))
            hi = min(zone.hi, self._hi_limit)
            if hi <= lo:
                lo, hi = math.ceil(zone.lo), zone.hi
            state, conn = place_with_fallback(
                state, track, target,
                propose=lambda attempt: rng.uniform(lo, hi),
                accept=lambda st, x, attempt: lo <= x < hi and self._fits(st, track, target, x),
                attempts=REPAIR_ATTEMPTS,
                fallback=lambda st: self._forced_x(st, track, target, lo, hi, rng),
            )
            state = state.note_repair(f"zone {zone.index} was empty; added {conn.id} at x={conn.x:.0f}")
        return state


def generate_layout(
    tracks: Iterable[str],
    rng: RandomSource,
    stop_duration_multiplier: float = 1.0,
    zone_count: int = DEFAULT_ZONE_COUNT,
    play_width: float = PLAY_WIDTH,
) -> Layout:
    """Convenience wrapper: one-shot generation with default geometry."""
    generator = LayoutGenerator(play_width=play_width, zone_count=zone_count)
    return generator.generate(tracks, rng, stop_duration_multiplier)
