"""SpawnArbiter — per-tick admission control for new trains.

Given the current Layout, the live trains and a candidate track, decide
whether a new train may enter at SPAWN_X and at what speed.  An admitted
train must never be able to reach an unavoidable collision with the train
ahead of it: either it is no faster than that train, or some switch on its
track is reachable after the operator's minimum click time and still leaves
a reaction window before the two trains would meet.

Decision ladder (first match wins):

  1. No switch on the track at all            -> Deny(no_connections)
  2. No ultra-early switch on the track       -> Deny(no_ultra_early)
  3. Track empty                              -> Admit(random variant)
  4. Gap check against the nearest train ahead:
       gap > required                         -> variants <= 1.5x lead speed
       gap > 0.8x required and switch ahead   -> slowest variant only
       otherwise                              -> Deny(insufficient_gap)
  5. Timing check on each candidate; if none pass, retry with the slowest
     variant alone; if that fails too         -> Deny(timing)
  6. Admit(uniform choice among passing candidates)

A coarse global throttle runs once per tick before any track is tried: if
switch coverage across the active tracks is thin, only a fraction of ticks
get to spawn at all.  The generator already guarantees per-track coverage,
so this is a second line of defence rather than a correctness rule.

The arbiter keeps no state between calls beyond its configuration and rng.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Protocol, Sequence, Union

from loguru import logger

from .layout import Layout
from .layout_gen import ULTRA_EARLY_X
from .rng import RandomSource, make_rng
from .tracks import SPAWN_X, SPEED_VARIANTS, validate_speed_variants, validate_tracks

BASE_SAFE_DISTANCE = 200.0   # px
REACTION_TIME = 3.0          # s, base reaction factor
FAR_SWITCH_PENALTY = 1.0     # s, added when no switch is close ahead of the lead train
REACHABLE_BUFFER = 100.0     # px past the lead train that still counts as "close"
STOP_AHEAD_FACTOR = 1.5
SPEED_CAP_RATIO = 1.5
NEAR_GAP_RATIO = 0.8
MIN_CLICK_FLOOR = 0.5        # s before a switch can realistically be clicked
MIN_REACTION_WINDOW = 2.0    # s between reaching a switch and the collision
COVERAGE_RATIO = 0.8
THROTTLE_PASS_RATIO = 0.3


class TrainView(Protocol):
    """What the arbiter needs to know about a live train."""

    track: str
    x: float
    speed: float


class DenyReason(str, Enum):
    NO_CONNECTIONS = "no_connections"
    NO_ULTRA_EARLY = "no_ultra_early"
    INSUFFICIENT_GAP = "insufficient_gap"
    TIMING = "timing"


@dataclass(frozen=True)
class Admit:
    """Spawn allowed.  ``speed`` is the variant; ``effective_speed`` includes the multiplier."""

    speed: float
    effective_speed: float

    @property
    def admitted(self) -> bool:
        return True


@dataclass(frozen=True)
class Deny:
    reason: DenyReason

    @property
    def admitted(self) -> bool:
        return False


SpawnDecision = Union[Admit, Deny]


@dataclass(frozen=True)
class SpawnPlan:
    track: str
    decision: Admit


class SpawnArbiter:
    """Decides admit/deny + speed for candidate tracks."""

    def __init__(
        self,
        rng: Optional[RandomSource] = None,
        speed_variants: Iterable[float] = SPEED_VARIANTS,
        spawn_x: float = SPAWN_X,
        coverage_ratio: float = COVERAGE_RATIO,
        throttle_pass_ratio: float = THROTTLE_PASS_RATIO,
    ) -> None:
        self._rng = rng if rng is not None else make_rng()
        self.speed_variants = validate_speed_variants(speed_variants)
        self.spawn_x = spawn_x
        self.coverage_ratio = coverage_ratio
        self.throttle_pass_ratio = throttle_pass_ratio

    # -- Global pre-check ---------------------------------------------------

    def coverage_is_thin(self, layout: Layout, tracks: Sequence[str] | None = None) -> bool:
        """True if fewer than 80% of tracks have switches, or switches < 80% of tracks."""
        tracks = list(tracks) if tracks is not None else list(layout.tracks)
        covered = sum(1 for t in tracks if layout.connections_from(t))
        needed = self.coverage_ratio * len(tracks)
        return covered < needed or len(layout.connections) < needed

    def admission_open(self, layout: Layout, tracks: Sequence[str] | None = None) -> bool:
        """Once-per-tick gate.  Thin coverage lets only a fraction of ticks through."""
        if not self.coverage_is_thin(layout, tracks):
            return True
        return self._rng.random() < self.throttle_pass_ratio

    # -- Per-track decision -------------------------------------------------

    def decide(
        self,
        layout: Layout,
        trains: Iterable[TrainView],
        track: str,
        speed_multiplier: float = 1.0,
    ) -> SpawnDecision:
        conns = layout.connections_from(track)
        if not conns:
            return Deny(DenyReason.NO_CONNECTIONS)
        if not any(c.x < ULTRA_EARLY_X for c in conns):
            return Deny(DenyReason.NO_ULTRA_EARLY)

        options = [(v, v * speed_multiplier) for v in self.speed_variants]
        lead = self.nearest_preceding(trains, track)
        if lead is None:
            variant, effective = self._rng.choice(options)
            return Admit(variant, effective)

        required = self.required_gap(layout, track, lead)
        if lead.x > required:
            cap = min(lead.speed * SPEED_CAP_RATIO, options[-1][1])
            candidates = [o for o in options if o[1] <= cap]
        elif layout.connections_ahead(track, lead.x) and lead.x > NEAR_GAP_RATIO * required:
            candidates = [options[0]]
        else:
            return Deny(DenyReason.INSUFFICIENT_GAP)

        passing = [o for o in candidates if self.timing_ok(layout, track, lead, o[1])]
        if not passing:
            if not self.timing_ok(layout, track, lead, options[0][1]):
                return Deny(DenyReason.TIMING)
            passing = [options[0]]

        variant, effective = self._rng.choice(passing)
        return Admit(variant, effective)

    @staticmethod
    def nearest_preceding(trains: Iterable[TrainView], track: str) -> Optional[TrainView]:
        """The train on *track* a new spawn would follow: the rearmost one.

        Trains further ahead are shielded by it; a spawn can only reach them
        by first passing through this one.
        """
        on_track = [t for t in trains if t.track == track]
        if not on_track:
            return None
        return min(on_track, key=lambda t: t.x)

    def required_gap(self, layout: Layout, track: str, lead: TrainView) -> float:
        """Distance the lead train must be past the origin before a spawn behind it."""
        factor = REACTION_TIME
        ahead = layout.connections_ahead(track, lead.x)
        if not ahead or ahead[0].x - lead.x > REACHABLE_BUFFER:
            factor += FAR_SWITCH_PENALTY
        if layout.stops_ahead(track, lead.x):
            factor *= STOP_AHEAD_FACTOR
        return BASE_SAFE_DISTANCE + factor * lead.speed

    def timing_ok(self, layout: Layout, track: str, lead: TrainView, speed: float) -> bool:
        """True if a spawn at *speed* can reach a switch in time to avoid *lead*."""
        if speed <= lead.speed:
            return True
        time_to_collision = (lead.x - self.spawn_x) / (speed - lead.speed)
        for conn in layout.connections_from(track):
            if conn.x <= self.spawn_x:
                continue
            time_to_reach = (conn.x - self.spawn_x) / speed
            if MIN_CLICK_FLOOR <= time_to_reach < time_to_collision - MIN_REACTION_WINDOW:
                return True
        return False

    # -- Tick entry point ---------------------------------------------------

    def choose_spawn(
        self,
        layout: Layout,
        trains: Sequence[TrainView],
        tracks: Iterable[str] | None = None,
        speed_multiplier: float = 1.0,
    ) -> Optional[SpawnPlan]:
        """Try every candidate track in random order; return the first admission."""
        candidates = list(validate_tracks(tracks if tracks is not None else layout.tracks))
        if not self.admission_open(layout, candidates):
            logger.debug("Spawn throttled: thin switch coverage")
            return None
        self._rng.shuffle(candidates)
        for track in candidates:
            decision = self.decide(layout, trains, track, speed_multiplier)
            if decision.admitted:
                return SpawnPlan(track, decision)
            logger.debug(f"Spawn denied on {track}: {decision.reason.value}")
        return None
