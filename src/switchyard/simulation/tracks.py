"""Fixed rail geometry shared by the generator, the arbiter and the engine.

Coordinate convention:
    +X = direction of travel (left to right), in screen pixels.
    Each track is a horizontal lane at a fixed Y offset.  Trains enter at
    SPAWN_X (off-screen left) and leave once past PLAY_WIDTH + TRAIN_LENGTH.
"""

from __future__ import annotations

from typing import Iterable

from switchyard.errors import ConfigurationInconsistencyError

PLAY_WIDTH = 1200.0
TRAIN_LENGTH = 60.0
SWITCH_SIZE = 25.0

SPAWN_X = -100.0
EXIT_X = PLAY_WIDTH + TRAIN_LENGTH

# Lane Y offsets, top to bottom.  track6 sits closer to track5 (tier 2 only).
TRACK_OFFSETS: dict[str, float] = {
    "track1": 100.0,
    "track2": 200.0,
    "track3": 300.0,
    "track4": 400.0,
    "track5": 500.0,
    "track6": 580.0,
}

# Discrete train speeds in px/s, slowest first
SPEED_VARIANTS: tuple[float, ...] = (80.0, 100.0, 120.0, 140.0)

# Hit-test ranges used at runtime
SWITCH_HIT_RANGE = 40.0
STOP_HIT_RANGE = 30.0


def track_offset(track: str) -> float:
    """Return the lane Y offset for *track*."""
    try:
        return TRACK_OFFSETS[track]
    except KeyError:
        raise ConfigurationInconsistencyError(f"Unknown track: {track}") from None


def validate_tracks(tracks: Iterable[str]) -> tuple[str, ...]:
    """Normalise an active-track set into lane order.

    Raises ConfigurationInconsistencyError for an empty set or a name that
    is not in TRACK_OFFSETS.  Duplicates are dropped.
    """
    names = list(dict.fromkeys(tracks))
    if not names:
        raise ConfigurationInconsistencyError("Active track set is empty")
    for name in names:
        track_offset(name)
    return tuple(sorted(names, key=lambda t: TRACK_OFFSETS[t]))


def validate_speed_variants(variants: Iterable[float]) -> tuple[float, ...]:
    """Return the variant set sorted slowest first, rejecting empty/non-positive sets."""
    speeds = tuple(sorted(float(v) for v in variants))
    if not speeds:
        raise ConfigurationInconsistencyError("Speed variant set is empty")
    if speeds[0] <= 0:
        raise ConfigurationInconsistencyError(f"Speed variants must be positive: {speeds}")
    return speeds
