"""Level policy — score to tier, active tracks, and pacing curves.

Every function here is pure and total.  Negative scores behave like zero.

Progression has two independent ladders:
  - speed level: one step every POINTS_PER_SPEED_INCREASE points; drives
    the speed multiplier and the geometric spawn-interval shrink.
  - tier (0/1/2): crosses at TIER1_POINTS and TIER2_POINTS; drives the
    active track set, stop duration and an extra spawn-rate boost.
"""

from __future__ import annotations

import math

POINTS_PER_SPEED_INCREASE = 50
SPEED_STEP = 0.15
MAX_SPEED_MULTIPLIER = 2.5
SPAWN_INTERVAL_DECREASE = 0.8
MIN_SPAWN_INTERVAL_MS = 800.0

TIER1_POINTS = 222
TIER2_POINTS = 444
TIER2_STOP_MULTIPLIER = 1.8
TIER2_SPAWN_MULTIPLIER = 0.6

# Active track sets per tier.  Each set contains the previous one.
_TIER_TRACKS: tuple[tuple[str, ...], ...] = (
    ("track2", "track3", "track4"),
    ("track1", "track2", "track3", "track4", "track5"),
    ("track1", "track2", "track3", "track4", "track5", "track6"),
)

TIER_NAMES = ("Beginner", "Basic", "Advanced")


def get_game_level(score: float) -> int:
    """Return the tier index (0, 1 or 2) for *score*."""
    if score >= TIER2_POINTS:
        return 2
    if score >= TIER1_POINTS:
        return 1
    return 0


def get_available_tracks(score: float) -> list[str]:
    """Return the active track names for *score*, top lane first."""
    return list(_TIER_TRACKS[get_game_level(score)])


def get_speed_level(score: float) -> int:
    return max(0, math.floor(score / POINTS_PER_SPEED_INCREASE))


def calculate_speed_multiplier(score: float) -> float:
    """Speed multiplier: +15% per speed level, capped at 2.5x."""
    return min(1.0 + get_speed_level(score) * SPEED_STEP, MAX_SPEED_MULTIPLIER)


def calculate_spawn_interval(score: float, base_interval: float) -> float:
    """Spawn interval shrunk by 20% per speed level, floored at 800 ms."""
    interval = base_interval * SPAWN_INTERVAL_DECREASE ** get_speed_level(score)
    return max(interval, MIN_SPAWN_INTERVAL_MS)


def calculate_level_spawn_interval(score: float, base_interval: float) -> float:
    """Spawn interval including the tier-2 spawn boost."""
    interval = calculate_spawn_interval(score, base_interval)
    if get_game_level(score) >= 2:
        interval *= TIER2_SPAWN_MULTIPLIER
    return max(interval, MIN_SPAWN_INTERVAL_MS)


def stop_duration_multiplier(score: float) -> float:
    return TIER2_STOP_MULTIPLIER if get_game_level(score) >= 2 else 1.0


def calculate_stop_duration(base_duration: float, score: float) -> float:
    """Stop duration in ms; stops last 80% longer from tier 2 on."""
    return base_duration * stop_duration_multiplier(score)
