"""Unit tests for the level policy — tiers, track sets, pacing curves."""

from __future__ import annotations

import pytest

from switchyard.simulation.level_policy import (
    MAX_SPEED_MULTIPLIER,
    MIN_SPAWN_INTERVAL_MS,
    TIER1_POINTS,
    TIER2_POINTS,
    calculate_level_spawn_interval,
    calculate_spawn_interval,
    calculate_speed_multiplier,
    calculate_stop_duration,
    get_available_tracks,
    get_game_level,
    get_speed_level,
    stop_duration_multiplier,
)

pytestmark = pytest.mark.unit


class TestGameLevel:
    @pytest.mark.parametrize("score,tier", [
        (0, 0), (221, 0), (222, 1), (443, 1), (444, 2), (10_000, 2), (-50, 0),
    ])
    def test_tier_thresholds(self, score, tier):
        assert get_game_level(score) == tier

    def test_thresholds_are_ordered(self):
        assert 0 < TIER1_POINTS < TIER2_POINTS


class TestAvailableTracks:
    def test_tier0_three_middle_tracks(self):
        assert get_available_tracks(0) == ["track2", "track3", "track4"]

    def test_tier1_five_tracks(self):
        assert get_available_tracks(TIER1_POINTS) == [
            "track1", "track2", "track3", "track4", "track5",
        ]

    def test_tier2_six_tracks(self):
        assert len(get_available_tracks(TIER2_POINTS)) == 6

    def test_track_sets_only_grow(self):
        previous: set[str] = set()
        for score in range(0, 600, 10):
            current = set(get_available_tracks(score))
            assert previous <= current
            previous = current

    def test_returns_fresh_list(self):
        tracks = get_available_tracks(0)
        tracks.append("track9")
        assert "track9" not in get_available_tracks(0)


class TestSpeedProgression:
    def test_speed_level_steps_every_50(self):
        assert get_speed_level(0) == 0
        assert get_speed_level(49) == 0
        assert get_speed_level(50) == 1
        assert get_speed_level(260) == 5

    def test_multiplier_starts_at_one(self):
        assert calculate_speed_multiplier(0) == 1.0

    def test_multiplier_adds_15_percent_per_level(self):
        assert calculate_speed_multiplier(100) == pytest.approx(1.3)

    def test_multiplier_capped(self):
        assert calculate_speed_multiplier(100_000) == MAX_SPEED_MULTIPLIER

    def test_multiplier_monotonic(self):
        values = [calculate_speed_multiplier(s) for s in range(0, 1000, 25)]
        assert values == sorted(values)


class TestSpawnInterval:
    def test_no_shrink_at_zero(self):
        assert calculate_spawn_interval(0, 3000) == 3000

    def test_geometric_shrink(self):
        assert calculate_spawn_interval(100, 3000) == pytest.approx(3000 * 0.8 * 0.8)

    def test_floored(self):
        assert calculate_spawn_interval(10_000, 3000) == MIN_SPAWN_INTERVAL_MS

    def test_tier2_boost(self):
        base = calculate_spawn_interval(TIER2_POINTS, 50_000)
        assert calculate_level_spawn_interval(TIER2_POINTS, 50_000) == pytest.approx(base * 0.6)

    def test_level_interval_floored(self):
        assert calculate_level_spawn_interval(TIER2_POINTS, 1200) == MIN_SPAWN_INTERVAL_MS

    def test_below_tier2_matches_plain_interval(self):
        assert calculate_level_spawn_interval(100, 3000) == calculate_spawn_interval(100, 3000)


class TestStopDuration:
    def test_unchanged_before_tier2(self):
        assert calculate_stop_duration(1500, 0) == 1500
        assert calculate_stop_duration(1500, TIER1_POINTS) == 1500

    def test_longer_in_tier2(self):
        assert calculate_stop_duration(1000, TIER2_POINTS) == pytest.approx(1800)
        assert stop_duration_multiplier(TIER2_POINTS) == pytest.approx(1.8)
