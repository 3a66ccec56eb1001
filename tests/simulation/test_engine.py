"""Tests for RailSimulation — tick phases, progression, and published events."""

from __future__ import annotations

import random

import pytest

from switchyard.comms.event_bus import EventBus, drain
from switchyard.simulation.engine import RailSimulation
from switchyard.simulation.layout import Connection, Layout, Stop
from switchyard.simulation.switches import SwitchBoard, SwitchState
from switchyard.simulation.tracks import EXIT_X, SPAWN_X
from switchyard.simulation.train import Train

pytestmark = pytest.mark.unit

TRACKS = ("track2", "track3", "track4")


def _layout(stops: tuple[Stop, ...] = ()) -> Layout:
    return Layout(
        tracks=TRACKS,
        connections=(
            Connection("switch1", "track2", "track3", 100),
            Connection("switch2", "track3", "track4", 120),
            Connection("switch3", "track4", "track3", 180),
        ),
        stops=stops,
    )


def _install(sim: RailSimulation, layout: Layout, *trains: Train) -> None:
    """Swap in a hand-built layout and train set; hold off the next spawn."""
    sim._layout = layout
    sim._switches = SwitchBoard(layout)
    sim._trains = list(trains)
    sim._since_spawn_ms = 0.0


def _train(train_id: str, track: str, x: float, speed: float = 100.0) -> Train:
    return Train(train_id=train_id, track=track, x=x, speed=speed, variant=speed)


def _types(msgs: list[dict]) -> list[str]:
    return [m["type"] for m in msgs]


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def sim(bus):
    return RailSimulation(event_bus=bus, rng=random.Random(7))


class TestLevelLifecycle:
    def test_initial_level(self, sim):
        assert sim.tier == 0
        assert sim.active_tracks == TRACKS
        assert sim.status == "running"
        assert sim.trains == []

    def test_level_loaded_published(self, bus):
        q = bus.subscribe()
        RailSimulation(event_bus=bus, rng=random.Random(1))
        msg = drain(q)[0]
        assert msg["type"] == "level_loaded"
        assert msg["data"]["tier"] == 0
        assert set(msg["data"]["layout"]) == {"tracks", "connections", "stops"}

    def test_starting_score_selects_tier(self):
        sim = RailSimulation(rng=random.Random(1), score=300)
        assert sim.tier == 1
        assert len(sim.active_tracks) == 5

    def test_restart_resets(self, sim):
        sim.score = 500
        sim.status = "game_over"
        sim.restart()
        assert sim.score == 0
        assert sim.status == "running"
        assert sim.tier == 0

    def test_trains_property_is_copy(self, sim):
        sim.tick(0.016)
        sim.trains.clear()
        assert len(sim.trains) == 1


class TestSpawning:
    def test_first_tick_spawns(self, sim, bus):
        q = bus.subscribe(["train_spawned"])
        sim.tick(0.016)
        trains = sim.trains
        assert len(trains) == 1
        assert trains[0].x == SPAWN_X
        assert trains[0].track in sim.active_tracks
        assert _types(drain(q)) == ["train_spawned"]

    def test_waits_for_interval(self, sim):
        sim.tick(0.016)
        sim.tick(0.016)
        assert len(sim.trains) == 1

    def test_spawn_speed_is_a_variant(self, sim):
        sim.tick(0.016)
        train = sim.trains[0]
        assert train.variant in (80, 100, 120, 140)
        assert train.speed == pytest.approx(train.variant * sim.speed_multiplier)

    def test_spawn_interval_follows_score(self):
        sim = RailSimulation(rng=random.Random(1), base_spawn_interval_ms=3000, score=100)
        assert sim.spawn_interval_ms == pytest.approx(3000 * 0.8 * 0.8)


class TestSwitching:
    def test_toggle_publishes(self, sim, bus):
        _install(sim, _layout())
        q = bus.subscribe(["switch_toggled"])
        assert sim.toggle_switch("switch1") is SwitchState.CONNECTED
        assert drain(q)[0]["data"] == {
            "id": "switch1", "state": "connected", "source": "track2", "target": "track3",
        }
        assert sim.switch_state("switch1") is SwitchState.CONNECTED

    def test_toggle_unknown_raises(self, sim):
        with pytest.raises(KeyError):
            sim.toggle_switch("switch999")

    def test_connected_switch_diverts(self, sim, bus):
        _install(sim, _layout(), _train("a", "track2", 95))
        sim.toggle_switch("switch1")
        q = bus.subscribe(["train_diverted"])
        sim.tick(0.01)
        assert sim.trains[0].track == "track3"
        assert drain(q)[0]["data"]["to"] == "track3"

    def test_straight_switch_passes_through(self, sim):
        _install(sim, _layout(), _train("a", "track2", 95))
        sim.tick(0.01)
        assert sim.trains[0].track == "track2"

    def test_diversions_chain(self, sim):
        _install(sim, _layout(), _train("a", "track2", 95))
        sim.toggle_switch("switch1")
        sim.toggle_switch("switch2")
        sim.tick(0.01)
        assert sim.trains[0].track == "track3"
        # One diversion per train per tick
        sim.tick(0.01)
        assert sim.trains[0].track == "track4"
        assert sim.trains[0].used_switches == {"switch1", "switch2"}

    def test_used_switch_not_taken_twice(self, sim):
        layout = Layout(
            tracks=TRACKS,
            connections=(
                Connection("switch1", "track2", "track3", 100),
                Connection("switch2", "track3", "track2", 110),
            ),
        )
        _install(sim, layout, _train("a", "track2", 95))
        sim.toggle_switch("switch1")
        sim.toggle_switch("switch2")
        for _ in range(3):
            sim.tick(0.01)
        assert sim.trains[0].track == "track2"
        assert sim.trains[0].used_switches == {"switch1", "switch2"}


class TestStops:
    def test_train_halts_at_stop(self, sim, bus):
        layout = _layout(stops=(Stop("stop1", "track2", 480, 1000),))
        _install(sim, layout, _train("a", "track2", 470))
        q = bus.subscribe(["train_stopped"])
        sim.tick(0.01)
        x = sim.trains[0].x
        assert sim.trains[0].is_halted
        assert drain(q)[0]["data"]["stop"] == "stop1"
        sim.tick(0.5)
        assert sim.trains[0].x == x

    def test_stop_on_other_track_ignored(self, sim):
        layout = _layout(stops=(Stop("stop1", "track3", 480, 1000),))
        _install(sim, layout, _train("a", "track2", 470))
        sim.tick(0.01)
        assert not sim.trains[0].is_halted


class TestCollisions:
    def test_overlap_ends_game(self, sim, bus):
        _install(sim, _layout(), _train("a", "track2", 300), _train("b", "track2", 330))
        q = bus.subscribe(["collision"])
        sim.tick(0.01)
        assert sim.status == "game_over"
        assert set(drain(q)[0]["data"]["trains"]) == {"a", "b"}

    def test_ticks_after_game_over_are_noops(self, sim):
        _install(sim, _layout(), _train("a", "track2", 300), _train("b", "track2", 330))
        sim.tick(0.01)
        positions = [t.x for t in sim.trains]
        sim.tick(1.0)
        assert [t.x for t in sim.trains] == positions

    def test_different_tracks_do_not_collide(self, sim):
        _install(sim, _layout(), _train("a", "track2", 300), _train("b", "track3", 300))
        sim.tick(0.01)
        assert sim.status == "running"


class TestScoring:
    def test_crossing_score_line_awards_points(self, sim, bus):
        _install(sim, _layout(), _train("a", "track2", 1075))
        q = bus.subscribe(["train_scored"])
        sim.tick(0.1)
        assert sim.score == RailSimulation.SCORE_PER_TRAIN
        assert len(drain(q)) == 1

    def test_scored_once(self, sim):
        _install(sim, _layout(), _train("a", "track2", 1075))
        sim.tick(0.1)
        sim.tick(0.1)
        assert sim.score == 10

    def test_exited_trains_removed(self, sim):
        _install(sim, _layout(), _train("a", "track2", EXIT_X - 1))
        sim.tick(0.1)
        assert sim.trains == []
        assert sim.score == 10

    def test_speed_up_rescales_trains(self, bus):
        sim = RailSimulation(event_bus=bus, rng=random.Random(2), score=40)
        _install(sim, _layout(), _train("a", "track2", 1075), _train("b", "track3", 500))
        q = bus.subscribe(["speed_up"])
        sim.tick(0.1)
        assert sim.score == 50
        assert drain(q)[0]["data"]["speed_level"] == 1
        slow = next(t for t in sim.trains if t.train_id == "b")
        assert slow.speed == pytest.approx(115)

    def test_tier_up_reloads_level(self, bus):
        sim = RailSimulation(event_bus=bus, rng=random.Random(3), score=220)
        _install(sim, _layout(), _train("a", "track2", 1075), _train("b", "track3", 500))
        q = bus.subscribe()
        sim.tick(0.1)
        assert sim.tier == 1
        assert len(sim.active_tracks) == 5
        assert sim.trains == []
        types = _types(drain(q))
        assert types.index("tier_up") < types.index("level_loaded")


class TestRun:
    def test_run_reports_summary(self):
        sim = RailSimulation(rng=random.Random(4))
        result = sim.run(3.0, dt=0.05)
        assert set(result) == {"elapsed", "score", "tier", "status", "trains"}
        assert result["status"] in ("running", "game_over")
        assert result["elapsed"] <= 3.05

    def test_run_stops_on_game_over(self):
        sim = RailSimulation(rng=random.Random(4))
        _install(sim, _layout(), _train("a", "track2", 300), _train("b", "track2", 330))
        result = sim.run(10.0, dt=0.1)
        assert result["status"] == "game_over"
        assert result["elapsed"] == pytest.approx(0.1)
