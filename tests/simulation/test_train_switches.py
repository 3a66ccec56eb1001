"""Unit tests for Train movement and the SwitchBoard."""

from __future__ import annotations

import pytest

from switchyard.simulation.layout import Connection, Layout, Stop
from switchyard.simulation.switches import SwitchBoard, SwitchState
from switchyard.simulation.tracks import EXIT_X
from switchyard.simulation.train import Train

pytestmark = pytest.mark.unit


def _train(track: str = "track2", x: float = 0.0, speed: float = 100.0) -> Train:
    return Train(train_id="t1", track=track, x=x, speed=speed, variant=speed)


class TestTrain:
    def test_moves_forward(self):
        train = _train(x=0, speed=100)
        train.tick(0.5)
        assert train.x == pytest.approx(50)

    def test_exits_past_right_edge(self):
        train = _train(x=EXIT_X - 1, speed=100)
        train.tick(0.1)
        assert train.status == "exited"

    def test_exited_train_frozen(self):
        train = _train(x=EXIT_X + 10)
        train.status = "exited"
        train.tick(1.0)
        assert train.x == EXIT_X + 10

    def test_halt_counts_down_then_resumes(self):
        train = _train(x=480)
        train.halt(Stop("stop1", "track2", 480, 1000))
        assert train.is_halted
        train.tick(0.6)
        assert train.x == 480
        assert train.is_halted
        train.tick(0.6)
        assert train.status == "running"
        assert train.stop_remaining_ms == 0
        train.tick(0.1)
        assert train.x == pytest.approx(490)

    def test_halt_records_visit(self):
        train = _train()
        train.halt(Stop("stop2", "track2", 720, 500))
        assert "stop2" in train.visited_stops

    def test_divert(self):
        train = _train()
        train.divert(Connection("switch1", "track2", "track3", 100))
        assert train.track == "track3"
        assert "switch1" in train.used_switches

    def test_speed_multiplier_uses_variant(self):
        train = Train("t1", "track2", 0, speed=115, variant=100)
        train.apply_speed_multiplier(1.3)
        assert train.speed == pytest.approx(130)

    def test_overlap_same_track_only(self):
        a = _train("track2", 300)
        b = Train("t2", "track2", 340, 100, 100)
        c = Train("t3", "track3", 300, 100, 100)
        assert a.overlaps(b)
        assert not a.overlaps(c)
        assert not a.overlaps(a)

    def test_no_overlap_one_length_apart(self):
        a = _train("track2", 300)
        b = Train("t2", "track2", 360, 100, 100)
        assert not a.overlaps(b)

    def test_to_dict(self):
        d = _train(x=12.34).to_dict()
        assert d == {"train_id": "t1", "track": "track2", "x": 12.3, "speed": 100.0, "status": "running"}


class TestSwitchBoard:
    def _board(self) -> tuple[SwitchBoard, Connection]:
        conn = Connection("switch1", "track2", "track3", 100)
        layout = Layout(tracks=("track2", "track3"), connections=(conn,))
        return SwitchBoard(layout), conn

    def test_switches_start_straight(self):
        board, _ = self._board()
        assert board.state("switch1") is SwitchState.STRAIGHT
        assert board.connected() == []

    def test_toggle_flips(self):
        board, _ = self._board()
        assert board.toggle("switch1") is SwitchState.CONNECTED
        assert board.connected() == ["switch1"]
        assert board.toggle("switch1") is SwitchState.STRAIGHT

    def test_toggle_unknown_raises(self):
        board, _ = self._board()
        with pytest.raises(KeyError):
            board.toggle("switch99")

    def test_target_track_follows_state(self):
        board, conn = self._board()
        assert board.target_track(conn, "track2") == "track2"
        board.toggle("switch1")
        assert board.target_track(conn, "track2") == "track3"

    def test_switch_is_unidirectional(self):
        board, conn = self._board()
        board.toggle("switch1")
        assert board.target_track(conn, "track3") == "track3"

    def test_state_serialises_as_string(self):
        assert SwitchState.CONNECTED.value == "connected"
