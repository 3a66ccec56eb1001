"""RailSimulation — single-threaded tick loop owning trains and the Layout.

Architecture
------------
The engine is the only writer of simulation state.  Each ``tick(dt)``
runs, in a fixed order:

  1. train movement        — every train advances or counts down its stop
  2. switch hit-testing    — a train on a switch's source track within
                             SWITCH_HIT_RANGE of a *connected* switch is
                             diverted onto its target (once per switch)
  3. stop hit-testing      — a train on a stop's track within
                             STOP_HIT_RANGE halts for the stop's duration
  4. collision check       — two trains overlapping on one track end the
                             game; later ticks are no-ops until restart()
  5. scoring/progression   — +10 per train crossing 90% of the width;
                             speed level-ups rescale every train, tier-ups
                             reload the level
  6. exit cleanup          — trains past the right edge are dropped
  7. spawning              — on the spawn interval, the SpawnArbiter is
                             asked for the first admissible shuffled track

Nothing suspends or blocks.  The Layout is regenerated only in
``load_level()`` (start, restart, tier-up) and is passed explicitly to the
arbiter each tick; there is no shared "current layout" lookup.

Data flow:
  Engine --(events)--> EventBus --> renderer / UI / tests
"""

from __future__ import annotations

import uuid
from typing import Any, Iterable, Optional, TYPE_CHECKING

from loguru import logger

from . import level_policy
from .layout import Layout
from .layout_gen import LayoutGenerator
from .rng import RandomSource, make_rng
from .spawn_arbiter import SpawnArbiter, SpawnPlan
from .switches import SwitchBoard, SwitchState
from .tracks import (
    PLAY_WIDTH,
    SPAWN_X,
    SPEED_VARIANTS,
    STOP_HIT_RANGE,
    SWITCH_HIT_RANGE,
)
from .train import Train

if TYPE_CHECKING:
    from switchyard.comms.event_bus import EventBus


class RailSimulation:
    """Drives trains across the current level and arbitrates new spawns."""

    SCORE_PER_TRAIN = 10
    SCORE_LINE = PLAY_WIDTH * 0.9

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        rng: Optional[RandomSource] = None,
        base_spawn_interval_ms: float | None = None,
        zone_count: int | None = None,
        speed_variants: Iterable[float] = SPEED_VARIANTS,
        score: int = 0,
    ) -> None:
        from switchyard.config import settings

        self._event_bus = event_bus
        self._rng = rng if rng is not None else make_rng(settings.seed)
        self.base_spawn_interval_ms = (
            base_spawn_interval_ms if base_spawn_interval_ms is not None
            else settings.base_spawn_interval_ms
        )
        self._generator = LayoutGenerator(
            zone_count=zone_count if zone_count is not None else settings.zone_count,
        )
        self._arbiter = SpawnArbiter(
            self._rng,
            speed_variants=speed_variants,
            spawn_x=SPAWN_X,
            coverage_ratio=settings.coverage_ratio,
            throttle_pass_ratio=settings.throttle_pass_ratio,
        )

        self.score = score
        self.status = "running"  # "running", "game_over"
        self._trains: list[Train] = []
        self._speed_level = level_policy.get_speed_level(score)
        self._tier = level_policy.get_game_level(score)
        self._since_spawn_ms = 0.0
        self._layout: Layout
        self._switches: SwitchBoard
        self.load_level()

    # -- Read access ---------------------------------------------------------

    @property
    def layout(self) -> Layout:
        return self._layout

    @property
    def trains(self) -> list[Train]:
        return list(self._trains)

    @property
    def tier(self) -> int:
        return self._tier

    @property
    def active_tracks(self) -> tuple[str, ...]:
        return self._layout.tracks

    @property
    def speed_multiplier(self) -> float:
        return level_policy.calculate_speed_multiplier(self.score)

    @property
    def spawn_interval_ms(self) -> float:
        return level_policy.calculate_level_spawn_interval(self.score, self.base_spawn_interval_ms)

    @property
    def arbiter(self) -> SpawnArbiter:
        return self._arbiter

    def switch_state(self, connection_id: str) -> SwitchState:
        return self._switches.state(connection_id)

    # -- Level lifecycle -----------------------------------------------------

    def load_level(self) -> Layout:
        """Discard trains and layout, then rebuild both for the current score."""
        self._tier = level_policy.get_game_level(self.score)
        tracks = level_policy.get_available_tracks(self.score)
        self._layout = self._generator.generate(
            tracks, self._rng, level_policy.stop_duration_multiplier(self.score),
        )
        self._switches = SwitchBoard(self._layout)
        self._trains = []
        # First spawn happens on the very next tick
        self._since_spawn_ms = self.spawn_interval_ms
        logger.info(
            f"Level loaded: tier {self._tier} ({level_policy.TIER_NAMES[self._tier]}), "
            f"{len(tracks)} tracks, {len(self._layout.connections)} switches"
        )
        self._publish("level_loaded", {
            "tier": self._tier,
            "score": self.score,
            "layout": self._layout.to_dict(),
        })
        return self._layout

    def restart(self) -> None:
        self.score = 0
        self.status = "running"
        self._speed_level = 0
        self.load_level()

    def toggle_switch(self, connection_id: str) -> SwitchState:
        """Operator action.  Raises KeyError for an unknown switch id."""
        state = self._switches.toggle(connection_id)
        conn = self._layout.get_connection(connection_id)
        self._publish("switch_toggled", {
            "id": connection_id,
            "state": state.value,
            "source": conn.source,
            "target": conn.target,
        })
        return state

    # -- Tick ----------------------------------------------------------------

    def tick(self, dt: float) -> None:
        if self.status == "game_over":
            return

        for train in self._trains:
            train.tick(dt)

        self._check_switches()
        self._check_stops()

        if self._check_collisions():
            return

        if self._update_score():
            return  # tier-up reloaded the level

        self._trains = [t for t in self._trains if t.status != "exited"]
        self._spawn_tick(dt)

    def run(self, seconds: float, dt: float = 1.0 / 60.0) -> dict[str, Any]:
        """Tick for *seconds* of simulated time or until game over."""
        elapsed = 0.0
        while elapsed < seconds and self.status != "game_over":
            self.tick(dt)
            elapsed += dt
        return {
            "elapsed": round(elapsed, 3),
            "score": self.score,
            "tier": self._tier,
            "status": self.status,
            "trains": len(self._trains),
        }

    # -- Tick phases ---------------------------------------------------------

    def _check_switches(self) -> None:
        for train in self._trains:
            if train.status == "exited":
                continue
            for conn in self._layout.connections:
                if conn.id in train.used_switches or conn.source != train.track:
                    continue
                if abs(train.x - conn.x) >= SWITCH_HIT_RANGE:
                    continue
                new_track = self._switches.target_track(conn, train.track)
                if new_track != train.track:
                    old = train.track
                    train.divert(conn)
                    self._publish("train_diverted", {
                        "train_id": train.train_id, "switch": conn.id,
                        "from": old, "to": new_track,
                    })
                    break

    def _check_stops(self) -> None:
        for train in self._trains:
            if train.status != "running":
                continue
            for stop in self._layout.stops:
                if stop.id in train.visited_stops or stop.track != train.track:
                    continue
                if abs(train.x - stop.x) < STOP_HIT_RANGE:
                    train.halt(stop)
                    self._publish("train_stopped", {
                        "train_id": train.train_id, "stop": stop.id, "duration": stop.duration,
                    })
                    break

    def _check_collisions(self) -> bool:
        live = [t for t in self._trains if t.status != "exited"]
        for i, a in enumerate(live):
            for b in live[i + 1:]:
                if a.overlaps(b):
                    self.status = "game_over"
                    logger.info(f"Collision on {a.track} at x={a.x:.0f}; final score {self.score}")
                    self._publish("collision", {
                        "track": a.track,
                        "trains": [a.train_id, b.train_id],
                        "score": self.score,
                    })
                    return True
        return False

    def _update_score(self) -> bool:
        """Award points and apply progression.  Returns True if the level reloaded."""
        for train in self._trains:
            if train.scored or train.x <= self.SCORE_LINE:
                continue
            train.scored = True
            self.score += self.SCORE_PER_TRAIN
            self._publish("train_scored", {"train_id": train.train_id, "score": self.score})

        speed_level = level_policy.get_speed_level(self.score)
        if speed_level > self._speed_level:
            self._speed_level = speed_level
            multiplier = self.speed_multiplier
            for train in self._trains:
                train.apply_speed_multiplier(multiplier)
            logger.debug(f"Speed level {speed_level}: x{multiplier:.2f}, interval {self.spawn_interval_ms:.0f}ms")
            self._publish("speed_up", {
                "speed_level": speed_level,
                "multiplier": multiplier,
                "spawn_interval_ms": self.spawn_interval_ms,
            })

        tier = level_policy.get_game_level(self.score)
        if tier > self._tier:
            logger.info(f"Tier up: {self._tier} -> {tier} at score {self.score}")
            self._publish("tier_up", {"from": self._tier, "to": tier, "score": self.score})
            self.load_level()
            return True
        return False

    def _spawn_tick(self, dt: float) -> Optional[Train]:
        self._since_spawn_ms += dt * 1000.0
        if self._since_spawn_ms < self.spawn_interval_ms:
            return None
        self._since_spawn_ms = 0.0
        plan = self._arbiter.choose_spawn(
            self._layout, self._trains, self._layout.tracks, self.speed_multiplier,
        )
        if plan is None:
            return None
        return self._spawn(plan)

    def _spawn(self, plan: SpawnPlan) -> Train:
        train = Train(
            train_id=str(uuid.uuid4()),
            track=plan.track,
            x=SPAWN_X,
            speed=plan.decision.effective_speed,
            variant=plan.decision.speed,
        )
        self._trains.append(train)
        self._publish("train_spawned", train.to_dict())
        return train

    def _publish(self, event_type: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event_type, data)
