"""Train — a single agent moving along the tracks.

Architecture
------------
Train is a flat dataclass, like every other piece of simulation state:
the tick loop owns the list and mutates it; the spawn arbiter only reads
``track``, ``x`` and ``speed``.

``speed`` is the effective cruising speed in px/s (variant x the current
speed multiplier).  A halted train keeps its cruising speed so admission
arithmetic sees the speed it will resume at.

Lifecycle:
    running -> stopped (at a stop, for its duration) -> running -> exited
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .layout import Connection, Stop
from .tracks import EXIT_X, TRAIN_LENGTH


@dataclass
class Train:
    train_id: str
    track: str
    x: float
    speed: float                # effective px/s
    variant: float              # base speed variant before the multiplier
    status: str = "running"     # "running", "stopped", "exited"
    stop_remaining_ms: float = 0.0
    scored: bool = False
    visited_stops: set[str] = field(default_factory=set)
    used_switches: set[str] = field(default_factory=set)

    @property
    def is_halted(self) -> bool:
        return self.status == "stopped"

    def tick(self, dt: float) -> None:
        """Advance *dt* seconds: count down a stop or move forward."""
        if self.status == "exited":
            return
        if self.status == "stopped":
            self.stop_remaining_ms -= dt * 1000.0
            if self.stop_remaining_ms <= 0:
                self.stop_remaining_ms = 0.0
                self.status = "running"
            return
        self.x += self.speed * dt
        if self.x > EXIT_X:
            self.status = "exited"

    def halt(self, stop: Stop) -> None:
        """Stop here for ``stop.duration`` ms.  Each stop is honoured once."""
        self.visited_stops.add(stop.id)
        self.status = "stopped"
        self.stop_remaining_ms = stop.duration

    def divert(self, conn: Connection) -> None:
        self.used_switches.add(conn.id)
        self.track = conn.target

    def apply_speed_multiplier(self, multiplier: float) -> None:
        self.speed = self.variant * multiplier

    def overlaps(self, other: Train) -> bool:
        """Same track and bodies within one train length of each other."""
        return (
            self is not other
            and self.track == other.track
            and abs(self.x - other.x) < TRAIN_LENGTH
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "train_id": self.train_id,
            "track": self.track,
            "x": round(self.x, 1),
            "speed": self.speed,
            "status": self.status,
        }
