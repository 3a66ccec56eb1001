"""Layout — the immutable switch + stop arrangement for one level.

Built once per level (re)load by the layout generator and then passed by
value to every reader: the renderer, train hit-testing and the spawn
arbiter.  Nothing mutates a Layout after generation; a tier-up or restart
builds a new one.

The per-item contract is fixed:
    Connection  {id, source, target, x}
    Stop        {id, track, x, duration}   (duration in ms)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Connection:
    """A directed switch: diverts trains on ``source`` onto ``target`` at ``x``.

    ``forced`` marks connections placed by a fallback step that ignored the
    same-track spacing rule.
    """

    id: str
    source: str
    target: str
    x: float
    forced: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "source": self.source, "target": self.target, "x": self.x}


@dataclass(frozen=True)
class Stop:
    """Trains on ``track`` halting within range of ``x`` wait ``duration`` ms."""

    id: str
    track: str
    x: float
    duration: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "track": self.track, "x": self.x, "duration": self.duration}


@dataclass(frozen=True)
class Layout:
    """Read-only aggregate of connections and stops over the active tracks."""

    tracks: tuple[str, ...]
    connections: tuple[Connection, ...] = ()
    stops: tuple[Stop, ...] = ()
    repairs: tuple[str, ...] = field(default=(), compare=False)

    def connections_from(self, track: str) -> list[Connection]:
        """Connections whose source is *track*, ordered by x."""
        return sorted((c for c in self.connections if c.source == track), key=lambda c: c.x)

    def stops_on(self, track: str) -> list[Stop]:
        return sorted((s for s in self.stops if s.track == track), key=lambda s: s.x)

    def connections_ahead(self, track: str, x: float) -> list[Connection]:
        """Connections on *track* strictly ahead of position *x*."""
        return [c for c in self.connections_from(track) if c.x > x]

    def stops_ahead(self, track: str, x: float) -> list[Stop]:
        return [s for s in self.stops_on(track) if s.x > x]

    def get_connection(self, connection_id: str) -> Connection | None:
        for c in self.connections:
            if c.id == connection_id:
                return c
        return None

    def switch_counts(self) -> dict[str, int]:
        """Number of outgoing connections per active track."""
        counts = {t: 0 for t in self.tracks}
        for c in self.connections:
            if c.source in counts:
                counts[c.source] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "tracks": list(self.tracks),
            "connections": [c.to_dict() for c in self.connections],
            "stops": [s.to_dict() for s in self.stops],
        }
