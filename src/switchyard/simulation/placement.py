"""Placement — accumulated generation state and the retry-then-force primitive.

The generator never keeps an ambient "occupied positions" list.  Each pass
receives a Placement value and returns a new one; nothing is mutated in
place, so a pass can be re-run or inspected in isolation.

``place_with_fallback`` is the single retry loop used by every pass:
propose a position up to N times, accept the first one the constraint
check allows, and otherwise either drop the connection (optional
enrichment) or call the deterministic fallback (mandatory repair).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Callable, Optional

from loguru import logger

from .layout import Connection, Layout, Stop


@dataclass(frozen=True)
class Placement:
    """Connections and stops placed so far, plus an id counter."""

    tracks: tuple[str, ...]
    connections: tuple[Connection, ...] = ()
    stops: tuple[Stop, ...] = ()
    repairs: tuple[str, ...] = ()
    next_id: int = 1

    # -- Growth -------------------------------------------------------------

    def add(self, source: str, target: str, x: float, forced: bool = False) -> tuple[Placement, Connection]:
        conn = Connection(
            id=f"switch{self.next_id}",
            source=source,
            target=target,
            x=float(x),
            forced=forced,
        )
        state = replace(self, connections=self.connections + (conn,), next_id=self.next_id + 1)
        return state, conn

    def add_stop(self, track: str, x: float, duration: float) -> Placement:
        stop = Stop(id=f"stop{len(self.stops) + 1}", track=track, x=float(x), duration=duration)
        return replace(self, stops=self.stops + (stop,))

    def note_repair(self, message: str) -> Placement:
        logger.debug(f"Layout repair: {message}")
        return replace(self, repairs=self.repairs + (message,))

    def to_layout(self) -> Layout:
        return Layout(
            tracks=self.tracks,
            connections=self.connections,
            stops=self.stops,
            repairs=self.repairs,
        )

    # -- Queries ------------------------------------------------------------

    def count(self, track: str) -> int:
        return sum(1 for c in self.connections if c.source == track)

    def has_connection_below(self, track: str, x_limit: float) -> bool:
        return any(c.source == track and c.x < x_limit for c in self.connections)

    def has_connection_at_most(self, track: str, x_limit: float) -> bool:
        return any(c.source == track and c.x <= x_limit for c in self.connections)

    def in_range(self, lo: float, hi: float) -> bool:
        return any(lo <= c.x < hi for c in self.connections)

    def spacing_ok(self, source: str, x: float, same_track: float, any_track: float = 0.0) -> bool:
        """True if *x* keeps *same_track* px from switches on *source*
        and *any_track* px from every other switch."""
        for c in self.connections:
            dx = abs(c.x - x)
            if c.source == source and dx < same_track:
                return False
            if dx < any_track:
                return False
        return True

    def conflicts(self, source: str, target: str, x: float, tolerance: float) -> bool:
        """True if an opposite connection (target -> source) sits within *tolerance* of *x*."""
        return any(
            c.source == target and c.target == source and abs(c.x - x) < tolerance
            for c in self.connections
        )

    def clear_of_conflict(
        self, source: str, target: str, x: float, lo: float, hi: float, tolerance: float,
    ) -> float:
        """Return the position closest to *x* in [lo, hi) with no opposite pair.

        Candidates are the edges of every blocking window; a coarse scan of
        the band covers the case where those edges are themselves blocked.
        """
        if not self.conflicts(source, target, x, tolerance):
            return x
        candidates = []
        for c in self.connections:
            if c.source == target and c.target == source:
                for cand in (c.x - tolerance, c.x + tolerance):
                    if lo <= cand < hi and not self.conflicts(source, target, cand, tolerance):
                        candidates.append(cand)
        if candidates:
            return min(candidates, key=lambda v: abs(v - x))
        v = math.ceil(lo)
        while v < hi:
            if not self.conflicts(source, target, v, tolerance):
                return float(v)
            v += 5
        logger.warning(f"No conflict-free slot for {source}->{target} in [{lo}, {hi})")
        return x


Proposer = Callable[[int], float]
Acceptor = Callable[[Placement, float, int], bool]
Fallback = Callable[[Placement], float]


def place_with_fallback(
    state: Placement,
    source: str,
    target: str,
    *,
    propose: Proposer,
    accept: Acceptor,
    attempts: int,
    fallback: Optional[Fallback] = None,
) -> tuple[Placement, Optional[Connection]]:
    """Try *attempts* proposals, then fall back (or give up if no fallback).

    ``propose(attempt)`` returns a candidate x; ``accept(state, x, attempt)``
    decides whether it is valid.  Positions are snapped to whole pixels.
    A fallback placement is flagged ``forced`` on the resulting connection.
    """
    for attempt in range(attempts):
        x = float(math.floor(propose(attempt)))
        if accept(state, x, attempt):
            return state.add(source, target, x)
    if fallback is None:
        return state, None
    x = float(math.floor(fallback(state)))
    return state.add(source, target, x, forced=True)
