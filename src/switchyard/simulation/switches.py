"""SwitchBoard — operator-controlled state of every switch in a Layout.

A switch is unidirectional: only trains on its source track can be
diverted, and only while it is set to ``connected``.  The Layout itself
stays immutable; the board holds the toggle state beside it and is rebuilt
on every level load.
"""

from __future__ import annotations

from enum import Enum

from .layout import Connection, Layout


class SwitchState(str, Enum):
    STRAIGHT = "straight"
    CONNECTED = "connected"


class SwitchBoard:
    def __init__(self, layout: Layout) -> None:
        self._states: dict[str, SwitchState] = {
            c.id: SwitchState.STRAIGHT for c in layout.connections
        }

    def state(self, connection_id: str) -> SwitchState:
        return self._states[connection_id]

    def toggle(self, connection_id: str) -> SwitchState:
        """Flip a switch.  Raises KeyError for an id not in the layout."""
        if connection_id not in self._states:
            raise KeyError(f"Switch not found: {connection_id}")
        current = self._states[connection_id]
        new = SwitchState.CONNECTED if current is SwitchState.STRAIGHT else SwitchState.STRAIGHT
        self._states[connection_id] = new
        return new

    def target_track(self, conn: Connection, incoming: str) -> str:
        """Track a train on *incoming* ends up on after passing *conn*."""
        if incoming != conn.source:
            return incoming
        if self._states.get(conn.id) is SwitchState.CONNECTED:
            return conn.target
        return incoming

    def connected(self) -> list[str]:
        return [cid for cid, s in self._states.items() if s is SwitchState.CONNECTED]
