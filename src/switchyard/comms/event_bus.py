"""EventBus — in-process pub/sub between the tick loop and its observers.

The simulation publishes gameplay events (spawns, diversions, stops,
scoring, tier-ups, collisions) here; a renderer, UI or test subscribes
and drains its own queue at whatever pace suits it.  Publishing never
blocks the tick loop: a full subscriber queue drops its oldest message.
"""

from __future__ import annotations

import queue
import threading
from typing import Iterable, Optional


class EventBus:
    """Thread-safe pub/sub.  Each subscriber gets its own bounded Queue."""

    def __init__(self, maxsize: int = 256) -> None:
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._subscribers: list[tuple[queue.Queue, Optional[frozenset[str]]]] = []

    def subscribe(self, event_types: Iterable[str] | None = None) -> queue.Queue:
        """Subscribe to all events, or only to the given *event_types*."""
        q: queue.Queue = queue.Queue(maxsize=self._maxsize)
        types = frozenset(event_types) if event_types is not None else None
        with self._lock:
            self._subscribers.append((q, types))
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers = [(s, t) for s, t in self._subscribers if s is not q]

    def publish(self, event_type: str, data: dict | None = None) -> None:
        msg = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            targets = [q for q, types in self._subscribers if types is None or event_type in types]
        for q in targets:
            try:
                q.put_nowait(msg)
            except queue.Full:
                # Drop oldest so the newest state change always lands
                try:
                    q.get_nowait()
                except queue.Empty:
                    pass
                try:
                    q.put_nowait(msg)
                except queue.Full:
                    pass


def drain(q: queue.Queue) -> list[dict]:
    """Pop every pending message from *q* without blocking."""
    msgs = []
    while True:
        try:
            msgs.append(q.get_nowait())
        except queue.Empty:
            return msgs
