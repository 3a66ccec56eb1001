"""RandomSource — the randomness interface injected into generator and arbiter.

``random.Random`` satisfies it as-is.  Tests substitute seeded instances or
scripted stand-ins to pin down a specific decision path.
"""

from __future__ import annotations

import random
from typing import MutableSequence, Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, seq: Sequence[T]) -> T: ...

    def shuffle(self, x: MutableSequence) -> None: ...


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Return a private Random instance (seeded when *seed* is given)."""
    return random.Random(seed)
