"""SWITCHYARD — procedural rail layouts and collision-safe train spawning.

Trains run left to right on parallel tracks; the player diverts them with
directional switches.  This package holds the layout generator, the spawn
arbiter that decides when a new train may enter, and a headless tick loop
that wires them together.
"""

__version__ = "0.1.0"
