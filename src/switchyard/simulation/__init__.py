"""Simulation subsystem — layout generation, spawn arbitration, tick loop."""
from .engine import RailSimulation
from .invariants import InvariantViolation, check_layout
from .layout import Connection, Layout, Stop
from .layout_gen import LayoutGenerator, Zone, build_zones, generate_layout
from .level_policy import (
    calculate_level_spawn_interval,
    calculate_spawn_interval,
    calculate_speed_multiplier,
    calculate_stop_duration,
    get_available_tracks,
    get_game_level,
    get_speed_level,
)
from .placement import Placement, place_with_fallback
from .rng import RandomSource, make_rng
from .spawn_arbiter import Admit, Deny, DenyReason, SpawnArbiter, SpawnPlan
from .switches import SwitchBoard, SwitchState
from .train import Train

__all__ = [
    "Admit",
    "Connection",
    "Deny",
    "DenyReason",
    "InvariantViolation",
    "Layout",
    "LayoutGenerator",
    "Placement",
    "RailSimulation",
    "RandomSource",
    "SpawnArbiter",
    "SpawnPlan",
    "Stop",
    "SwitchBoard",
    "SwitchState",
    "Train",
    "Zone",
    "build_zones",
    "calculate_level_spawn_interval",
    "calculate_spawn_interval",
    "calculate_speed_multiplier",
    "calculate_stop_duration",
    "check_layout",
    "generate_layout",
    "get_available_tracks",
    "get_game_level",
    "get_speed_level",
    "make_rng",
    "place_with_fallback",
]
