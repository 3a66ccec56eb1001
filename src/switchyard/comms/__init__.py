"""In-process messaging."""
from .event_bus import EventBus, drain

__all__ = ["EventBus", "drain"]
