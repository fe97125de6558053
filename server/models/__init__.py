"""Models package for side-game events, roster types and replayed state."""

from .events import EventType, GameEvent
from .roster import Player, Team

__all__ = [
    "EventType",
    "GameEvent",
    "Player",
    "Team",
]
