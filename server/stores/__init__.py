"""Stores package for side-game persistence."""

from .event_store import EventStore, get_event_store, close_event_store
from .state_cache import StateCache, get_state_cache, close_state_cache

__all__ = [
    # Event store
    "EventStore",
    "get_event_store",
    "close_event_store",
    # State cache
    "StateCache",
    "get_state_cache",
    "close_state_cache",
]
