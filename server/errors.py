"""
Error taxonomy for the side-game settlement engine.

Every rejected mutation raises one of these. Engines never partially
apply a rejected mutation, so the state passed in stays valid.
"""


class SideGameError(Exception):
    """Base class for all side-game errors."""
    pass


class ValidationError(SideGameError):
    """Raised when an input is malformed or not allowed in the current state."""
    pass


class InvariantViolation(SideGameError):
    """Raised when a mutation would break a game invariant (e.g. pressing a decided nine)."""
    pass


class ConcurrencyConflict(SideGameError):
    """Raised when a write was based on a stale revision of the game."""
    pass


class GameNotFoundError(SideGameError):
    """Raised when no events exist for a game id."""
    pass
