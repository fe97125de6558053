"""Services package for side-game business logic."""

from .recovery_service import RecoveryService, RecoveryResult
from .side_game_service import SideGameService

__all__ = [
    "RecoveryService",
    "RecoveryResult",
    "SideGameService",
]
