"""
Warms the snapshot cache from the event log.

Run at startup, and whenever Redis may have lost data. Only games the
side_games table lists as unfinished are replayed; a game whose events
show it completed is skipped and falls out of the active set on its own.
Cached snapshots of games the table no longer lists are dropped.

Usage:
    summary = await RecoveryService(event_store, state_cache).recover_all_games()
    logger.info(f"{summary['recovered']} side games back in cache")
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from models.game_state import GameStatus, SideGameState, replay
from stores.event_store import EventStore
from stores.state_cache import StateCache

logger = logging.getLogger(__name__)


@dataclass
class RecoveryResult:
    """Outcome for one game. error is "no_events" or "game_completed" on a skip."""

    game_id: str
    success: bool
    game_type: Optional[str] = None
    status: Optional[str] = None
    revision: int = 0
    error: Optional[str] = None

    @classmethod
    def from_state(cls, state: SideGameState, error: Optional[str] = None) -> "RecoveryResult":
        return cls(
            game_id=state.game_id,
            success=error is None,
            game_type=state.game_type.value,
            status=state.status.value,
            revision=state.revision,
            error=error,
        )


class RecoveryService:
    """Replays unfinished side games into the state cache."""

    def __init__(self, event_store: EventStore, state_cache: StateCache):
        self.event_store = event_store
        self.state_cache = state_cache

    async def recover_all_games(self) -> dict[str, Any]:
        """
        Replay every game the event store lists as unfinished.

        A failure on one game is logged and counted; it never stops the
        others from loading.

        Returns:
            Counts under "recovered", "skipped", "failed" and "pruned",
            plus a "games" list describing each recovered game.
        """
        summary: dict[str, Any] = {
            "recovered": 0, "skipped": 0, "failed": 0, "pruned": 0, "games": [],
        }

        candidates = await self.event_store.get_active_games()
        logger.info(f"Recovering {len(candidates)} unfinished side games")

        for row in candidates:
            game_id = str(row["id"])
            try:
                result = await self.recover_game(game_id)
            except Exception as e:
                logger.error(f"Replay of side game {game_id} failed: {e}", exc_info=True)
                summary["failed"] += 1
                continue

            if result.success:
                summary["recovered"] += 1
                summary["games"].append({
                    "game_id": game_id,
                    "game_type": result.game_type,
                    "status": result.status,
                    "revision": result.revision,
                })
            elif result.error == "game_completed":
                summary["skipped"] += 1
            else:
                summary["failed"] += 1
                logger.warning(f"Side game {game_id} not recovered: {result.error}")

        # Snapshots left over from games the table no longer lists as unfinished
        listed = {str(row["id"]) for row in candidates}
        for game_id in await self.state_cache.get_active_games() - listed:
            await self.state_cache.delete_game_state(game_id)
            summary["pruned"] += 1
        if summary["pruned"]:
            logger.info(f"Dropped {summary['pruned']} stale snapshots from the active set")

        return summary

    async def recover_game(self, game_id: str) -> RecoveryResult:
        """Replay one game and cache it unless it has already completed."""
        history = await self.event_store.get_events(game_id)
        if not history:
            return RecoveryResult(game_id=game_id, success=False, error="no_events")

        state = replay(history)
        if state.status is GameStatus.COMPLETED:
            return RecoveryResult.from_state(state, error="game_completed")

        await self.state_cache.save_game_state(game_id, state.to_dict())
        logger.info(
            f"Cached {state.game_type.value} game {game_id} "
            f"at revision {state.revision} ({state.status.value})"
        )
        return RecoveryResult.from_state(state)

