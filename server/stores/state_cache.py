"""
Redis snapshot cache for side games.

Holds the latest SideGameState.to_dict() per game so leaderboard and
settlement reads during a round skip the replay. Snapshots carry their
revision; the service compares it with the event log before trusting
one, and a flushed Redis costs nothing but a replay.

Keys:
- golf:sidegame:{game_id}   JSON snapshot, expires after GAME_TTL
- golf:sidegames:active     set of game ids not yet completed
"""

import json
import logging
from datetime import timedelta
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class StateCache:
    """Snapshot-per-game cache with an index of unfinished games."""

    GAME_KEY = "golf:sidegame:{game_id}"
    ACTIVE_GAMES_KEY = "golf:sidegames:active"

    # A trip spans a few days; completed games only need to outlive the settle-up.
    GAME_TTL = timedelta(days=7)

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    @classmethod
    async def create(cls, redis_url: str) -> "StateCache":
        """Connect to Redis and fail fast if it is unreachable."""
        client = redis.from_url(redis_url, decode_responses=False)
        await client.ping()
        logger.info(f"Snapshot cache connected ({redis_url.rsplit('@', 1)[-1]})")
        return cls(client)

    async def close(self) -> None:
        await self.redis.close()

    def _key(self, game_id: str) -> str:
        return self.GAME_KEY.format(game_id=game_id)

    @property
    def _ttl_seconds(self) -> int:
        return int(self.GAME_TTL.total_seconds())

    async def save_game_state(self, game_id: str, state: dict) -> None:
        """
        Store a snapshot unless a newer revision is already cached.

        The active-games set is updated in the same pipeline: completed
        games leave it, everything else joins it.
        """
        cached = await self.get_game_state(game_id)
        if cached and cached.get("revision", 0) > state.get("revision", 0):
            logger.debug(
                f"Kept revision {cached.get('revision')} of {game_id} "
                f"over older revision {state.get('revision')}"
            )
            return

        pipe = self.redis.pipeline()
        pipe.set(self._key(game_id), json.dumps(state), ex=self._ttl_seconds)
        if state.get("status") == "completed":
            pipe.srem(self.ACTIVE_GAMES_KEY, game_id)
        else:
            pipe.sadd(self.ACTIVE_GAMES_KEY, game_id)
        await pipe.execute()

    async def get_game_state(self, game_id: str) -> Optional[dict]:
        raw = await self.redis.get(self._key(game_id))
        if not raw:
            return None
        return json.loads(raw.decode() if isinstance(raw, bytes) else raw)

    async def delete_game_state(self, game_id: str) -> None:
        """Forget a game; the next read replays it from the event log."""
        pipe = self.redis.pipeline()
        pipe.delete(self._key(game_id))
        pipe.srem(self.ACTIVE_GAMES_KEY, game_id)
        await pipe.execute()

    async def get_active_games(self) -> set[str]:
        members = await self.redis.smembers(self.ACTIVE_GAMES_KEY)
        return {m.decode() if isinstance(m, bytes) else m for m in members}

    async def touch_game(self, game_id: str) -> None:
        """Push a snapshot's expiry out by another GAME_TTL."""
        await self.redis.expire(self._key(game_id), self._ttl_seconds)


_state_cache: Optional[StateCache] = None


async def get_state_cache(redis_url: str) -> StateCache:
    """Process-wide StateCache, connected on first call."""
    global _state_cache
    if _state_cache is None:
        _state_cache = await StateCache.create(redis_url)
    return _state_cache


async def close_state_cache() -> None:
    global _state_cache
    if _state_cache is not None:
        await _state_cache.close()
        _state_cache = None
