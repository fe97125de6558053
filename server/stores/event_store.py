"""
PostgreSQL event log for side games.

Each game is a sequence of events numbered 1, 2, 3, ... and the last
number is the game's revision. A writer appends at the revision it read
plus one; the UNIQUE(game_id, sequence_num) constraint turns a lost race
into ConcurrencyConflict instead of a forked history.

The side_games table mirrors status, name and revision for listing and
recovery. It is rebuilt from events if it ever disagrees.
"""

import json
import logging
from datetime import timezone
from typing import Optional

import asyncpg

from errors import ConcurrencyConflict
from models.events import EventType, GameEvent

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS side_game_events (
    id BIGSERIAL PRIMARY KEY,
    game_id UUID NOT NULL,
    sequence_num INT NOT NULL,
    event_type VARCHAR(50) NOT NULL,
    player_id VARCHAR(50),
    event_data JSONB NOT NULL,
    recorded_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(game_id, sequence_num)
);

CREATE TABLE IF NOT EXISTS side_games (
    id UUID PRIMARY KEY,
    game_type VARCHAR(20) NOT NULL,
    name VARCHAR(100) NOT NULL DEFAULT '',
    status VARCHAR(20) NOT NULL DEFAULT 'setup',
    revision INT NOT NULL DEFAULT 1,
    player_ids VARCHAR(50)[] NOT NULL DEFAULT '{}',
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    completed_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS idx_side_game_events_type ON side_game_events(event_type);
CREATE INDEX IF NOT EXISTS idx_side_games_status ON side_games(status);
CREATE INDEX IF NOT EXISTS idx_side_games_players ON side_games USING GIN(player_ids);
"""

INSERT_EVENT_SQL = """
    INSERT INTO side_game_events (game_id, sequence_num, event_type, player_id, event_data)
    VALUES ($1, $2, $3, $4, $5)
    RETURNING id
"""

SELECT_EVENTS_SQL = """
    SELECT game_id, sequence_num, event_type, player_id, event_data, recorded_at
    FROM side_game_events
    WHERE game_id = $1
      AND sequence_num >= $2
      AND ($3::int IS NULL OR sequence_num <= $3)
    ORDER BY sequence_num
"""

GAME_COLUMNS = "id, game_type, name, status, revision, player_ids, created_at, updated_at, completed_at"


async def _insert(conn: asyncpg.Connection, event: GameEvent) -> int:
    try:
        row = await conn.fetchrow(
            INSERT_EVENT_SQL,
            event.game_id,
            event.sequence_num,
            event.event_type.value,
            event.player_id,
            json.dumps(event.data),
        )
    except asyncpg.UniqueViolationError:
        logger.warning(
            f"Lost append race on game {event.game_id} at sequence {event.sequence_num}"
        )
        raise ConcurrencyConflict(
            f"Revision {event.sequence_num - 1} of game {event.game_id} is stale"
        )
    return row["id"]


class EventStore:
    """Append-only side-game event log on an asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @classmethod
    async def create(cls, postgres_url: str, min_size: int = 2, max_size: int = 10) -> "EventStore":
        """
        Open a pool and make sure the tables exist.

        Args:
            postgres_url: PostgreSQL DSN.
            min_size: Minimum pool connections.
            max_size: Maximum pool connections.
        """
        pool = await asyncpg.create_pool(postgres_url, min_size=min_size, max_size=max_size)
        store = cls(pool)
        await store.initialize_schema()
        return store

    async def initialize_schema(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Side game tables ready")

    async def close(self) -> None:
        await self.pool.close()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def append(self, event: GameEvent) -> int:
        """
        Store one event at its sequence number.

        Returns:
            Row id of the stored event.

        Raises:
            ConcurrencyConflict: Another writer already took this sequence number.
        """
        async with self.pool.acquire() as conn:
            return await _insert(conn, event)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_events(
        self,
        game_id: str,
        from_sequence: int = 0,
        to_sequence: Optional[int] = None,
    ) -> list[GameEvent]:
        """
        Read a game's events in sequence order.

        Args:
            game_id: Game UUID.
            from_sequence: First sequence number to include.
            to_sequence: Last sequence number to include; None reads to the end.
        """
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(SELECT_EVENTS_SQL, game_id, from_sequence, to_sequence)
        return [self._row_to_event(row) for row in rows]

    async def get_latest_sequence(self, game_id: str) -> int:
        """The game's revision, or 0 for an unknown game."""
        async with self.pool.acquire() as conn:
            revision = await conn.fetchval(
                "SELECT COALESCE(MAX(sequence_num), 0) FROM side_game_events WHERE game_id = $1",
                game_id,
            )
        return revision

    # -------------------------------------------------------------------------
    # side_games mirror
    # -------------------------------------------------------------------------

    async def create_game(
        self,
        game_id: str,
        game_type: str,
        name: str,
        player_ids: list[str],
    ) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO side_games (id, game_type, name, player_ids)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (id) DO NOTHING
                """,
                game_id,
                game_type,
                name,
                player_ids,
            )

    async def update_game(
        self,
        game_id: str,
        status: str,
        revision: int,
        name: Optional[str] = None,
    ) -> None:
        """
        Mirror a committed event onto the game row.

        The revision never moves backwards, so a late update from a
        slower writer cannot hide newer events.
        """
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE side_games
                SET status = $2,
                    revision = GREATEST(revision, $3),
                    name = COALESCE($4, name),
                    updated_at = NOW(),
                    completed_at = CASE WHEN $2 = 'completed' THEN NOW() END
                WHERE id = $1
                """,
                game_id,
                status,
                revision,
                name,
            )

    async def get_active_games(self) -> list[dict]:
        """Games still in setup or play, newest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {GAME_COLUMNS} FROM side_games "
                "WHERE status != 'completed' ORDER BY created_at DESC"
            )
        return [dict(row) for row in rows]

    @staticmethod
    def _row_to_event(row: asyncpg.Record) -> GameEvent:
        data = row["event_data"]
        if isinstance(data, str):
            data = json.loads(data)
        return GameEvent(
            event_type=EventType(row["event_type"]),
            game_id=str(row["game_id"]),
            sequence_num=row["sequence_num"],
            player_id=row["player_id"],
            data=data or {},
            timestamp=row["recorded_at"].replace(tzinfo=timezone.utc),
        )


_event_store: Optional[EventStore] = None


async def get_event_store(postgres_url: str) -> EventStore:
    """Process-wide EventStore, created on first call."""
    global _event_store
    if _event_store is None:
        _event_store = await EventStore.create(postgres_url)
    return _event_store


async def close_event_store() -> None:
    global _event_store
    if _event_store is not None:
        await _event_store.close()
        _event_store = None
