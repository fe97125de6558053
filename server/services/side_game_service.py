"""
Side-game service: the write path for skins, nassau and wolf games.

Every mutation follows the same steps under a per-game lock:
1. Replay the game's events from the store
2. Reject the write if the caller's expected revision is stale
3. Build the event at revision + 1 and apply it (engines validate here)
4. Append it to the event store (the unique constraint catches lost races)
5. Refresh the Redis snapshot

Reads serve the cached snapshot when it is current and replay otherwise.

Usage:
    service = SideGameService(event_store, state_cache)
    state = await service.create_game("skins", "Saturday skins", players, player_ids=ids)
    state = await service.record_skins_hole(state.game_id, state.revision, 1, "p1")
"""

import asyncio
import uuid
import weakref
from typing import Callable, Iterable, Optional

from config import SideGameDefaults, config
from constants import MAX_GAME_NAME_LENGTH, MAX_PLAYER_ID_LENGTH
from errors import ConcurrencyConflict, GameNotFoundError, SideGameError, ValidationError
from logging_config import game_id_var, get_logger
from models import events
from models.events import GameEvent
from models.game_state import GameType, SideGameState, replay

logger = get_logger(__name__)


def _default_config(game_type: GameType, defaults: SideGameDefaults) -> dict:
    if game_type is GameType.SKINS:
        return {
            "per_hole": str(defaults.skins_per_hole),
            "carry_over": defaults.skins_carry_over,
        }
    if game_type is GameType.NASSAU:
        return {
            "base_value": str(defaults.nassau_base_value),
            "auto_press_enabled": defaults.auto_press_enabled,
            "auto_press_threshold": defaults.auto_press_threshold,
            "max_presses_per_nine": defaults.max_presses_per_nine,
        }
    return {
        "buy_in": str(defaults.wolf_buy_in),
        "pig_available": defaults.pig_available,
        "points_per_hole": 1,
    }


def _canonical_game_id(game_id: str) -> str:
    """Game ids are UUIDs; anything else cannot name a stored game."""
    try:
        return str(uuid.UUID(str(game_id)))
    except ValueError:
        raise GameNotFoundError(f"Game {game_id} not found")


def _check_widths(name: Optional[str] = None, player_ids: Iterable[Optional[str]] = ()) -> None:
    """Reject names and ids the database columns cannot hold, before anything is written."""
    if name is not None and len(name) > MAX_GAME_NAME_LENGTH:
        raise ValidationError(f"Game name is longer than {MAX_GAME_NAME_LENGTH} characters")
    for player_id in player_ids:
        if player_id is not None and len(player_id) > MAX_PLAYER_ID_LENGTH:
            raise ValidationError(
                f"Player id {player_id[:12]}... is longer than {MAX_PLAYER_ID_LENGTH} characters"
            )


class SideGameService:
    """
    Serialises side-game mutations and keeps the snapshot cache in step.

    The event store is the source of truth; the cache is optional.
    """

    def __init__(self, event_store, state_cache=None, defaults: Optional[SideGameDefaults] = None):
        """
        Initialize the service.

        Args:
            event_store: EventStore (or any object with the same methods).
            state_cache: Optional StateCache for snapshots.
            defaults: Stakes used when a game is created without them.
        """
        self.event_store = event_store
        self.state_cache = state_cache
        self.defaults = defaults or config.side_game_defaults
        # A lock lives only while some writer holds a reference to it
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, game_id: str) -> asyncio.Lock:
        lock = self._locks.get(game_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[game_id] = lock
        return lock

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_game(self, game_id: str) -> SideGameState:
        """
        Rebuild a game's state from its event log.

        Raises:
            GameNotFoundError: If the id is not a UUID or the game has no events.
        """
        game_id = _canonical_game_id(game_id)
        history = await self.event_store.get_events(game_id)
        if not history:
            raise GameNotFoundError(f"Game {game_id} not found")
        return replay(history)

    async def get_snapshot(self, game_id: str) -> dict:
        """
        Get the game's snapshot, from the cache when it is current.

        A cache hit also pushes the snapshot's expiry out, so games being
        followed during a round stay cached.

        Raises:
            GameNotFoundError: If the id is not a UUID or the game has no events.
        """
        game_id = _canonical_game_id(game_id)
        if self.state_cache is not None:
            cached = await self.state_cache.get_game_state(game_id)
            if cached is not None:
                latest = await self.event_store.get_latest_sequence(game_id)
                if cached.get("revision") == latest:
                    await self.state_cache.touch_game(game_id)
                    return cached

        state = await self.get_game(game_id)
        snapshot = state.to_dict()
        await self._cache(game_id, snapshot)
        return snapshot

    async def get_events(self, game_id: str) -> list[GameEvent]:
        """Get the game's full event log."""
        game_id = _canonical_game_id(game_id)
        history = await self.event_store.get_events(game_id)
        if not history:
            raise GameNotFoundError(f"Game {game_id} not found")
        return history

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def create_game(
        self,
        game_type: str,
        name: str,
        players: list[dict],
        game_config: Optional[dict] = None,
        player_ids: Optional[list[str]] = None,
        teams: Optional[list[dict]] = None,
        created_by: Optional[str] = None,
    ) -> SideGameState:
        """
        Create a side game.

        Args:
            game_type: "skins", "nassau" or "wolf".
            name: Display name.
            players: Roster entries for name resolution.
            game_config: Format stakes; missing keys fall back to defaults.
            player_ids: Skins players or wolf rotation, in order.
            teams: Nassau teams, exactly two.
            created_by: Player setting the game up.

        Returns:
            The new game's state at revision 1.

        Raises:
            ValidationError: If the game type or participants are invalid.
        """
        try:
            kind = GameType(game_type)
        except ValueError:
            raise ValidationError(f"Unknown game type: {game_type}")

        merged = {**_default_config(kind, self.defaults), **(game_config or {})}
        if player_ids is None:
            if teams:
                player_ids = [pid for t in teams for pid in t.get("member_ids", [])]
            else:
                player_ids = [p["id"] for p in players]

        _check_widths(name=name, player_ids=[*player_ids, created_by])

        game_id = str(uuid.uuid4())
        event = events.game_created(
            game_id=game_id,
            sequence_num=1,
            game_type=kind.value,
            name=name,
            config=merged,
            players=players,
            player_ids=player_ids,
            teams=teams,
            created_by=created_by,
        )

        log = logger.with_context(game_id=game_id, game_type=kind.value)
        state = SideGameState(game_id=game_id)
        try:
            state.apply(event)
        except SideGameError as e:
            log.warning(f"Rejected {kind.value} game creation: {e}")
            raise

        await self.event_store.append(event)
        await self.event_store.create_game(game_id, kind.value, name, list(player_ids))
        await self._cache(game_id, state.to_dict())

        log.info(f"Created {kind.value} game '{name}' with {len(player_ids)} players")
        return state

    async def rename_game(self, game_id: str, expected_revision: int, name: str) -> SideGameState:
        return await self._commit(
            game_id,
            expected_revision,
            lambda gid, seq: events.game_renamed(gid, seq, name),
        )

    async def close_game(
        self, game_id: str, expected_revision: int, player_id: Optional[str] = None
    ) -> SideGameState:
        return await self._commit(
            game_id,
            expected_revision,
            lambda gid, seq: events.game_closed(gid, seq, player_id),
        )

    async def reopen_game(
        self, game_id: str, expected_revision: int, player_id: Optional[str] = None
    ) -> SideGameState:
        return await self._commit(
            game_id,
            expected_revision,
            lambda gid, seq: events.game_reopened(gid, seq, player_id),
        )

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    async def record_skins_hole(
        self,
        game_id: str,
        expected_revision: int,
        hole_number: int,
        winner_id: Optional[str],
        player_id: Optional[str] = None,
    ) -> SideGameState:
        """Record a skins hole winner (None for a push)."""
        return await self._commit(
            game_id,
            expected_revision,
            lambda gid, seq: events.skins_hole_recorded(gid, seq, hole_number, winner_id, player_id),
        )

    async def record_nassau_hole(
        self,
        game_id: str,
        expected_revision: int,
        hole_number: int,
        team1_score: int,
        team2_score: int,
        player_id: Optional[str] = None,
    ) -> SideGameState:
        """Record both teams' scores for a Nassau hole."""
        return await self._commit(
            game_id,
            expected_revision,
            lambda gid, seq: events.nassau_hole_recorded(
                gid, seq, hole_number, team1_score, team2_score, player_id
            ),
        )

    async def add_press(
        self,
        game_id: str,
        expected_revision: int,
        nine: str,
        team: str,
        at_hole: int,
        value: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> SideGameState:
        """
        Add a manual press to a Nassau game.

        The press id is fixed here so replay produces the same press.
        """
        press_id = f"manual-{uuid.uuid4().hex[:8]}"
        return await self._commit(
            game_id,
            expected_revision,
            lambda gid, seq: events.nassau_press_added(
                gid, seq, press_id, nine, team, at_hole, value, player_id
            ),
        )

    async def choose_wolf_partner(
        self,
        game_id: str,
        expected_revision: int,
        hole_number: int,
        wolf_id: str,
        partner_id: Optional[str] = None,
        is_pig: bool = False,
        player_id: Optional[str] = None,
    ) -> SideGameState:
        """Record the wolf's choice for a hole: a partner, lone wolf, or pig."""
        return await self._commit(
            game_id,
            expected_revision,
            lambda gid, seq: events.wolf_partner_chosen(
                gid, seq, hole_number, wolf_id, partner_id, is_pig, player_id
            ),
        )

    async def record_wolf_outcome(
        self,
        game_id: str,
        expected_revision: int,
        hole_number: int,
        winner: str,
        player_id: Optional[str] = None,
    ) -> SideGameState:
        """Record which side won a wolf hole ("wolf", "pack" or "push")."""
        return await self._commit(
            game_id,
            expected_revision,
            lambda gid, seq: events.wolf_hole_recorded(gid, seq, hole_number, winner, player_id),
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _commit(
        self,
        game_id: str,
        expected_revision: int,
        build: Callable[[str, int], GameEvent],
    ) -> SideGameState:
        """
        Apply and persist one event at expected_revision + 1.

        Raises:
            GameNotFoundError: If the id is not a UUID or the game has no events.
            ConcurrencyConflict: If expected_revision is stale.
            ValidationError: If the event is not allowed or a name or id is too long for storage.
            InvariantViolation: If the event would break a game invariant.
        """
        game_id = _canonical_game_id(game_id)
        game_id_var.set(game_id)
        lock = self._lock_for(game_id)
        async with lock:
            state = await self.get_game(game_id)
            log = logger.with_context(
                game_id=game_id,
                game_type=state.game_type.value,
                revision=state.revision,
            )

            if expected_revision != state.revision:
                log.warning(
                    f"Stale write to {game_id}: expected {expected_revision}, "
                    f"current {state.revision}"
                )
                raise ConcurrencyConflict(
                    f"Game {game_id} is at revision {state.revision}, not {expected_revision}"
                )

            event = build(game_id, state.revision + 1)
            _check_widths(name=event.data.get("name"), player_ids=[event.player_id])
            log = log.with_context(event_type=event.event_type.value)
            try:
                state.apply(event)
            except SideGameError as e:
                log.warning(f"Rejected {event.event_type.value}: {e}")
                raise

            await self.event_store.append(event)
            await self.event_store.update_game(
                game_id,
                state.status.value,
                state.revision,
                name=state.name if event.event_type is events.EventType.GAME_RENAMED else None,
            )
            await self._cache(game_id, state.to_dict())

            log.with_context(revision=state.revision).info(
                f"Committed {event.event_type.value} at revision {state.revision} "
                f"(status {state.status.value})"
            )
            return state

    async def _cache(self, game_id: str, snapshot: dict) -> None:
        if self.state_cache is None:
            return
        try:
            await self.state_cache.save_game_state(game_id, snapshot)
        except Exception as e:
            # The log already holds the event; the next read replays.
            logger.warning(f"Failed to cache snapshot for {game_id}: {e}")
