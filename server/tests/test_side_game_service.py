"""
Tests for SideGameService: the serialized write path with optimistic
concurrency, backed by an in-memory event store and a mocked cache.
"""

import asyncio
import gc
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from config import SideGameDefaults
from errors import ConcurrencyConflict, GameNotFoundError, InvariantViolation, ValidationError
from models.events import EventType
from models.game_state import GameStatus
from services.side_game_service import SideGameService


@pytest.fixture
def state_cache():
    mock = AsyncMock()
    mock.get_game_state = AsyncMock(return_value=None)
    mock.save_game_state = AsyncMock()
    return mock


@pytest.fixture
def service(event_store, state_cache):
    defaults = SideGameDefaults(skins_per_hole=Decimal("2"), nassau_base_value=Decimal("5"))
    return SideGameService(event_store, state_cache, defaults=defaults)


async def create_skins(service, roster):
    return await service.create_game("skins", "Skins", roster, player_ids=["a", "b", "c"])


async def create_nassau(service, roster, **game_config):
    return await service.create_game(
        "nassau",
        "Nassau",
        roster,
        game_config=game_config,
        teams=[
            {"team_id": "t1", "member_ids": ["a", "b"]},
            {"team_id": "t2", "member_ids": ["c", "d"]},
        ],
    )


class TestCreateGame:

    @pytest.mark.asyncio
    async def test_defaults_fill_missing_stakes(self, service, roster, event_store):
        state = await create_skins(service, roster)

        assert state.revision == 1
        assert state.engine.config.per_hole == Decimal("2")
        assert event_store.games[state.game_id]["game_type"] == "skins"

    @pytest.mark.asyncio
    async def test_explicit_config_wins(self, service, roster):
        state = await service.create_game(
            "skins", "Big skins", roster, game_config={"per_hole": "20"}, player_ids=["a", "b"]
        )

        assert state.engine.config.per_hole == Decimal("20")

    @pytest.mark.asyncio
    async def test_player_ids_default_to_roster(self, service, roster):
        state = await service.create_game("wolf", "Wolf", roster)

        assert state.engine.rotation == ("a", "b", "c", "d")

    @pytest.mark.asyncio
    async def test_unknown_game_type(self, service, roster):
        with pytest.raises(ValidationError):
            await service.create_game("bingo", "Bingo", roster)

    @pytest.mark.asyncio
    async def test_invalid_game_not_stored(self, service, roster, event_store):
        with pytest.raises(ValidationError):
            await service.create_game("wolf", "Wolf", roster, player_ids=["a", "b", "c"])

        assert event_store.events == {}

    @pytest.mark.asyncio
    async def test_snapshot_cached(self, service, roster, state_cache):
        state = await create_skins(service, roster)

        game_id, snapshot = state_cache.save_game_state.call_args[0]
        assert game_id == state.game_id
        assert snapshot["revision"] == 1

    @pytest.mark.asyncio
    async def test_overlong_name_not_stored(self, service, roster, event_store):
        with pytest.raises(ValidationError):
            await service.create_game("skins", "x" * 101, roster, player_ids=["a", "b"])

        assert event_store.events == {}
        assert event_store.games == {}

    @pytest.mark.asyncio
    async def test_overlong_player_id_not_stored(self, service, roster, event_store):
        long_id = "p" * 51
        players = roster + [{"id": long_id, "first_name": "Long"}]

        with pytest.raises(ValidationError):
            await service.create_game("skins", "Skins", players, player_ids=["a", long_id])

        assert event_store.events == {}

    @pytest.mark.asyncio
    async def test_overlong_creator_not_stored(self, service, roster, event_store):
        with pytest.raises(ValidationError):
            await service.create_game(
                "skins", "Skins", roster, player_ids=["a", "b"], created_by="c" * 51
            )

        assert event_store.events == {}


class TestMutations:

    @pytest.mark.asyncio
    async def test_revision_advances(self, service, roster, event_store):
        state = await create_skins(service, roster)
        state = await service.record_skins_hole(state.game_id, 1, 1, None)
        state = await service.record_skins_hole(state.game_id, 2, 2, "a")

        assert state.revision == 3
        assert state.status is GameStatus.ACTIVE
        assert state.engine.results[-1].amount == Decimal("4")
        assert event_store.games[state.game_id]["revision"] == 3

    @pytest.mark.asyncio
    async def test_stale_revision_conflicts(self, service, roster, event_store):
        state = await create_skins(service, roster)
        await service.record_skins_hole(state.game_id, 1, 1, "a")

        with pytest.raises(ConcurrencyConflict):
            await service.record_skins_hole(state.game_id, 1, 2, "b")

        assert len(event_store.events[state.game_id]) == 2

    @pytest.mark.asyncio
    async def test_concurrent_writers_one_wins(self, service, roster, event_store):
        state = await create_skins(service, roster)

        results = await asyncio.gather(
            service.record_skins_hole(state.game_id, 1, 1, "a"),
            service.record_skins_hole(state.game_id, 1, 1, "b"),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, ConcurrencyConflict)]
        assert len(conflicts) == 1
        assert len(event_store.events[state.game_id]) == 2

    @pytest.mark.asyncio
    async def test_rejected_mutation_not_stored(self, service, roster, event_store):
        state = await create_skins(service, roster)

        with pytest.raises(ValidationError):
            await service.record_skins_hole(state.game_id, 1, 1, "zed")

        assert len(event_store.events[state.game_id]) == 1

    @pytest.mark.asyncio
    async def test_unknown_game(self, service):
        with pytest.raises(GameNotFoundError):
            await service.record_skins_hole("missing", 1, 1, "a")

    @pytest.mark.asyncio
    async def test_uppercase_game_id_is_canonicalised(self, service, roster, event_store):
        state = await create_skins(service, roster)

        state = await service.record_skins_hole(state.game_id.upper(), 1, 1, "a")

        assert state.revision == 2
        assert [e.game_id for e in event_store.events[state.game_id]] == [state.game_id] * 2

    @pytest.mark.asyncio
    async def test_overlong_rename_not_stored(self, service, roster, event_store):
        state = await create_skins(service, roster)

        with pytest.raises(ValidationError):
            await service.rename_game(state.game_id, 1, "x" * 101)

        assert len(event_store.events[state.game_id]) == 1
        assert event_store.games[state.game_id]["name"] == "Skins"

    @pytest.mark.asyncio
    async def test_overlong_scorer_id_not_stored(self, service, roster, event_store):
        state = await create_skins(service, roster)

        with pytest.raises(ValidationError):
            await service.record_skins_hole(state.game_id, 1, 1, "a", player_id="s" * 51)

        assert len(event_store.events[state.game_id]) == 1

    @pytest.mark.asyncio
    async def test_locks_released_after_writes(self, service, roster):
        state = await create_skins(service, roster)
        await service.record_skins_hole(state.game_id, 1, 1, "a")
        await service.record_skins_hole(state.game_id, 2, 2, "b")
        gc.collect()

        assert len(service._locks) == 0

    @pytest.mark.asyncio
    async def test_close_then_score_rejected(self, service, roster, event_store):
        state = await create_skins(service, roster)
        state = await service.close_game(state.game_id, 1)

        assert event_store.games[state.game_id]["status"] == "completed"
        with pytest.raises(ValidationError):
            await service.record_skins_hole(state.game_id, 2, 1, "a")

    @pytest.mark.asyncio
    async def test_reopen_and_rename(self, service, roster, event_store):
        state = await create_skins(service, roster)
        state = await service.close_game(state.game_id, 1)
        state = await service.reopen_game(state.game_id, 2)
        state = await service.rename_game(state.game_id, 3, "Renamed")

        assert state.status is GameStatus.SETUP
        assert state.name == "Renamed"
        assert event_store.games[state.game_id]["name"] == "Renamed"

    @pytest.mark.asyncio
    async def test_manual_press_id_is_logged(self, service, roster, event_store):
        state = await create_nassau(service, roster, auto_press_enabled=False)
        state = await service.record_nassau_hole(state.game_id, 1, 1, 4, 5)
        state = await service.add_press(state.game_id, 2, "front", "team2", 2)

        logged = event_store.events[state.game_id][-1]
        assert logged.event_type is EventType.NASSAU_PRESS_ADDED
        assert state.engine.presses[0].id == logged.data["press_id"]

        replayed = await service.get_game(state.game_id)
        assert replayed.engine.presses == state.engine.presses

    @pytest.mark.asyncio
    async def test_press_on_decided_nine(self, service, roster):
        state = await create_nassau(service, roster, auto_press_enabled=False)
        for hole in range(1, 6):
            state = await service.record_nassau_hole(state.game_id, state.revision, hole, 4, 5)

        with pytest.raises(InvariantViolation):
            await service.add_press(state.game_id, state.revision, "front", "team2", 6)

    @pytest.mark.asyncio
    async def test_wolf_flow(self, service, roster):
        state = await service.create_game("wolf", "Wolf", roster)
        state = await service.choose_wolf_partner(state.game_id, 1, 1, "a", is_pig=True)
        state = await service.record_wolf_outcome(state.game_id, 2, 1, "wolf")

        assert state.engine.net_points == {"a": 9, "b": -3, "c": -3, "d": -3}

    @pytest.mark.asyncio
    async def test_wolf_partner_records_who_entered_it(self, service, roster, event_store):
        state = await service.create_game("wolf", "Wolf", roster)
        state = await service.choose_wolf_partner(state.game_id, 1, 1, "a", "b", player_id="c")

        logged = event_store.events[state.game_id][-1]
        assert logged.event_type is EventType.WOLF_PARTNER_CHOSEN
        assert logged.player_id == "c"


class TestReads:

    @pytest.mark.asyncio
    async def test_snapshot_served_from_cache_when_current(self, service, roster, state_cache):
        state = await create_skins(service, roster)
        state_cache.get_game_state.return_value = {"revision": 1, "from_cache": True}

        snapshot = await service.get_snapshot(state.game_id)

        assert snapshot["from_cache"] is True
        state_cache.touch_game.assert_awaited_once_with(state.game_id)

    @pytest.mark.asyncio
    async def test_stale_cache_replayed(self, service, roster, state_cache):
        state = await create_skins(service, roster)
        await service.record_skins_hole(state.game_id, 1, 1, "a")
        state_cache.get_game_state.return_value = {"revision": 1, "from_cache": True}

        snapshot = await service.get_snapshot(state.game_id)

        assert snapshot["revision"] == 2
        assert "from_cache" not in snapshot

    @pytest.mark.asyncio
    async def test_cache_failure_does_not_fail_write(self, service, roster, state_cache):
        state = await create_skins(service, roster)
        state_cache.save_game_state.side_effect = ConnectionError("redis down")

        state = await service.record_skins_hole(state.game_id, 1, 1, "a")

        assert state.revision == 2

    @pytest.mark.asyncio
    async def test_works_without_cache(self, event_store, roster):
        service = SideGameService(event_store)
        state = await create_skins(service, roster)

        snapshot = await service.get_snapshot(state.game_id)

        assert snapshot["game_type"] == "skins"

    @pytest.mark.asyncio
    async def test_events_unknown_game(self, service):
        with pytest.raises(GameNotFoundError):
            await service.get_events("missing")

    @pytest.mark.asyncio
    async def test_non_uuid_game_id_not_found(self, service, event_store):
        with pytest.raises(GameNotFoundError):
            await service.get_snapshot("not-a-uuid")
        with pytest.raises(GameNotFoundError):
            await service.get_game("not-a-uuid")
