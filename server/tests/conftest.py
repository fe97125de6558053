"""Shared fixtures for side-game service and API tests."""

import pytest

from errors import ConcurrencyConflict


class InMemoryEventStore:
    """
    Event store double with the same interface as stores.event_store.EventStore.

    Enforces one event per (game_id, sequence_num) like the database's
    unique constraint.
    """

    def __init__(self):
        self.events: dict[str, list] = {}
        self.games: dict[str, dict] = {}

    async def append(self, event) -> int:
        log = self.events.setdefault(event.game_id, [])
        if any(e.sequence_num == event.sequence_num for e in log):
            raise ConcurrencyConflict(
                f"Revision {event.sequence_num - 1} of game {event.game_id} is stale"
            )
        log.append(event)
        log.sort(key=lambda e: e.sequence_num)
        return len(log)

    async def get_events(self, game_id, from_sequence=0, to_sequence=None):
        return [
            e for e in self.events.get(game_id, [])
            if e.sequence_num >= from_sequence
            and (to_sequence is None or e.sequence_num <= to_sequence)
        ]

    async def get_latest_sequence(self, game_id) -> int:
        log = self.events.get(game_id, [])
        return log[-1].sequence_num if log else 0

    async def create_game(self, game_id, game_type, name, player_ids):
        self.games[game_id] = {
            "id": game_id,
            "game_type": game_type,
            "name": name,
            "status": "setup",
            "revision": 1,
            "player_ids": player_ids,
        }

    async def update_game(self, game_id, status, revision, name=None):
        game = self.games[game_id]
        game["status"] = status
        game["revision"] = max(game["revision"], revision)
        if name is not None:
            game["name"] = name

    async def get_active_games(self):
        return [g for g in self.games.values() if g["status"] != "completed"]


@pytest.fixture
def event_store():
    return InMemoryEventStore()


@pytest.fixture
def roster():
    return [
        {"id": "a", "first_name": "Ann", "last_name": "Lee"},
        {"id": "b", "first_name": "Bo", "last_name": "Kim"},
        {"id": "c", "first_name": "Cy", "last_name": "Ng"},
        {"id": "d", "first_name": "Di", "last_name": "Ray"},
    ]
