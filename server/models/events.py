"""
Event definitions for side-game event sourcing.

Every hole entry and game action is stored as an immutable event,
enabling:
- Full replay of any game from its log
- Audit trails for scoring corrections
- Deterministic re-derivation of standings and settlements

Events are the single source of truth for side-game state. The
sequence number of the last event is the game's revision, used for
optimistic concurrency on writes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import json


class EventType(str, Enum):
    """All possible event types in a side game."""

    # Lifecycle events
    GAME_CREATED = "game_created"
    GAME_RENAMED = "game_renamed"
    GAME_CLOSED = "game_closed"
    GAME_REOPENED = "game_reopened"

    # Scoring events
    SKINS_HOLE_RECORDED = "skins_hole_recorded"
    NASSAU_HOLE_RECORDED = "nassau_hole_recorded"
    NASSAU_PRESS_ADDED = "nassau_press_added"
    WOLF_PARTNER_CHOSEN = "wolf_partner_chosen"
    WOLF_HOLE_RECORDED = "wolf_hole_recorded"


@dataclass
class GameEvent:
    """
    One entry in a side game's log.

    sequence_num starts at 1 for game_created and increases by one per
    event; the newest event's number is the revision writers quote back.
    player_id is whoever entered the event, when the client says so.
    Money in data is always a decimal string.
    """

    event_type: EventType
    game_id: str
    sequence_num: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    player_id: Optional[str] = None
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "event_type": self.event_type.value,
            "game_id": self.game_id,
            "sequence_num": self.sequence_num,
            "timestamp": self.timestamp.isoformat(),
            "player_id": self.player_id,
            "data": self.data,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, d: dict) -> "GameEvent":
        """Inverse of to_dict; accepts an ISO string or datetime timestamp."""
        when = d.get("timestamp")
        if isinstance(when, str):
            when = datetime.fromisoformat(when)
        return cls(
            event_type=EventType(d["event_type"]),
            game_id=d["game_id"],
            sequence_num=int(d["sequence_num"]),
            timestamp=when or datetime.now(timezone.utc),
            player_id=d.get("player_id"),
            data=dict(d.get("data") or {}),
        )

    @classmethod
    def from_json(cls, raw: str) -> "GameEvent":
        return cls.from_dict(json.loads(raw))


# =============================================================================
# Event Factory Functions
# =============================================================================
# Monetary values are carried as strings so they survive JSON unchanged.


def game_created(
    game_id: str,
    sequence_num: int,
    game_type: str,
    name: str,
    config: dict,
    players: list[dict],
    player_ids: Optional[list[str]] = None,
    teams: Optional[list[dict]] = None,
    created_by: Optional[str] = None,
) -> GameEvent:
    """
    First event of every game; fixes format, stakes and participants.

    Args:
        game_id: UUID for the new game.
        sequence_num: Should be 1 (first event).
        game_type: "skins", "nassau" or "wolf".
        name: Display name of the game.
        config: Format-specific stakes as dict.
        players: Roster entries [{id, first_name, last_name, team_id}, ...].
        player_ids: Individual participants in order (skins players, wolf rotation).
        teams: Team participants for Nassau [{team_id, member_ids}, ...].
        created_by: Player who set the game up.
    """
    return GameEvent(
        event_type=EventType.GAME_CREATED,
        game_id=game_id,
        sequence_num=sequence_num,
        player_id=created_by,
        data={
            "game_type": game_type,
            "name": name,
            "config": config,
            "players": players,
            "player_ids": player_ids or [],
            "teams": teams or [],
        },
    )


def game_renamed(game_id: str, sequence_num: int, name: str) -> GameEvent:
    """Create a GameRenamed event. Renaming never rescores history."""
    return GameEvent(
        event_type=EventType.GAME_RENAMED,
        game_id=game_id,
        sequence_num=sequence_num,
        data={"name": name},
    )


def game_closed(game_id: str, sequence_num: int, player_id: Optional[str] = None) -> GameEvent:
    """Create a GameClosed event (explicit completion)."""
    return GameEvent(
        event_type=EventType.GAME_CLOSED,
        game_id=game_id,
        sequence_num=sequence_num,
        player_id=player_id,
    )


def game_reopened(game_id: str, sequence_num: int, player_id: Optional[str] = None) -> GameEvent:
    """Create a GameReopened event."""
    return GameEvent(
        event_type=EventType.GAME_REOPENED,
        game_id=game_id,
        sequence_num=sequence_num,
        player_id=player_id,
    )


def skins_hole_recorded(
    game_id: str,
    sequence_num: int,
    hole_number: int,
    winner_id: Optional[str],
    player_id: Optional[str] = None,
) -> GameEvent:
    """
    Create a SkinsHoleRecorded event.

    Args:
        hole_number: Hole 1-18.
        winner_id: Outright winner, or None for a push.
        player_id: Who entered the result.
    """
    return GameEvent(
        event_type=EventType.SKINS_HOLE_RECORDED,
        game_id=game_id,
        sequence_num=sequence_num,
        player_id=player_id,
        data={"hole_number": hole_number, "winner_id": winner_id},
    )


def nassau_hole_recorded(
    game_id: str,
    sequence_num: int,
    hole_number: int,
    team1_score: int,
    team2_score: int,
    player_id: Optional[str] = None,
) -> GameEvent:
    """Create a NassauHoleRecorded event with both teams' scores."""
    return GameEvent(
        event_type=EventType.NASSAU_HOLE_RECORDED,
        game_id=game_id,
        sequence_num=sequence_num,
        player_id=player_id,
        data={
            "hole_number": hole_number,
            "team1_score": team1_score,
            "team2_score": team2_score,
        },
    )


def nassau_press_added(
    game_id: str,
    sequence_num: int,
    press_id: str,
    nine: str,
    team: str,
    at_hole: int,
    value: Optional[str] = None,
    player_id: Optional[str] = None,
) -> GameEvent:
    """
    Create a NassauPressAdded event (manual presses only).

    Automatic presses are derived during replay and never logged.
    """
    return GameEvent(
        event_type=EventType.NASSAU_PRESS_ADDED,
        game_id=game_id,
        sequence_num=sequence_num,
        player_id=player_id,
        data={
            "press_id": press_id,
            "nine": nine,
            "team": team,
            "at_hole": at_hole,
            "value": value,
        },
    )


def wolf_partner_chosen(
    game_id: str,
    sequence_num: int,
    hole_number: int,
    wolf_id: str,
    partner_id: Optional[str] = None,
    is_pig: bool = False,
    player_id: Optional[str] = None,
) -> GameEvent:
    """Create a WolfPartnerChosen event (partner, lone wolf or pig)."""
    return GameEvent(
        event_type=EventType.WOLF_PARTNER_CHOSEN,
        game_id=game_id,
        sequence_num=sequence_num,
        player_id=player_id,
        data={
            "hole_number": hole_number,
            "wolf_id": wolf_id,
            "partner_id": partner_id,
            "is_pig": is_pig,
        },
    )


def wolf_hole_recorded(
    game_id: str,
    sequence_num: int,
    hole_number: int,
    winner: str,
    player_id: Optional[str] = None,
) -> GameEvent:
    """Create a WolfHoleRecorded event; winner is "wolf", "pack" or "push"."""
    return GameEvent(
        event_type=EventType.WOLF_HOLE_RECORDED,
        game_id=game_id,
        sequence_num=sequence_num,
        player_id=player_id,
        data={"hole_number": hole_number, "winner": winner},
    )
