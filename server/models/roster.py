"""
Roster types handed to the settlement engine.

The roster is owned by the trip/team service; the engine only reads it
for name resolution and rotation order and never decides who may play.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Player:
    """
    A rostered player.

    Attributes:
        id: Unique player identifier.
        first_name: Given name.
        last_name: Family name.
        team_id: Trip team the player belongs to (if any).
    """
    id: str
    first_name: str = ""
    last_name: str = ""
    team_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "team_id": self.team_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Player":
        return cls(
            id=d["id"],
            first_name=d.get("first_name", ""),
            last_name=d.get("last_name", ""),
            team_id=d.get("team_id"),
        )


@dataclass(frozen=True)
class Team:
    """
    A side in a team format.

    Attributes:
        team_id: Team identifier.
        member_ids: Ordered player ids on the team.
    """
    team_id: str
    member_ids: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"team_id": self.team_id, "member_ids": list(self.member_ids)}

    @classmethod
    def from_dict(cls, d: dict) -> "Team":
        return cls(team_id=d["team_id"], member_ids=tuple(d.get("member_ids", [])))


def player_names(players: list[Player]) -> dict[str, str]:
    """Map player id -> display name."""
    return {p.id: p.display_name for p in players}


def resolve_name(names: dict[str, str], player_id: str) -> str:
    """Look up a display name, falling back to 'Unknown' like the roster UI does."""
    return names.get(player_id, "Unknown")
