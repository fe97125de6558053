"""
Side-game state rebuilder for event sourcing.

SideGameState wraps one engine state (skins, nassau or wolf) together with
the game's lifecycle and revision. It is built entirely by applying events
in sequence; running totals inside the engine state are a cache that
replay() always reproduces from the log.

Usage:
    events = await event_store.get_events(game_id)
    state = replay(events)
    print(state.status, state.revision)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from constants import LAST_HOLE
from engines import nassau, skins, wolf
from engines.settlement import settle_nassau, settle_skins, settle_wolf
from errors import ValidationError
from models.events import EventType, GameEvent
from models.roster import Player, Team


class GameType(str, Enum):
    """Supported wager formats."""
    SKINS = "skins"
    NASSAU = "nassau"
    WOLF = "wolf"


class GameStatus(str, Enum):
    """Lifecycle shared by all formats."""
    SETUP = "setup"
    ACTIVE = "active"
    COMPLETED = "completed"


EngineState = Union[skins.SkinsState, nassau.NassauState, wolf.WolfState]

# Events that score a hole and therefore need an open game
_SCORING_EVENTS = {
    EventType.SKINS_HOLE_RECORDED: GameType.SKINS,
    EventType.NASSAU_HOLE_RECORDED: GameType.NASSAU,
    EventType.NASSAU_PRESS_ADDED: GameType.NASSAU,
    EventType.WOLF_PARTNER_CHOSEN: GameType.WOLF,
    EventType.WOLF_HOLE_RECORDED: GameType.WOLF,
}


@dataclass
class SideGameState:
    """
    Side-game state rebuilt from events.

    Attributes:
        game_id: UUID of the game.
        game_type: Wager format.
        name: Display name.
        status: Lifecycle status.
        players: Roster handed in at creation.
        engine: Format-specific engine state.
        sequence_num: Last applied event sequence (the game's revision).
    """
    game_id: str
    game_type: Optional[GameType] = None
    name: str = ""
    status: GameStatus = GameStatus.SETUP
    players: list[Player] = field(default_factory=list)
    engine: Optional[EngineState] = None
    sequence_num: int = 0

    @property
    def revision(self) -> int:
        return self.sequence_num

    def apply(self, event: GameEvent) -> "SideGameState":
        """
        Apply an event to produce new state.

        Events must be applied in sequence order. A rejected event leaves
        the state exactly as it was.

        Args:
            event: The event to apply.

        Returns:
            self for chaining.

        Raises:
            ValueError: If the event is out of sequence or of unknown type.
            ValidationError: If the event is not allowed in the current state.
            InvariantViolation: If the event would break a game invariant.
        """
        expected_seq = self.sequence_num + 1
        if event.sequence_num != expected_seq:
            raise ValueError(
                f"Expected sequence {expected_seq}, got {event.sequence_num}"
            )

        handler = getattr(self, f"_apply_{event.event_type.value}", None)
        if handler is None:
            raise ValueError(f"Unknown event type: {event.event_type}")

        if event.event_type is not EventType.GAME_CREATED and self.engine is None:
            raise ValidationError("Game has not been created")

        required = _SCORING_EVENTS.get(event.event_type)
        if required is not None:
            if self.game_type is not required:
                raise ValidationError(
                    f"{event.event_type.value} does not apply to a {self.game_type.value} game"
                )
            if self.status is GameStatus.COMPLETED:
                raise ValidationError("Game is completed; reopen it to change scores")

        handler(event)
        self.sequence_num = event.sequence_num
        return self

    # -------------------------------------------------------------------------
    # Lifecycle Event Handlers
    # -------------------------------------------------------------------------

    def _apply_game_created(self, event: GameEvent) -> None:
        if self.engine is not None:
            raise ValidationError("Game already created")
        data = event.data
        game_type = GameType(data["game_type"])
        players = [Player.from_dict(p) for p in data.get("players", [])]
        config = data.get("config", {})

        if game_type is GameType.SKINS:
            engine = skins.new_skins_state(skins.SkinsConfig.from_dict(config), data["player_ids"])
        elif game_type is GameType.NASSAU:
            teams = [Team.from_dict(t) for t in data.get("teams", [])]
            if len(teams) != 2:
                raise ValidationError("Nassau requires exactly two teams")
            engine = nassau.new_nassau_state(nassau.NassauConfig.from_dict(config), teams[0], teams[1])
        else:
            engine = wolf.new_wolf_state(wolf.WolfConfig.from_dict(config), data["player_ids"])

        self.game_type = game_type
        self.name = data.get("name", "")
        self.players = players
        self.engine = engine
        self.status = GameStatus.SETUP

    def _apply_game_renamed(self, event: GameEvent) -> None:
        self.name = event.data["name"]

    def _apply_game_closed(self, event: GameEvent) -> None:
        if self.status is GameStatus.COMPLETED:
            raise ValidationError("Game is already completed")
        self.status = GameStatus.COMPLETED

    def _apply_game_reopened(self, event: GameEvent) -> None:
        if self.status is not GameStatus.COMPLETED:
            raise ValidationError("Only a completed game can be reopened")
        # Engine state is always derived from the ledger, so nothing cached is resumed.
        self.status = GameStatus.ACTIVE if self._has_holes() else GameStatus.SETUP

    # -------------------------------------------------------------------------
    # Scoring Event Handlers
    # -------------------------------------------------------------------------

    def _apply_skins_hole_recorded(self, event: GameEvent) -> None:
        self.engine = skins.record_hole_winner(
            self.engine, event.data["hole_number"], event.data.get("winner_id")
        )
        self._advance(completes_on_last_hole=False, hole_number=event.data["hole_number"])

    def _apply_nassau_hole_recorded(self, event: GameEvent) -> None:
        data = event.data
        self.engine = nassau.record_hole_result(
            self.engine, data["hole_number"], data["team1_score"], data["team2_score"]
        )
        self._advance(completes_on_last_hole=True, hole_number=data["hole_number"])

    def _apply_nassau_press_added(self, event: GameEvent) -> None:
        data = event.data
        self.engine = nassau.add_manual_press(
            self.engine,
            nassau.Nine(data["nine"]),
            nassau.NassauTeam(data["team"]),
            data["at_hole"],
            press_id=data["press_id"],
            value=data.get("value"),
        )

    def _apply_wolf_partner_chosen(self, event: GameEvent) -> None:
        data = event.data
        self.engine = wolf.choose_wolf_partner(
            self.engine,
            data["hole_number"],
            data["wolf_id"],
            data.get("partner_id"),
            data.get("is_pig", False),
        )
        if self.status is GameStatus.SETUP:
            self.status = GameStatus.ACTIVE

    def _apply_wolf_hole_recorded(self, event: GameEvent) -> None:
        self.engine = wolf.record_hole_outcome(
            self.engine, event.data["hole_number"], wolf.WolfSide(event.data["winner"])
        )
        self._advance(completes_on_last_hole=True, hole_number=event.data["hole_number"])

    # -------------------------------------------------------------------------
    # Lifecycle helpers
    # -------------------------------------------------------------------------

    def _advance(self, completes_on_last_hole: bool, hole_number: int) -> None:
        if completes_on_last_hole and hole_number == LAST_HOLE:
            self.status = GameStatus.COMPLETED
        elif self.status is GameStatus.SETUP:
            self.status = GameStatus.ACTIVE

    def _has_holes(self) -> bool:
        if isinstance(self.engine, wolf.WolfState):
            return len(self.engine.decisions) > 0
        return len(self.engine.ledger) > 0

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    def settlement(self):
        """Settlement view for the game's format."""
        if self.game_type is GameType.SKINS:
            return settle_skins(self.engine, self.players)
        if self.game_type is GameType.NASSAU:
            return settle_nassau(self.engine, self.players)
        return settle_wolf(self.engine, self.players)

    def to_dict(self) -> dict:
        """Snapshot for the cache and API responses."""
        snapshot = {
            "game_id": self.game_id,
            "game_type": self.game_type.value if self.game_type else None,
            "name": self.name,
            "status": self.status.value,
            "revision": self.revision,
            "players": [p.to_dict() for p in self.players],
        }
        if self.engine is None:
            return snapshot

        if isinstance(self.engine, skins.SkinsState):
            snapshot["holes"] = [r.to_dict() for r in self.engine.results]
            snapshot["pending_carry_over"] = str(self.engine.pending_carry_over)
        elif isinstance(self.engine, nassau.NassauState):
            snapshot["front"] = self.engine.front.to_dict()
            snapshot["back"] = self.engine.back.to_dict()
            snapshot["overall"] = self.engine.overall.to_dict()
            snapshot["presses"] = [p.to_dict() for p in self.engine.presses]
            snapshot["teams"] = [self.engine.team1.to_dict(), self.engine.team2.to_dict()]
        else:
            snapshot["rotation"] = list(self.engine.rotation)
            snapshot["holes"] = [r.to_dict() for r in self.engine.results]
            snapshot["net_points"] = self.engine.net_points

        snapshot["settlement"] = self.settlement().to_dict()
        return snapshot


def replay(events: list[GameEvent]) -> SideGameState:
    """
    Rebuild side-game state from its event log.

    Args:
        events: List of events in sequence order.

    Returns:
        Reconstructed game state.

    Raises:
        ValueError: If events list is empty or has invalid sequence.
    """
    if not events:
        raise ValueError("Cannot rebuild state from empty event list")

    state = SideGameState(game_id=events[0].game_id)
    for event in events:
        state.apply(event)

    return state

