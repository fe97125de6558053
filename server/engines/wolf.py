"""
Wolf engine.

Four players take turns being the wolf in a fixed rotation. On each hole
the wolf either picks a partner (2 vs 2), goes lone wolf (1 vs 3, stakes
doubled) or declares pig (1 vs 3, stakes tripled). Each player may
declare pig at most once per round.

Every hole is zero-sum: each pack player wins or loses
points_per_hole x multiplier and the wolf side takes the opposite of the
pack total, split equally. A lone wolf who wins at x2 therefore takes +6
while each of the three pack players goes -2.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from constants import (
    LAST_HOLE,
    LONE_WOLF_MULTIPLIER,
    PARTNER_MULTIPLIER,
    PIG_MULTIPLIER,
    WOLF_PLAYER_COUNT,
)
from engines.ledger import HoleResultLedger, parse_amount, parse_count, parse_flag, validate_hole_number
from errors import ValidationError
from models.roster import Player, player_names, resolve_name


class WolfSide(str, Enum):
    """Outcome of a wolf hole."""
    WOLF = "wolf"
    PACK = "pack"
    PUSH = "push"


@dataclass(frozen=True)
class WolfConfig:
    """
    Wolf stakes.

    Attributes:
        buy_in: Dollar value of one point.
        pig_available: Whether pig declarations are allowed.
        points_per_hole: Base points each pack player wins or loses on a hole.
    """
    buy_in: Decimal
    pig_available: bool = True
    points_per_hole: int = 1

    def to_dict(self) -> dict:
        return {
            "buy_in": str(self.buy_in),
            "pig_available": self.pig_available,
            "points_per_hole": self.points_per_hole,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "WolfConfig":
        return cls(
            buy_in=parse_amount(d.get("buy_in"), "Wolf buy-in"),
            pig_available=parse_flag(d.get("pig_available", True), "pig_available"),
            points_per_hole=parse_count(d.get("points_per_hole", 1), "points_per_hole"),
        )


@dataclass(frozen=True)
class WolfDecision:
    """The wolf's declaration for a hole."""
    hole_number: int
    wolf_id: str
    partner_id: Optional[str] = None
    is_pig: bool = False

    @property
    def is_lone_wolf(self) -> bool:
        return self.partner_id is None

    @property
    def multiplier(self) -> int:
        if self.partner_id is not None:
            return PARTNER_MULTIPLIER
        return PIG_MULTIPLIER if self.is_pig else LONE_WOLF_MULTIPLIER

    @property
    def wolf_side(self) -> tuple[str, ...]:
        if self.partner_id is None:
            return (self.wolf_id,)
        return (self.wolf_id, self.partner_id)


@dataclass(frozen=True)
class WolfHoleResult:
    """A completed wolf hole and the points it moved."""
    hole_number: int
    wolf_id: str
    partner_id: Optional[str]
    is_lone_wolf: bool
    is_pig: bool
    winner: WolfSide
    points: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "hole_number": self.hole_number,
            "wolf_id": self.wolf_id,
            "partner_id": self.partner_id,
            "is_lone_wolf": self.is_lone_wolf,
            "is_pig": self.is_pig,
            "winner": self.winner.value,
            "points": dict(self.points),
        }


@dataclass(frozen=True)
class WolfStanding:
    """A player's running wolf totals."""
    player_id: str
    points: int = 0
    wolves_played: int = 0
    lone_wolf_attempts: int = 0
    lone_wolf_wins: int = 0
    pig_attempts: int = 0
    pig_wins: int = 0


@dataclass(frozen=True)
class WolfState:
    """
    Wolf game state.

    Attributes:
        config: Stakes.
        rotation: Player ids in wolf order; fixed for the round.
        decisions: WolfDecision per hole.
        outcomes: WolfSide per hole.
        results: Derived results for holes with both a decision and an outcome.
    """
    config: WolfConfig
    rotation: tuple[str, ...]
    decisions: HoleResultLedger = field(default_factory=HoleResultLedger)
    outcomes: HoleResultLedger = field(default_factory=HoleResultLedger)
    results: tuple[WolfHoleResult, ...] = field(default_factory=tuple)

    def pig_used_by(self, player_id: str, excluding_hole: Optional[int] = None) -> bool:
        """Whether the player already declared pig on a different hole."""
        return any(
            d.is_pig and d.wolf_id == player_id and hole != excluding_hole
            for hole, d in self.decisions.items()
        )

    def standings(self) -> dict[str, WolfStanding]:
        """Per-player totals in rotation order."""
        return _standings(self)

    @property
    def net_points(self) -> dict[str, int]:
        return {pid: s.points for pid, s in self.standings().items()}

    @property
    def is_complete(self) -> bool:
        return LAST_HOLE in self.outcomes


def new_wolf_state(config: WolfConfig, rotation: Iterable[str]) -> WolfState:
    """Create an empty wolf game with a fixed rotation."""
    order = tuple(rotation)
    if len(order) != WOLF_PLAYER_COUNT:
        raise ValidationError(f"Wolf requires exactly {WOLF_PLAYER_COUNT} players, got {len(order)}")
    if len(set(order)) != len(order):
        raise ValidationError("Wolf rotation contains duplicate players")
    if config.buy_in <= 0:
        raise ValidationError("Wolf buy-in must be positive")
    if config.points_per_hole < 1:
        raise ValidationError("Wolf points per hole must be at least 1")
    return WolfState(config=config, rotation=order)


def wolf_for_hole(state: WolfState, hole_number: int) -> str:
    """Round-robin wolf for a hole."""
    validate_hole_number(hole_number)
    return state.rotation[(hole_number - 1) % len(state.rotation)]


def _hole_points(state: WolfState, decision: WolfDecision, winner: WolfSide) -> dict[str, int]:
    """Zero-sum point swing for one hole."""
    points = {pid: 0 for pid in state.rotation}
    if winner is WolfSide.PUSH:
        return points

    wolf_side = list(decision.wolf_side)
    pack = [pid for pid in state.rotation if pid not in wolf_side]

    # Pack members always move by the stake; the wolf side takes the other side of it.
    stake = state.config.points_per_hole * decision.multiplier
    sign = 1 if winner is WolfSide.PACK else -1
    for pid in pack:
        points[pid] += sign * stake
    share = stake * len(pack) // len(wolf_side)
    for pid in wolf_side:
        points[pid] -= sign * share
    return points


def _derive(state: WolfState) -> WolfState:
    results = []
    for hole_number, winner in state.outcomes.items():
        decision = state.decisions.get(hole_number)
        if decision is None:
            continue
        results.append(WolfHoleResult(
            hole_number=hole_number,
            wolf_id=decision.wolf_id,
            partner_id=decision.partner_id,
            is_lone_wolf=decision.is_lone_wolf,
            is_pig=decision.is_pig,
            winner=winner,
            points=_hole_points(state, decision, winner),
        ))
    return replace(state, results=tuple(results))


def _standings(state: WolfState) -> dict[str, WolfStanding]:
    totals = {pid: dict(points=0, wolves_played=0, lone_wolf_attempts=0,
                        lone_wolf_wins=0, pig_attempts=0, pig_wins=0)
              for pid in state.rotation}

    for _, decision in state.decisions.items():
        row = totals[decision.wolf_id]
        row["wolves_played"] += 1
        if decision.is_lone_wolf:
            row["lone_wolf_attempts"] += 1
        if decision.is_pig:
            row["pig_attempts"] += 1

    for result in state.results:
        for pid, delta in result.points.items():
            totals[pid]["points"] += delta
        if result.winner is WolfSide.WOLF and result.is_lone_wolf:
            totals[result.wolf_id]["lone_wolf_wins"] += 1
            if result.is_pig:
                totals[result.wolf_id]["pig_wins"] += 1

    return {pid: WolfStanding(player_id=pid, **row) for pid, row in totals.items()}


def choose_wolf_partner(
    state: WolfState,
    hole_number: int,
    wolf_id: str,
    partner_id: Optional[str] = None,
    is_pig: bool = False,
) -> WolfState:
    """
    Record the wolf's declaration for a hole.

    No partner means lone wolf; no partner with is_pig means pig.
    Re-declaring a hole replaces the earlier declaration.

    Raises:
        ValidationError: If the player is not this hole's wolf, the partner is
            not a valid pick, or the pig declaration is not allowed.
    """
    expected = wolf_for_hole(state, hole_number)
    if wolf_id != expected:
        raise ValidationError(f"Hole {hole_number} wolf is {expected}, not {wolf_id}")

    if partner_id is not None:
        if partner_id not in state.rotation:
            raise ValidationError(f"Partner {partner_id} is not in this wolf game")
        if partner_id == wolf_id:
            raise ValidationError("The wolf cannot pick themselves as partner")
        if is_pig:
            raise ValidationError("Pig must be played without a partner")

    if is_pig:
        if not state.config.pig_available:
            raise ValidationError("Pig is not available in this game")
        if state.pig_used_by(wolf_id, excluding_hole=hole_number):
            raise ValidationError(f"Player {wolf_id} has already used their pig this round")

    decision = WolfDecision(
        hole_number=hole_number,
        wolf_id=wolf_id,
        partner_id=partner_id,
        is_pig=is_pig,
    )
    return _derive(replace(state, decisions=state.decisions.record(hole_number, decision)))


def record_hole_outcome(state: WolfState, hole_number: int, winner: WolfSide) -> WolfState:
    """
    Record which side won a hole and award points.

    Raises:
        ValidationError: If the hole has no wolf declaration yet.
    """
    validate_hole_number(hole_number)
    winner = WolfSide(winner)
    if hole_number not in state.decisions:
        raise ValidationError(f"Hole {hole_number} has no wolf declaration yet")
    return _derive(replace(state, outcomes=state.outcomes.record(hole_number, winner)))


def replay_wolf(
    config: WolfConfig,
    rotation: Iterable[str],
    log: Iterable[tuple],
) -> WolfState:
    """
    Fold a log into a wolf state.

    Entries are ("decision", hole, wolf_id, partner_id, is_pig) or
    ("outcome", hole, winner).
    """
    state = new_wolf_state(config, rotation)
    for entry in log:
        kind, args = entry[0], entry[1:]
        if kind == "decision":
            state = choose_wolf_partner(state, *args)
        elif kind == "outcome":
            state = record_hole_outcome(state, *args)
        else:
            raise ValueError(f"Unknown wolf log entry: {kind}")
    return state


@dataclass(frozen=True)
class WolfPayout:
    """A player's wolf settlement line."""
    player_id: str
    player_name: str
    net_points: int
    net_amount: Decimal
    standing: WolfStanding

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "net_points": self.net_points,
            "net_amount": str(self.net_amount),
            "wolves_played": self.standing.wolves_played,
            "lone_wolf_attempts": self.standing.lone_wolf_attempts,
            "lone_wolf_wins": self.standing.lone_wolf_wins,
            "pig_attempts": self.standing.pig_attempts,
            "pig_wins": self.standing.pig_wins,
        }


def payouts(state: WolfState, players: Optional[list[Player]] = None) -> list[WolfPayout]:
    """Net points and dollars per player, ranked by dollars (ties keep rotation order)."""
    names = player_names(players or [])
    rows = [
        WolfPayout(
            player_id=pid,
            player_name=resolve_name(names, pid),
            net_points=standing.points,
            net_amount=standing.points * state.config.buy_in,
            standing=standing,
        )
        for pid, standing in state.standings().items()
    ]
    return sorted(rows, key=lambda p: p.net_amount, reverse=True)
