"""
Skins engine.

Each hole is worth a fixed stake. A hole with an outright winner pays the
winner that hole's stake plus every stake carried over from consecutive
pushes since the last won hole. A pushed hole pays nothing and its stake
carries forward.

Carry-over is recomputed by rescanning the whole ledger on every
mutation, so correcting an earlier hole re-derives the pot of every hole
after it.

Usage:
    state = new_skins_state(SkinsConfig(per_hole=Decimal("5")), ["a", "b"])
    state = record_hole_winner(state, 1, None)
    state = record_hole_winner(state, 2, "a")
    print(state.results[-1].amount)  # 10
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Optional, Union

from engines.ledger import HoleResultLedger, parse_amount, parse_flag, validate_hole_number
from errors import ValidationError
from models.roster import Player, player_names, resolve_name


@dataclass(frozen=True)
class Win:
    """Hole won outright by one player."""
    winner_id: str


@dataclass(frozen=True)
class Push:
    """Hole with no outright winner."""
    pass


HoleOutcome = Union[Win, Push]


def outcome_for(winner_id: Optional[str]) -> HoleOutcome:
    """Build the tagged outcome for an optional winner id."""
    return Win(winner_id) if winner_id is not None else Push()


@dataclass(frozen=True)
class SkinsConfig:
    """
    Skins stakes.

    Attributes:
        per_hole: Value of a single hole.
        carry_over: Whether pushed stakes roll into the next won hole.
    """
    per_hole: Decimal
    carry_over: bool = True

    def to_dict(self) -> dict:
        return {"per_hole": str(self.per_hole), "carry_over": self.carry_over}

    @classmethod
    def from_dict(cls, d: dict) -> "SkinsConfig":
        return cls(
            per_hole=parse_amount(d.get("per_hole"), "Skins per-hole value"),
            carry_over=parse_flag(d.get("carry_over", True), "carry_over"),
        )


@dataclass(frozen=True)
class SkinsHoleResult:
    """
    Derived result for one recorded hole.

    Attributes:
        hole_number: Hole 1-18.
        winner_id: Winning player, or None on a push.
        amount: Pot awarded on a win (stake + carry-over); the stake on a push.
        carry_over: Stakes carried into this hole from earlier pushes.
    """
    hole_number: int
    winner_id: Optional[str]
    amount: Decimal
    carry_over: Decimal = Decimal("0")

    @property
    def is_push(self) -> bool:
        return self.winner_id is None

    def to_dict(self) -> dict:
        return {
            "hole_number": self.hole_number,
            "winner_id": self.winner_id,
            "amount": str(self.amount),
            "carry_over": str(self.carry_over),
        }


@dataclass(frozen=True)
class SkinsStanding:
    """A player's skins tally."""
    player_id: str
    player_name: str
    skins: int
    winnings: Decimal


@dataclass(frozen=True)
class SkinsState:
    """
    Skins game state.

    Attributes:
        config: Stakes.
        player_ids: Players in the game, in roster order.
        ledger: Raw Win/Push outcome per hole.
        results: Derived per-hole amounts, in hole order.
    """
    config: SkinsConfig
    player_ids: tuple[str, ...] = field(default_factory=tuple)
    ledger: HoleResultLedger = field(default_factory=HoleResultLedger)
    results: tuple[SkinsHoleResult, ...] = field(default_factory=tuple)

    @property
    def pending_carry_over(self) -> Decimal:
        """Stakes from trailing pushes still waiting for a winner."""
        if not self.config.carry_over:
            return Decimal("0")
        pending = Decimal("0")
        for result in reversed(self.results):
            if not result.is_push:
                break
            pending += self.config.per_hole
        return pending

    @property
    def total_awarded(self) -> Decimal:
        return sum((r.amount for r in self.results if not r.is_push), Decimal("0"))


def new_skins_state(config: SkinsConfig, player_ids: Iterable[str]) -> SkinsState:
    """Create an empty skins game."""
    if config.per_hole <= 0:
        raise ValidationError("Skins per-hole value must be positive")
    ids = tuple(player_ids)
    if len(ids) < 2:
        raise ValidationError("Skins requires at least two players")
    if len(set(ids)) != len(ids):
        raise ValidationError("Skins players must be unique")
    return SkinsState(config=config, player_ids=ids)


def carry_over_for(config: SkinsConfig, ledger: HoleResultLedger, hole_number: int) -> Decimal:
    """
    Stakes carried into a hole.

    Walks back from the hole before hole_number, adding one stake per
    recorded push until it reaches a recorded win. Unrecorded holes add
    nothing and do not stop the walk.
    """
    if not config.carry_over:
        return Decimal("0")
    carry = Decimal("0")
    for hole in range(hole_number - 1, 0, -1):
        outcome = ledger.get(hole)
        if outcome is None:
            continue
        if isinstance(outcome, Win):
            break
        carry += config.per_hole
    return carry


def derive_results(config: SkinsConfig, ledger: HoleResultLedger) -> tuple[SkinsHoleResult, ...]:
    """Rescan the ledger and compute every recorded hole's amount."""
    results = []
    for hole_number, outcome in ledger.items():
        carry = carry_over_for(config, ledger, hole_number)
        if isinstance(outcome, Win):
            results.append(SkinsHoleResult(
                hole_number=hole_number,
                winner_id=outcome.winner_id,
                amount=config.per_hole + carry,
                carry_over=carry,
            ))
        else:
            results.append(SkinsHoleResult(
                hole_number=hole_number,
                winner_id=None,
                amount=config.per_hole,
                carry_over=carry,
            ))
    return tuple(results)


def record_hole_winner(
    state: SkinsState,
    hole_number: int,
    winner_id: Optional[str],
) -> SkinsState:
    """
    Record the winner of a hole (None for a push).

    Re-entering a hole replaces its earlier outcome.

    Raises:
        ValidationError: If the hole is off the course or the winner is not
            one of the game's players.
    """
    validate_hole_number(hole_number)
    if winner_id is not None and winner_id not in state.player_ids:
        raise ValidationError(f"Player {winner_id} is not in this skins game")

    ledger = state.ledger.record(hole_number, outcome_for(winner_id))
    return replace(state, ledger=ledger, results=derive_results(state.config, ledger))


def replay_skins(
    config: SkinsConfig,
    player_ids: Iterable[str],
    log: Iterable[tuple[int, Optional[str]]],
) -> SkinsState:
    """Fold a log of (hole_number, winner_id) entries into a skins state."""
    state = new_skins_state(config, player_ids)
    for hole_number, winner_id in log:
        state = record_hole_winner(state, hole_number, winner_id)
    return state


def standings(state: SkinsState, participants: list[Player]) -> list[SkinsStanding]:
    """
    Rank players by skins winnings.

    Ties keep participant order.
    """
    names = player_names(participants)
    order = [p.id for p in participants if p.id in state.player_ids]
    order += [pid for pid in state.player_ids if pid not in order]

    rows = []
    for player_id in order:
        won = [r for r in state.results if r.winner_id == player_id]
        rows.append(SkinsStanding(
            player_id=player_id,
            player_name=resolve_name(names, player_id),
            skins=len(won),
            winnings=sum((r.amount for r in won), Decimal("0")),
        ))

    return sorted(rows, key=lambda s: s.winnings, reverse=True)
