"""
Nassau engine.

A Nassau is three independent match-play bets between two teams: the
front nine (holes 1-9), the back nine (10-18) and the overall (1-18).
Each hole is won by the team with the lower score; equal scores halve it.

Presses are extra bets opened mid-nine by the trailing team. They run
from their starting hole to the end of their nine and are scored the
same way as the base bet. Presses are either automatic (opened by the
engine when a team falls far enough behind) or manual, never both in
the same game.

All derived state (nine tallies and automatic presses) is recomputed
from the hole ledger in hole order on every mutation, so replaying the
log always reproduces the incremental state.

Usage:
    state = new_nassau_state(NassauConfig(base_value=Decimal("10")), team1, team2)
    state = record_hole_result(state, 1, 4, 5)
    payouts = calculate_payouts(state, players)
"""

import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from constants import BACK_NINE_HOLES, FRONT_NINE_HOLES, OVERALL_HOLES
from engines.ledger import HoleResultLedger, parse_amount, parse_count, parse_flag, validate_hole_number
from errors import InvariantViolation, ValidationError
from models.roster import Player, Team, player_names, resolve_name


class Nine(str, Enum):
    """The three Nassau bets."""
    FRONT = "front"
    BACK = "back"
    OVERALL = "overall"

    @property
    def holes(self) -> range:
        return NINE_HOLES[self]


NINE_HOLES: dict[Nine, range] = {
    Nine.FRONT: FRONT_NINE_HOLES,
    Nine.BACK: BACK_NINE_HOLES,
    Nine.OVERALL: OVERALL_HOLES,
}


class NassauTeam(str, Enum):
    """Nassau sides."""
    TEAM1 = "team1"
    TEAM2 = "team2"

    @property
    def opponent(self) -> "NassauTeam":
        return NassauTeam.TEAM2 if self is NassauTeam.TEAM1 else NassauTeam.TEAM1


def nines_for_hole(hole_number: int) -> tuple[Nine, Nine]:
    """The segment nine and the overall bet a hole counts toward."""
    segment = Nine.FRONT if hole_number in FRONT_NINE_HOLES else Nine.BACK
    return segment, Nine.OVERALL


@dataclass(frozen=True)
class NassauConfig:
    """
    Nassau stakes and press rules.

    Attributes:
        base_value: Value of each of the three base bets and of each press.
        auto_press_enabled: Open presses automatically (disables manual presses).
        auto_press_threshold: Holes down that trigger each automatic press.
        max_presses_per_nine: Cap on presses per nine.
    """
    base_value: Decimal
    auto_press_enabled: bool = True
    auto_press_threshold: int = 2
    max_presses_per_nine: int = 3

    def to_dict(self) -> dict:
        return {
            "base_value": str(self.base_value),
            "auto_press_enabled": self.auto_press_enabled,
            "auto_press_threshold": self.auto_press_threshold,
            "max_presses_per_nine": self.max_presses_per_nine,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "NassauConfig":
        return cls(
            base_value=parse_amount(d.get("base_value"), "Nassau base value"),
            auto_press_enabled=parse_flag(d.get("auto_press_enabled", True), "auto_press_enabled"),
            auto_press_threshold=parse_count(d.get("auto_press_threshold", 2), "auto_press_threshold"),
            max_presses_per_nine=parse_count(d.get("max_presses_per_nine", 3), "max_presses_per_nine"),
        )


@dataclass(frozen=True)
class NassauHoleScore:
    """Raw team scores for one hole."""
    hole_number: int
    team1_score: int
    team2_score: int

    @property
    def winner(self) -> Optional[NassauTeam]:
        if self.team1_score < self.team2_score:
            return NassauTeam.TEAM1
        if self.team2_score < self.team1_score:
            return NassauTeam.TEAM2
        return None


@dataclass(frozen=True)
class NineState:
    """
    Running tally for one nine.

    Attributes:
        team1_holes: Holes won by team 1.
        team2_holes: Holes won by team 2.
        halves: Holes halved.
    """
    team1_holes: int = 0
    team2_holes: int = 0
    halves: int = 0

    @property
    def differential(self) -> int:
        """Team 1 holes up (negative when team 2 leads)."""
        return self.team1_holes - self.team2_holes

    @property
    def leader(self) -> Optional[NassauTeam]:
        if self.differential > 0:
            return NassauTeam.TEAM1
        if self.differential < 0:
            return NassauTeam.TEAM2
        return None

    def holes_down(self, team: NassauTeam) -> int:
        diff = self.differential if team is NassauTeam.TEAM2 else -self.differential
        return max(diff, 0)

    def with_hole(self, winner: Optional[NassauTeam]) -> "NineState":
        if winner is NassauTeam.TEAM1:
            return replace(self, team1_holes=self.team1_holes + 1)
        if winner is NassauTeam.TEAM2:
            return replace(self, team2_holes=self.team2_holes + 1)
        return replace(self, halves=self.halves + 1)

    def to_dict(self) -> dict:
        return {
            "team1_holes": self.team1_holes,
            "team2_holes": self.team2_holes,
            "halves": self.halves,
        }


@dataclass(frozen=True)
class Press:
    """
    A press bet.

    Attributes:
        id: Press identifier.
        nine: Nine the press belongs to.
        pressed_by_team: Team that opened the press (the trailing team).
        at_hole: First hole the press covers.
        value: Stake of the press.
        is_auto: Whether the engine opened it automatically.
    """
    id: str
    nine: Nine
    pressed_by_team: NassauTeam
    at_hole: int
    value: Decimal
    is_auto: bool = False

    @property
    def holes(self) -> range:
        return range(self.at_hole, self.nine.holes.stop)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nine": self.nine.value,
            "pressed_by_team": self.pressed_by_team.value,
            "at_hole": self.at_hole,
            "value": str(self.value),
            "is_auto": self.is_auto,
        }


@dataclass(frozen=True)
class NassauState:
    """
    Nassau game state.

    Attributes:
        config: Stakes and press rules.
        team1: First side.
        team2: Second side.
        ledger: Raw NassauHoleScore per hole.
        manual_presses: Presses requested by the teams, in request order.
        front: Front nine tally.
        back: Back nine tally.
        overall: Overall tally.
        presses: Every press in effect (automatic and manual).
    """
    config: NassauConfig
    team1: Team
    team2: Team
    ledger: HoleResultLedger = field(default_factory=HoleResultLedger)
    manual_presses: tuple[Press, ...] = field(default_factory=tuple)
    front: NineState = field(default_factory=NineState)
    back: NineState = field(default_factory=NineState)
    overall: NineState = field(default_factory=NineState)
    presses: tuple[Press, ...] = field(default_factory=tuple)

    def nine_state(self, nine: Nine) -> NineState:
        return {Nine.FRONT: self.front, Nine.BACK: self.back, Nine.OVERALL: self.overall}[nine]

    def presses_for(self, nine: Nine) -> list[Press]:
        return [p for p in self.presses if p.nine is nine]

    def is_decided(self, nine: Nine) -> bool:
        """True when the unplayed holes of a nine can no longer change its leader."""
        remaining = len(self.ledger.unrecorded(nine.holes))
        return abs(self.nine_state(nine).differential) > remaining


def new_nassau_state(config: NassauConfig, team1: Team, team2: Team) -> NassauState:
    """Create an empty Nassau between two teams."""
    if config.base_value <= 0:
        raise ValidationError("Nassau base value must be positive")
    if config.auto_press_threshold < 1:
        raise ValidationError("Auto-press threshold must be at least 1")
    if config.max_presses_per_nine < 0:
        raise ValidationError("Max presses per nine cannot be negative")
    if not team1.member_ids or not team2.member_ids:
        raise ValidationError("Both Nassau teams need at least one player")
    if set(team1.member_ids) & set(team2.member_ids):
        raise ValidationError("A player cannot be on both Nassau teams")
    return NassauState(config=config, team1=team1, team2=team2)


def _auto_press(
    config: NassauConfig,
    nine: Nine,
    tally: NineState,
    presses: list[Press],
    hole_number: int,
    remaining: int,
) -> Optional[Press]:
    """Press opened after hole_number for a segment nine, if any."""
    trailing = tally.leader.opponent if tally.leader else None
    if trailing is None:
        return None
    at_hole = hole_number + 1
    if at_hole not in nine.holes:
        return None
    if abs(tally.differential) > remaining:
        return None

    nine_presses = [p for p in presses if p.nine is nine]
    if len(nine_presses) >= config.max_presses_per_nine:
        return None

    team_presses = [p for p in nine_presses if p.pressed_by_team is trailing]
    if tally.holes_down(trailing) < config.auto_press_threshold * (len(team_presses) + 1):
        return None

    return Press(
        id=f"auto-{nine.value}-{trailing.value}-{at_hole}",
        nine=nine,
        pressed_by_team=trailing,
        at_hole=at_hole,
        value=config.base_value,
        is_auto=True,
    )


def _derive(state: NassauState) -> NassauState:
    """Recompute tallies and automatic presses from the ledger in hole order."""
    tallies = {nine: NineState() for nine in Nine}
    presses = list(state.manual_presses)

    for hole_number, score in state.ledger.items():
        winner = score.winner
        segment, overall = nines_for_hole(hole_number)
        tallies[segment] = tallies[segment].with_hole(winner)
        tallies[overall] = tallies[overall].with_hole(winner)

        if state.config.auto_press_enabled:
            remaining = len([h for h in segment.holes if h > hole_number])
            press = _auto_press(state.config, segment, tallies[segment], presses, hole_number, remaining)
            if press is not None:
                presses.append(press)

    return replace(
        state,
        front=tallies[Nine.FRONT],
        back=tallies[Nine.BACK],
        overall=tallies[Nine.OVERALL],
        presses=tuple(presses),
    )


def record_hole_result(
    state: NassauState,
    hole_number: int,
    team1_score: int,
    team2_score: int,
) -> NassauState:
    """
    Record both teams' scores for a hole.

    Re-entering a hole replaces its earlier scores and re-derives every
    tally and automatic press.

    Raises:
        ValidationError: If the hole is off the course or a score is not a
            positive integer.
    """
    validate_hole_number(hole_number)
    for score in (team1_score, team2_score):
        if isinstance(score, bool) or not isinstance(score, int) or score < 1:
            raise ValidationError(f"Hole scores must be positive integers, got {score!r}")

    ledger = state.ledger.record(
        hole_number, NassauHoleScore(hole_number, team1_score, team2_score)
    )
    return _derive(replace(state, ledger=ledger))


def add_manual_press(
    state: NassauState,
    nine: Nine,
    team: NassauTeam,
    at_hole: int,
    press_id: Optional[str] = None,
    value: Optional[Decimal] = None,
) -> NassauState:
    """
    Open a press by hand.

    The pressing team must not be leading the nine; a press from an
    all-square position is allowed.

    Args:
        value: Stake for the press (Decimal or decimal string); defaults
            to the base value.

    Raises:
        ValidationError: If auto-press is enabled, the nine already has the
            maximum presses, at_hole is outside the nine or already played,
            the value is not a positive amount, or the team is leading.
        InvariantViolation: If the nine is already mathematically decided.
    """
    nine = Nine(nine)
    team = NassauTeam(team)
    validate_hole_number(at_hole)
    if value is not None:
        value = parse_amount(value, "Press value")
        if value <= 0:
            raise ValidationError(f"Press value must be positive, got {value}")

    if state.config.auto_press_enabled:
        raise ValidationError("Manual presses are not allowed when auto-press is enabled")
    if len(state.presses_for(nine)) >= state.config.max_presses_per_nine:
        raise ValidationError(
            f"Maximum presses ({state.config.max_presses_per_nine}) already reached for the {nine.value} nine"
        )
    if at_hole not in nine.holes:
        raise ValidationError(f"Hole {at_hole} is not part of the {nine.value} nine")
    last_played = state.ledger.last_recorded(nine.holes)
    if last_played is not None and at_hole <= last_played:
        raise ValidationError(
            f"A press must start after the last played hole of the {nine.value} nine ({last_played})"
        )
    if state.is_decided(nine):
        raise InvariantViolation(f"The {nine.value} nine is already decided")
    if state.nine_state(nine).leader is team:
        raise ValidationError(f"{team.value} leads the {nine.value} nine and cannot press")

    press = Press(
        id=press_id or uuid.uuid4().hex,
        nine=nine,
        pressed_by_team=team,
        at_hole=at_hole,
        value=value if value is not None else state.config.base_value,
        is_auto=False,
    )
    return _derive(replace(state, manual_presses=state.manual_presses + (press,)))


def replay_nassau(
    config: NassauConfig,
    team1: Team,
    team2: Team,
    log: Iterable[tuple[int, int, int]],
) -> NassauState:
    """Fold a log of (hole_number, team1_score, team2_score) entries."""
    state = new_nassau_state(config, team1, team2)
    for hole_number, team1_score, team2_score in log:
        state = record_hole_result(state, hole_number, team1_score, team2_score)
    return state


# =============================================================================
# Payouts
# =============================================================================


@dataclass(frozen=True)
class BetResult:
    """Outcome of one base bet or press."""
    nine: Nine
    winner: Optional[NassauTeam]
    amount: Decimal
    team1_holes: int
    team2_holes: int
    is_closed: bool
    press: Optional[Press] = None

    @property
    def is_push(self) -> bool:
        return self.winner is None

    def to_dict(self) -> dict:
        return {
            "nine": self.nine.value,
            "winner": self.winner.value if self.winner else "push",
            "amount": str(self.amount),
            "team1_holes": self.team1_holes,
            "team2_holes": self.team2_holes,
            "is_closed": self.is_closed,
            "press": self.press.to_dict() if self.press else None,
        }


@dataclass(frozen=True)
class NassauPayouts:
    """Settlement view of a Nassau."""
    front: BetResult
    back: BetResult
    overall: BetResult
    press_results: tuple[BetResult, ...]
    total_team1: Decimal
    total_team2: Decimal
    team1_names: tuple[str, ...] = ()
    team2_names: tuple[str, ...] = ()

    @property
    def net_settlement(self) -> Decimal:
        return abs(self.total_team1 - self.total_team2)

    @property
    def owed_by(self) -> Optional[NassauTeam]:
        if self.total_team1 < self.total_team2:
            return NassauTeam.TEAM1
        if self.total_team2 < self.total_team1:
            return NassauTeam.TEAM2
        return None

    @property
    def owed_to(self) -> Optional[NassauTeam]:
        return self.owed_by.opponent if self.owed_by else None

    def to_dict(self) -> dict:
        return {
            "front": self.front.to_dict(),
            "back": self.back.to_dict(),
            "overall": self.overall.to_dict(),
            "presses": [p.to_dict() for p in self.press_results],
            "total_team1": str(self.total_team1),
            "total_team2": str(self.total_team2),
            "net_settlement": str(self.net_settlement),
            "owed_by": self.owed_by.value if self.owed_by else None,
            "owed_to": self.owed_to.value if self.owed_to else None,
        }


def _score_holes(state: NassauState, nine: Nine, holes: range, amount: Decimal, press=None) -> BetResult:
    tally = NineState()
    for hole_number in holes:
        score = state.ledger.get(hole_number)
        if score is not None:
            tally = tally.with_hole(score.winner)
    return BetResult(
        nine=nine,
        winner=tally.leader,
        amount=amount,
        team1_holes=tally.team1_holes,
        team2_holes=tally.team2_holes,
        is_closed=not state.ledger.unrecorded(holes),
        press=press,
    )


def calculate_payouts(state: NassauState, players: Optional[list[Player]] = None) -> NassauPayouts:
    """
    Settle the three base bets and every press.

    Works on in-progress games too: open bets are scored on the holes
    played so far and flagged with is_closed=False.
    """
    base = state.config.base_value
    bets = {nine: _score_holes(state, nine, nine.holes, base) for nine in Nine}
    press_results = tuple(
        _score_holes(state, press.nine, press.holes, press.value, press=press)
        for press in state.presses
    )

    totals = {NassauTeam.TEAM1: Decimal("0"), NassauTeam.TEAM2: Decimal("0")}
    for result in list(bets.values()) + list(press_results):
        if result.winner is not None:
            totals[result.winner] += result.amount

    names = player_names(players or [])
    return NassauPayouts(
        front=bets[Nine.FRONT],
        back=bets[Nine.BACK],
        overall=bets[Nine.OVERALL],
        press_results=press_results,
        total_team1=totals[NassauTeam.TEAM1],
        total_team2=totals[NassauTeam.TEAM2],
        team1_names=tuple(resolve_name(names, pid) for pid in state.team1.member_ids),
        team2_names=tuple(resolve_name(names, pid) for pid in state.team2.member_ids),
    )
