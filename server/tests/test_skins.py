"""
Tests for the skins engine.

Covers carry-over pots, corrections to earlier holes, standings and the
conservation property: with carry-over on, awarded pots plus the pending
carry always equal one stake per recorded hole.
"""

from decimal import Decimal

import pytest

from engines.skins import (
    Push,
    SkinsConfig,
    Win,
    new_skins_state,
    record_hole_winner,
    replay_skins,
    standings,
)
from errors import ValidationError
from models.roster import Player


PLAYERS = ["a", "b", "c"]


def make_state(per_hole="5", carry_over=True):
    return new_skins_state(SkinsConfig(per_hole=Decimal(per_hole), carry_over=carry_over), PLAYERS)


def conserved(state) -> bool:
    stakes = state.config.per_hole * len(state.ledger)
    return state.total_awarded + state.pending_carry_over == stakes


class TestCarryOver:
    """Pushed stakes roll into the next won hole."""

    def test_two_pushes_then_win(self):
        """Holes 1-2 push, hole 3 won: the winner takes three stakes."""
        state = make_state()
        state = record_hole_winner(state, 1, None)
        state = record_hole_winner(state, 2, None)
        state = record_hole_winner(state, 3, "a")

        hole3 = state.results[-1]
        assert hole3.winner_id == "a"
        assert hole3.amount == Decimal("15")
        assert hole3.carry_over == Decimal("10")
        assert state.pending_carry_over == Decimal("0")

    def test_push_amount_is_stake_for_audit(self):
        state = record_hole_winner(make_state(), 1, None)

        assert state.results[0].is_push
        assert state.results[0].amount == Decimal("5")
        assert state.total_awarded == Decimal("0")
        assert state.pending_carry_over == Decimal("5")

    def test_ledger_uses_tagged_outcomes(self):
        state = make_state()
        state = record_hole_winner(state, 1, None)
        state = record_hole_winner(state, 2, "b")

        assert state.ledger.get(1) == Push()
        assert state.ledger.get(2) == Win("b")

    def test_carry_stops_at_previous_win(self):
        state = replay_skins(
            SkinsConfig(per_hole=Decimal("5")),
            PLAYERS,
            [(1, None), (2, "a"), (3, None), (4, "b")],
        )

        assert [r.amount for r in state.results] == [Decimal("5"), Decimal("10"), Decimal("5"), Decimal("10")]

    def test_unrecorded_hole_does_not_break_carry(self):
        """A gap in entry order still carries pushes recorded before it."""
        state = make_state()
        state = record_hole_winner(state, 1, None)
        state = record_hole_winner(state, 3, "c")

        assert state.results[-1].amount == Decimal("10")

    def test_carry_over_disabled(self):
        state = make_state(carry_over=False)
        state = record_hole_winner(state, 1, None)
        state = record_hole_winner(state, 2, "a")

        assert state.results[-1].amount == Decimal("5")
        assert state.pending_carry_over == Decimal("0")


class TestCorrections:
    """Re-entering a hole re-derives every later hole."""

    def test_correcting_earlier_push_to_win(self):
        state = make_state()
        for hole, winner in [(1, None), (2, None), (3, "a")]:
            state = record_hole_winner(state, hole, winner)

        state = record_hole_winner(state, 1, "b")

        amounts = {r.hole_number: r.amount for r in state.results}
        assert amounts == {1: Decimal("5"), 2: Decimal("5"), 3: Decimal("10")}
        assert len(state.results) == 3
        assert conserved(state)

    def test_rejected_winner_leaves_state_untouched(self):
        state = record_hole_winner(make_state(), 1, "a")

        with pytest.raises(ValidationError):
            record_hole_winner(state, 2, "zed")

        assert len(state.ledger) == 1

    @pytest.mark.parametrize("hole", [0, 19])
    def test_off_course_hole_rejected(self, hole):
        with pytest.raises(ValidationError):
            record_hole_winner(make_state(), hole, "a")


class TestConservation:
    """Awarded plus pending always equals stakes recorded."""

    def test_full_round(self):
        winners = [None, "a", None, None, "b", "c", None, "a", None,
                   "b", None, None, None, "c", "a", None, "b", None]
        state = make_state()
        for hole, winner in enumerate(winners, start=1):
            state = record_hole_winner(state, hole, winner)
            assert conserved(state)

        assert state.pending_carry_over == Decimal("5")
        assert state.total_awarded == Decimal("85")

    def test_out_of_order_entry(self):
        state = make_state()
        for hole, winner in [(5, "a"), (2, None), (4, None), (1, "b"), (3, None)]:
            state = record_hole_winner(state, hole, winner)
            assert conserved(state)


class TestSetup:

    def test_needs_two_players(self):
        with pytest.raises(ValidationError):
            new_skins_state(SkinsConfig(per_hole=Decimal("5")), ["a"])

    def test_needs_positive_stake(self):
        with pytest.raises(ValidationError):
            new_skins_state(SkinsConfig(per_hole=Decimal("0")), PLAYERS)

    def test_config_round_trips_through_dict(self):
        config = SkinsConfig(per_hole=Decimal("2.50"), carry_over=False)
        assert SkinsConfig.from_dict(config.to_dict()) == config

    @pytest.mark.parametrize("config", [
        {"per_hole": "abc"},
        {"per_hole": None},
        {"per_hole": True},
        {"per_hole": "NaN"},
        {"per_hole": "5", "carry_over": "yes"},
    ])
    def test_bad_config_rejected(self, config):
        with pytest.raises(ValidationError):
            SkinsConfig.from_dict(config)


class TestStandings:

    def test_ranked_by_winnings_with_zero_win_players(self):
        roster = [Player("a", "Ann", "Lee"), Player("b", "Bo", "Kim"), Player("c", "Cy", "Ng")]
        state = make_state()
        for hole, winner in [(1, None), (2, "b"), (3, "a"), (4, None), (5, None), (6, "a")]:
            state = record_hole_winner(state, hole, winner)

        rows = standings(state, roster)

        assert [r.player_id for r in rows] == ["a", "b", "c"]
        assert rows[0].player_name == "Ann Lee"
        assert rows[0].skins == 2
        assert rows[0].winnings == Decimal("20")
        assert rows[1].winnings == Decimal("10")
        assert rows[2].skins == 0
        assert rows[2].winnings == Decimal("0")

    def test_ties_keep_participant_order(self):
        roster = [Player("c"), Player("b"), Player("a")]
        state = make_state()

        rows = standings(state, roster)

        assert [r.player_id for r in rows] == ["c", "b", "a"]

    def test_unknown_names_fall_back(self):
        rows = standings(make_state(), [])

        assert all(r.player_name == "Unknown" for r in rows)
