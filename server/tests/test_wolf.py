"""
Tests for the wolf engine.

Rotation, partner/lone/pig declarations, point swings and payouts.
Every hole must be zero-sum across the four players.
"""

from decimal import Decimal

import pytest

from engines.wolf import (
    WolfConfig,
    WolfSide,
    choose_wolf_partner,
    new_wolf_state,
    payouts,
    record_hole_outcome,
    replay_wolf,
    wolf_for_hole,
)
from engines.settlement import settle_wolf
from errors import ValidationError
from models.roster import Player


ROTATION = ["a", "b", "c", "d"]


def make_state(buy_in="1", pig_available=True, points_per_hole=1):
    config = WolfConfig(
        buy_in=Decimal(buy_in),
        pig_available=pig_available,
        points_per_hole=points_per_hole,
    )
    return new_wolf_state(config, ROTATION)


def play_hole(state, hole, partner_id=None, is_pig=False, winner=WolfSide.WOLF):
    wolf_id = wolf_for_hole(state, hole)
    state = choose_wolf_partner(state, hole, wolf_id, partner_id, is_pig)
    return record_hole_outcome(state, hole, winner)


class TestConfig:

    def test_round_trips_through_dict(self):
        config = WolfConfig(buy_in=Decimal("2"), pig_available=False, points_per_hole=2)

        assert WolfConfig.from_dict(config.to_dict()) == config

    @pytest.mark.parametrize("config", [
        {"buy_in": "abc"},
        {"buy_in": "1", "pig_available": "yes"},
        {"buy_in": "1", "points_per_hole": "1"},
        {"buy_in": "-Infinity"},
    ])
    def test_bad_config_rejected(self, config):
        with pytest.raises(ValidationError):
            WolfConfig.from_dict(config)


class TestRotation:

    def test_round_robin(self):
        state = make_state()

        assert [wolf_for_hole(state, h) for h in range(1, 9)] == ROTATION * 2
        assert wolf_for_hole(state, 18) == "b"

    def test_requires_four_players(self):
        with pytest.raises(ValidationError):
            new_wolf_state(WolfConfig(buy_in=Decimal("1")), ["a", "b", "c"])

    def test_duplicate_players_rejected(self):
        with pytest.raises(ValidationError):
            new_wolf_state(WolfConfig(buy_in=Decimal("1")), ["a", "b", "c", "a"])


class TestDeclarations:

    def test_wrong_wolf_rejected(self):
        with pytest.raises(ValidationError):
            choose_wolf_partner(make_state(), 1, "b", "c")

    def test_partner_must_be_in_game(self):
        with pytest.raises(ValidationError):
            choose_wolf_partner(make_state(), 1, "a", "zed")

    def test_cannot_partner_self(self):
        with pytest.raises(ValidationError):
            choose_wolf_partner(make_state(), 1, "a", "a")

    def test_pig_with_partner_rejected(self):
        with pytest.raises(ValidationError):
            choose_wolf_partner(make_state(), 1, "a", "b", is_pig=True)

    def test_pig_unavailable(self):
        with pytest.raises(ValidationError):
            choose_wolf_partner(make_state(pig_available=False), 1, "a", is_pig=True)

    def test_pig_once_per_round(self):
        """c is wolf on holes 3 and 7; the second pig is refused."""
        state = choose_wolf_partner(make_state(), 3, "c", is_pig=True)

        with pytest.raises(ValidationError):
            choose_wolf_partner(state, 7, "c", is_pig=True)

    def test_redeclaring_pig_on_same_hole(self):
        state = choose_wolf_partner(make_state(), 3, "c", is_pig=True)
        state = choose_wolf_partner(state, 3, "c", is_pig=True)

        assert state.decisions.get(3).is_pig

    def test_outcome_needs_declaration(self):
        with pytest.raises(ValidationError):
            record_hole_outcome(make_state(), 1, WolfSide.WOLF)

    def test_rejected_declaration_leaves_state_untouched(self):
        state = make_state()

        with pytest.raises(ValidationError):
            choose_wolf_partner(state, 2, "a", "c")

        assert len(state.decisions) == 0


class TestPoints:
    """Point swings per declaration."""

    def test_lone_wolf_wins(self):
        state = play_hole(make_state(), 1, winner=WolfSide.WOLF)

        assert state.results[0].points == {"a": 6, "b": -2, "c": -2, "d": -2}
        assert state.results[0].is_lone_wolf

    def test_lone_wolf_loses(self):
        state = play_hole(make_state(), 1, winner=WolfSide.PACK)

        assert state.results[0].points == {"a": -6, "b": 2, "c": 2, "d": 2}

    def test_partner_pack_wins(self):
        state = play_hole(make_state(), 2, partner_id="c", winner=WolfSide.PACK)

        assert state.results[0].points == {"a": 1, "b": -1, "c": -1, "d": 1}

    def test_pig_wins(self):
        state = play_hole(make_state(), 3, is_pig=True, winner=WolfSide.WOLF)

        assert state.results[0].points == {"a": -3, "b": -3, "c": 9, "d": -3}

    def test_push_moves_nothing(self):
        state = play_hole(make_state(), 1, partner_id="b", winner=WolfSide.PUSH)

        assert set(state.results[0].points.values()) == {0}

    def test_points_per_hole_scales_stake(self):
        state = play_hole(make_state(points_per_hole=2), 1, winner=WolfSide.WOLF)

        assert state.results[0].points["a"] == 12

    def test_outcome_reentry_replaces(self):
        state = play_hole(make_state(), 1, winner=WolfSide.WOLF)
        state = record_hole_outcome(state, 1, WolfSide.PACK)

        assert len(state.results) == 1
        assert state.net_points["a"] == -6


class TestFullRound:

    def build_round(self):
        log = []
        outcomes = [WolfSide.WOLF, WolfSide.PACK, WolfSide.PUSH]
        for hole in range(1, 19):
            wolf_id = ROTATION[(hole - 1) % 4]
            if hole == 4:
                log.append(("decision", hole, wolf_id, None, True))
            elif hole % 3 == 0:
                log.append(("decision", hole, wolf_id, None, False))
            else:
                partner = ROTATION[hole % 4]
                log.append(("decision", hole, wolf_id, partner, False))
            log.append(("outcome", hole, outcomes[hole % 3]))
        return replay_wolf(WolfConfig(buy_in=Decimal("2")), ROTATION, log)

    def test_every_hole_zero_sum(self):
        state = self.build_round()

        assert len(state.results) == 18
        for result in state.results:
            assert sum(result.points.values()) == 0
        assert sum(state.net_points.values()) == 0
        assert state.is_complete

    def test_payouts_ranked_and_balanced(self):
        state = self.build_round()

        rows = payouts(state, [Player("a", "Ann")])

        amounts = [r.net_amount for r in rows]
        assert amounts == sorted(amounts, reverse=True)
        assert sum(amounts) == Decimal("0")
        assert all(r.net_amount == r.net_points * Decimal("2") for r in rows)
        assert {r.player_id: r.player_name for r in rows}["a"] == "Ann"
        assert {r.player_id: r.player_name for r in rows}["b"] == "Unknown"

    def test_settlement_balances(self):
        result = settle_wolf(self.build_round())

        assert sum(b.net_amount for b in result.balances) == Decimal("0")


class TestStandings:

    def test_lone_and_pig_stats(self):
        state = make_state()
        state = play_hole(state, 1, winner=WolfSide.WOLF)
        state = play_hole(state, 5, winner=WolfSide.PACK)
        state = play_hole(state, 3, is_pig=True, winner=WolfSide.WOLF)

        standings = state.standings()

        assert standings["a"].wolves_played == 2
        assert standings["a"].lone_wolf_attempts == 2
        assert standings["a"].lone_wolf_wins == 1
        assert standings["c"].pig_attempts == 1
        assert standings["c"].pig_wins == 1
        assert standings["c"].lone_wolf_wins == 1
        assert standings["b"].wolves_played == 0
