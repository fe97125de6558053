"""
Tests for the settlement calculator: per-game balances and trip-wide
debt simplification.
"""

from decimal import Decimal

import pytest

from engines.settlement import (
    PlayerBalance,
    combine_balances,
    settle_skins,
    simplify_debts,
    to_cents,
)
from engines.skins import SkinsConfig, replay_skins
from models.roster import Player


def balance(pid, amount):
    return PlayerBalance(pid, pid.upper(), Decimal(amount))


class TestSkinsSettlement:

    def test_net_against_equal_share(self):
        """A wins a 15 pot among three players: +10, -5, -5."""
        state = replay_skins(
            SkinsConfig(per_hole=Decimal("5")),
            ["a", "b", "c"],
            [(1, None), (2, None), (3, "a")],
        )

        result = settle_skins(state, [Player("a", "Ann"), Player("b", "Bo"), Player("c", "Cy")])

        nets = {b.player_id: b.net_amount for b in result.balances}
        assert nets == {"a": Decimal("10.00"), "b": Decimal("-5.00"), "c": Decimal("-5.00")}
        assert result.total_pot == Decimal("15")
        assert result.to_dict()["standings"][0]["player_name"] == "Ann"

    def test_pending_carry_reported(self):
        state = replay_skins(SkinsConfig(per_hole=Decimal("5")), ["a", "b"], [(1, None)])

        result = settle_skins(state)

        assert result.pending_carry_over == Decimal("5")
        assert all(b.net_amount == 0 for b in result.balances)


class TestSimplifyDebts:

    def test_largest_creditor_paid_by_largest_debtor(self):
        transfers = simplify_debts([
            balance("a", "30"),
            balance("b", "-20"),
            balance("c", "-10"),
        ])

        assert [(t.from_id, t.to_id, t.amount) for t in transfers] == [
            ("b", "a", Decimal("20.00")),
            ("c", "a", Decimal("10.00")),
        ]

    def test_debtor_split_across_creditors(self):
        transfers = simplify_debts([
            balance("a", "15"),
            balance("b", "5"),
            balance("c", "-20"),
        ])

        assert [(t.from_id, t.to_id, t.amount) for t in transfers] == [
            ("c", "a", Decimal("15.00")),
            ("c", "b", Decimal("5.00")),
        ]

    def test_everyone_square(self):
        assert simplify_debts([balance("a", "0"), balance("b", "0")]) == []

    def test_dust_dropped(self):
        transfers = simplify_debts([balance("a", "0.004"), balance("b", "-0.004")])

        assert transfers == []

    def test_transfers_cover_all_debt(self):
        balances = [
            balance("a", "42.50"),
            balance("b", "-12.25"),
            balance("c", "7.75"),
            balance("d", "-38"),
        ]

        transfers = simplify_debts(balances)

        paid = {}
        for t in transfers:
            paid[t.from_id] = paid.get(t.from_id, Decimal("0")) - t.amount
            paid[t.to_id] = paid.get(t.to_id, Decimal("0")) + t.amount
        assert paid == {b.player_id: b.net_amount for b in balances}
        assert len(transfers) <= len(balances) - 1


class TestCombineBalances:

    def test_sums_across_games(self):
        combined = combine_balances([
            [balance("a", "10"), balance("b", "-10")],
            [balance("b", "4"), balance("c", "-4")],
        ])

        assert [(b.player_id, b.net_amount) for b in combined] == [
            ("a", Decimal("10")),
            ("b", Decimal("-6")),
            ("c", Decimal("-4")),
        ]


@pytest.mark.parametrize("raw,expected", [
    ("1.005", "1.01"),
    ("2.5", "2.50"),
    ("-3.333", "-3.33"),
])
def test_to_cents(raw, expected):
    assert to_cents(Decimal(raw)) == Decimal(expected)
