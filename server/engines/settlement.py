"""
Settlement calculator.

Turns any engine's state (final or in progress) into money:
- Nassau: one net transfer between the two teams, split per player.
- Skins: dollars won per player, net of an equal share of the pot.
- Wolf: points converted to dollars at the buy-in, ranked.

simplify_debts() then folds per-player balances from any number of
games into the shortest list of person-to-person payments.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from constants import SETTLEMENT_DUST
from engines import nassau, skins, wolf
from models.roster import Player, player_names, resolve_name

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PlayerBalance:
    """Net dollars for one player (positive = is owed money)."""
    player_id: str
    player_name: str
    net_amount: Decimal

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "net_amount": str(self.net_amount),
        }


@dataclass(frozen=True)
class Transfer:
    """A payment from one party to another."""
    from_id: str
    to_id: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {"from": self.from_id, "to": self.to_id, "amount": str(self.amount)}


@dataclass(frozen=True)
class TeamSettlement:
    """Net Nassau settlement between the two sides."""
    payouts: nassau.NassauPayouts
    transfer: Optional[Transfer]
    balances: tuple[PlayerBalance, ...]

    @property
    def is_push(self) -> bool:
        return self.transfer is None

    def to_dict(self) -> dict:
        return {
            "payouts": self.payouts.to_dict(),
            "transfer": self.transfer.to_dict() if self.transfer else None,
            "balances": [b.to_dict() for b in self.balances],
        }


def settle_nassau(state: nassau.NassauState, players: Optional[list[Player]] = None) -> TeamSettlement:
    """
    Net the Nassau into a single team-to-team transfer.

    The losing team's members each pay an equal share of the net amount
    and the winning team's members each receive an equal share.
    """
    payouts = nassau.calculate_payouts(state, players)
    names = player_names(players or [])
    teams = {nassau.NassauTeam.TEAM1: state.team1, nassau.NassauTeam.TEAM2: state.team2}

    shares: dict[str, Decimal] = {pid: Decimal("0") for t in teams.values() for pid in t.member_ids}
    transfer = None
    if payouts.owed_by is not None:
        payer = teams[payouts.owed_by]
        payee = teams[payouts.owed_to]
        net = payouts.net_settlement
        transfer = Transfer(from_id=payer.team_id, to_id=payee.team_id, amount=net)
        for pid in payer.member_ids:
            shares[pid] -= net / len(payer.member_ids)
        for pid in payee.member_ids:
            shares[pid] += net / len(payee.member_ids)

    balances = tuple(
        PlayerBalance(pid, resolve_name(names, pid), to_cents(amount))
        for pid, amount in shares.items()
    )
    return TeamSettlement(payouts=payouts, transfer=transfer, balances=balances)


@dataclass(frozen=True)
class SkinsSettlement:
    """Skins winnings and per-player net against an even split of the pot."""
    standings: tuple[skins.SkinsStanding, ...]
    balances: tuple[PlayerBalance, ...]
    total_pot: Decimal
    pending_carry_over: Decimal

    def to_dict(self) -> dict:
        return {
            "standings": [
                {
                    "player_id": s.player_id,
                    "player_name": s.player_name,
                    "skins": s.skins,
                    "winnings": str(s.winnings),
                }
                for s in self.standings
            ],
            "balances": [b.to_dict() for b in self.balances],
            "total_pot": str(self.total_pot),
            "pending_carry_over": str(self.pending_carry_over),
        }


def settle_skins(state: skins.SkinsState, players: Optional[list[Player]] = None) -> SkinsSettlement:
    """
    Convert skins won into balances.

    Every player funds an equal share of the awarded pot; the net is what
    they won minus that share.
    """
    ranked = skins.standings(state, players or [])
    total = state.total_awarded
    share = total / len(ranked) if ranked else Decimal("0")
    balances = tuple(
        PlayerBalance(s.player_id, s.player_name, to_cents(s.winnings - share))
        for s in ranked
    )
    return SkinsSettlement(
        standings=tuple(ranked),
        balances=balances,
        total_pot=total,
        pending_carry_over=state.pending_carry_over,
    )


@dataclass(frozen=True)
class WolfSettlement:
    """Ranked wolf payouts."""
    payouts: tuple[wolf.WolfPayout, ...]
    balances: tuple[PlayerBalance, ...]

    def to_dict(self) -> dict:
        return {
            "payouts": [p.to_dict() for p in self.payouts],
            "balances": [b.to_dict() for b in self.balances],
        }


def settle_wolf(state: wolf.WolfState, players: Optional[list[Player]] = None) -> WolfSettlement:
    ranked = wolf.payouts(state, players)
    balances = tuple(PlayerBalance(p.player_id, p.player_name, to_cents(p.net_amount)) for p in ranked)
    return WolfSettlement(payouts=tuple(ranked), balances=balances)


def combine_balances(balance_sets: Iterable[Iterable[PlayerBalance]]) -> list[PlayerBalance]:
    """Sum balances across games, keeping first-seen player order."""
    totals: dict[str, Decimal] = {}
    names: dict[str, str] = {}
    for balances in balance_sets:
        for b in balances:
            totals[b.player_id] = totals.get(b.player_id, Decimal("0")) + b.net_amount
            names.setdefault(b.player_id, b.player_name)
    return [PlayerBalance(pid, names[pid], amount) for pid, amount in totals.items()]


def simplify_debts(balances: Iterable[PlayerBalance]) -> list[Transfer]:
    """
    Reduce balances to a short list of payments.

    Greedily matches the largest creditor with the largest debtor until
    everyone is square. Amounts are rounded to cents and anything below
    one cent is dropped as rounding dust.
    """
    dust = Decimal(SETTLEMENT_DUST)
    creditors = sorted(
        ([b.player_id, b.net_amount] for b in balances if b.net_amount > 0),
        key=lambda c: c[1],
        reverse=True,
    )
    debtors = sorted(
        ([b.player_id, -b.net_amount] for b in balances if b.net_amount < 0),
        key=lambda d: d[1],
        reverse=True,
    )

    transfers = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        amount = min(creditor[1], debtor[1])
        if amount >= dust:
            transfers.append(Transfer(from_id=debtor[0], to_id=creditor[0], amount=to_cents(amount)))
        creditor[1] -= amount
        debtor[1] -= amount
        if creditor[1] < dust:
            i += 1
        if debtor[1] < dust:
            j += 1
    return transfers
