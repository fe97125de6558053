"""Side-game engines: pure (state, result) -> state transitions."""

from .ledger import HoleResultLedger, validate_hole_number
from .skins import SkinsConfig, SkinsState, Win, Push, record_hole_winner, standings
from .nassau import (
    NassauConfig,
    NassauState,
    NassauTeam,
    Nine,
    Press,
    add_manual_press,
    calculate_payouts,
    record_hole_result,
)
from .wolf import (
    WolfConfig,
    WolfSide,
    WolfState,
    choose_wolf_partner,
    payouts,
    record_hole_outcome,
    wolf_for_hole,
)

__all__ = [
    "HoleResultLedger",
    "validate_hole_number",
    # Skins
    "SkinsConfig",
    "SkinsState",
    "Win",
    "Push",
    "record_hole_winner",
    "standings",
    # Nassau
    "NassauConfig",
    "NassauState",
    "NassauTeam",
    "Nine",
    "Press",
    "add_manual_press",
    "calculate_payouts",
    "record_hole_result",
    # Wolf
    "WolfConfig",
    "WolfSide",
    "WolfState",
    "choose_wolf_partner",
    "payouts",
    "record_hole_outcome",
    "wolf_for_hole",
]
