"""
Rule constants for golf trip side games.

This module is the single source of truth for hole ranges and
wager multipliers. Default stake values are configurable and live
in config.py.

Nines:
    - Front: holes 1-9
    - Back: holes 10-18
    - Overall: holes 1-18

Wolf multipliers:
    - Wolf with partner: x1
    - Lone wolf: x2
    - Pig (lone wolf declared before anyone tees off): x3
"""

FIRST_HOLE: int = 1
LAST_HOLE: int = 18

FRONT_NINE_HOLES: range = range(1, 10)
BACK_NINE_HOLES: range = range(10, 19)
OVERALL_HOLES: range = range(1, 19)

# Wolf
WOLF_PLAYER_COUNT: int = 4
PARTNER_MULTIPLIER: int = 1
LONE_WOLF_MULTIPLIER: int = 2
PIG_MULTIPLIER: int = 3

# Settlement transfers below this amount are dropped as rounding dust
SETTLEMENT_DUST: str = "0.01"

# Column widths of the side_games / side_game_events tables
MAX_GAME_NAME_LENGTH: int = 100
MAX_PLAYER_ID_LENGTH: int = 50
