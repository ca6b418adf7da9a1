"""5x3 video slot with five paylines, WILD substitution and SCATTER pays.

The house edge lives entirely in the reel strip weighting; a spin's result is
never adjusted after the fact.
"""
from decimal import Decimal
from typing import List, Optional, Sequence

from .results import SlotsResult, to_money
from .rng import random_int

WILD = 'WILD'
SCATTER = 'SCATTER'

REEL_STRIP = [
    'GRAPE', 'LEMON', 'ORANGE', 'PLUM', 'CHERRY', 'GRAPE', 'BELL', 'LEMON',
    'ORANGE', 'PLUM', 'BAR', 'GRAPE', 'LEMON', 'CHERRY', 'ORANGE', 'BELL',
    'PLUM', 'GRAPE', 'LEMON', 'ORANGE', '7', 'PLUM', 'GRAPE', 'CHERRY',
    'BELL', 'LEMON', 'ORANGE', WILD, 'PLUM', SCATTER,
]

# symbol -> {run length: multiplier of the per-line stake}
PAYOUTS = {
    '7': {3: 50, 4: 100, 5: 500},
    'BAR': {3: 20, 4: 40, 5: 200},
    'CHERRY': {2: 1, 3: 10, 4: 25, 5: 100},
    'BELL': {3: 5, 4: 15, 5: 75},
    WILD: {3: 25, 4: 50, 5: 250},
    'LEMON': {3: 2, 4: 5, 5: 15},
    'ORANGE': {3: 2, 4: 5, 5: 15},
    'PLUM': {3: 2, 4: 5, 5: 15},
    'GRAPE': {3: 2, 4: 5, 5: 15},
}

# Row index per reel
PAYLINES = [
    [1, 1, 1, 1, 1],  # middle row
    [0, 0, 0, 0, 0],  # top row
    [2, 2, 2, 2, 2],  # bottom row
    [0, 1, 2, 1, 0],  # V
    [2, 1, 0, 1, 2],  # inverted V
]

REELS = 5
ROWS = 3

# scatter count -> multiplier of the total stake
SCATTER_PAYS = {3: 5, 4: 20, 5: 50}


def scatter_multiplier(count: int) -> int:
    if count < 3:
        return 0
    return SCATTER_PAYS.get(count, SCATTER_PAYS[5])


def max_total_win(stake) -> Decimal:
    """Upper bound for a single spin: every line at the best pay plus the top scatter pay."""
    stake = Decimal(str(stake))
    best_line = max(max(pays.values()) for pays in PAYOUTS.values())
    per_line = stake / len(PAYLINES)
    return to_money(per_line * best_line * len(PAYLINES) + stake * SCATTER_PAYS[5])


def _line_symbol(symbols: Sequence[str]) -> str:
    """The symbol a payline pays on: first non-wild, or WILD if all are wild."""
    for sym in symbols:
        if sym != WILD:
            return sym
    return WILD


def evaluate_grid(grid: List[List[str]], stake) -> SlotsResult:
    """Score a grid laid out as ``grid[reel][row]``."""
    stake = to_money(stake)
    bet_per_line = stake / len(PAYLINES)
    wins = []
    total = Decimal('0')

    for line_idx, line in enumerate(PAYLINES):
        symbols = [grid[reel][row] for reel, row in enumerate(line)]
        target = _line_symbol(symbols)
        if target == SCATTER:
            continue
        count = 0
        for sym in symbols:
            if sym == target or sym == WILD:
                count += 1
            else:
                break
        multiplier = PAYOUTS.get(target, {}).get(count)
        if multiplier:
            amount = bet_per_line * multiplier
            total += amount
            wins.append({'line': line_idx, 'symbol': target, 'count': count, 'amount': to_money(amount)})

    scatters = sum(1 for column in grid for sym in column if sym == SCATTER)
    scatter_mult = scatter_multiplier(scatters)
    if scatter_mult:
        scatter_win = stake * scatter_mult
        total += scatter_win
        wins.append({'line': -1, 'symbol': SCATTER, 'count': scatters, 'amount': to_money(scatter_win)})

    return SlotsResult(payout=to_money(total), grid=grid, wins=wins, stake=stake)


def grid_from_stops(stops: Sequence[int]) -> List[List[str]]:
    strip_len = len(REEL_STRIP)
    return [[REEL_STRIP[(stop + row) % strip_len] for row in range(ROWS)] for stop in stops]


def spin(stake, stops: Optional[Sequence[int]] = None) -> SlotsResult:
    if stops is None:
        stops = [random_int(0, len(REEL_STRIP)) for _ in range(REELS)]
    result = evaluate_grid(grid_from_stops(stops), stake)
    result.reel_stops = list(stops)
    return result
