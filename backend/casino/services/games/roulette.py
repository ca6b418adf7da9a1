"""Single-zero (European) roulette."""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from casino.errors import ValidationError
from casino.services.ledger import parse_amount
from .results import RouletteResult, to_money
from .rng import random_int

RED_NUMBERS = frozenset([1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36])
BLACK_NUMBERS = frozenset([2, 4, 6, 8, 10, 11, 13, 15, 17, 20, 22, 24, 26, 28, 29, 31, 33, 35])


def get_color(number: int) -> str:
    if number == 0:
        return 'green'
    return 'red' if number in RED_NUMBERS else 'black'


def _covers(bet, num):
    return num in bet['numbers']


def _column(bet, num):
    return num != 0 and (num - 1) % 3 == bet['column'] - 1


def _dozen(bet, num):
    return num != 0 and (num - 1) // 12 + 1 == bet['dozen']


# type -> (payout multiplier, predicate(bet, winning_number), inside-bet number count)
BET_TYPES = {
    'straight': (35, lambda bet, num: num == bet['number'], None),
    'split': (17, _covers, 2),
    'street': (11, _covers, 3),
    'corner': (8, _covers, 4),
    'line': (5, _covers, 6),
    'column': (2, _column, None),
    'dozen': (2, _dozen, None),
    'red': (1, lambda bet, num: num in RED_NUMBERS, None),
    'black': (1, lambda bet, num: num in BLACK_NUMBERS, None),
    'odd': (1, lambda bet, num: num != 0 and num % 2 == 1, None),
    'even': (1, lambda bet, num: num != 0 and num % 2 == 0, None),
    'low': (1, lambda bet, num: 1 <= num <= 18, None),
    'high': (1, lambda bet, num: 19 <= num <= 36, None),
}


def _int_in(value, low, high, what):
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ValidationError(f'{what} must be an integer between {low} and {high}')
    return value


def validate_bet(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize one submitted bet or raise ValidationError."""
    if not isinstance(raw, dict):
        raise ValidationError('Each bet must be an object')
    bet_type = raw.get('type')
    if bet_type not in BET_TYPES:
        raise ValidationError(f'Unknown bet type: {bet_type}')
    stake = parse_amount(raw.get('stake'), 'Bet stake')

    bet = {'type': bet_type, 'stake': stake}
    _, _, count = BET_TYPES[bet_type]
    if bet_type == 'straight':
        bet['number'] = _int_in(raw.get('number'), 0, 36, 'number')
    elif count is not None:
        numbers = raw.get('numbers')
        if not isinstance(numbers, list) or len(numbers) != count:
            raise ValidationError(f'A {bet_type} bet needs exactly {count} numbers')
        numbers = [_int_in(n, 1, 36, 'numbers') for n in numbers]
        if len(set(numbers)) != count:
            raise ValidationError(f'A {bet_type} bet cannot repeat numbers')
        bet['numbers'] = numbers
    elif bet_type == 'column':
        bet['column'] = _int_in(raw.get('column'), 1, 3, 'column')
    elif bet_type == 'dozen':
        bet['dozen'] = _int_in(raw.get('dozen'), 1, 3, 'dozen')
    return bet


def validate_bets(raw_bets) -> List[Dict[str, Any]]:
    if not isinstance(raw_bets, list) or not raw_bets:
        raise ValidationError('Bets array is required')
    return [validate_bet(b) for b in raw_bets]


def describe_bet(bet: Dict[str, Any]) -> str:
    detail = bet.get('number', bet.get('numbers', bet.get('column', bet.get('dozen', ''))))
    if isinstance(detail, list):
        detail = '-'.join(str(n) for n in detail)
    return f"{bet['type']}:{detail}"


def total_stake(bets: List[Dict[str, Any]]) -> Decimal:
    return to_money(sum((b['stake'] for b in bets), Decimal('0')))


def spin_number() -> int:
    return random_int(0, 37)


def spin(bets: List[Dict[str, Any]], winning_number: Optional[int] = None) -> RouletteResult:
    """Evaluate already-validated bets against one draw."""
    if winning_number is None:
        winning_number = spin_number()

    results = []
    for bet in bets:
        multiplier, check, _ = BET_TYPES[bet['type']]
        won = check(bet, winning_number)
        payout = to_money(bet['stake'] + bet['stake'] * multiplier) if won else Decimal('0.00')
        results.append(dict(bet, won=won, payout=payout))

    return RouletteResult(
        payout=to_money(sum((r['payout'] for r in results), Decimal('0'))),
        winning_number=winning_number,
        color=get_color(winning_number),
        results=results,
        total_stake=total_stake(bets),
    )
