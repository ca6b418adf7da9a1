"""Result types returned by the game engines.

Each engine returns its own result class; the ledger only relies on the
shared projection: ``payout`` (Decimal, what to credit) and ``to_dict()``
(display-ready JSON, also stored as the bet's raw result blob).
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, ClassVar, Dict, List, Optional

CENT = Decimal('0.01')


def to_money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _out(value):
    return float(value) if value is not None else None


@dataclass
class GameResult:
    game_type: ClassVar[str] = ''
    payout: Optional[Decimal]

    @property
    def is_settled(self) -> bool:
        return self.payout is not None

    def display(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        payload = {'game_type': self.game_type}
        payload.update(self.display())
        payload['payout'] = _out(self.payout)
        return payload


@dataclass
class SlotsResult(GameResult):
    game_type: ClassVar[str] = 'slots'
    grid: List[List[str]] = field(default_factory=list)
    reel_stops: List[int] = field(default_factory=list)
    wins: List[Dict[str, Any]] = field(default_factory=list)
    stake: Decimal = Decimal('0')

    def display(self):
        from .slots import PAYLINES
        return {
            'grid': self.grid,
            'reel_stops': self.reel_stops,
            'paylines': PAYLINES,
            'wins': [dict(w, amount=_out(w['amount'])) for w in self.wins],
            'stake': _out(self.stake),
            'total_win': _out(self.payout),
        }


@dataclass
class RouletteResult(GameResult):
    game_type: ClassVar[str] = 'roulette'
    winning_number: int = 0
    color: str = 'green'
    results: List[Dict[str, Any]] = field(default_factory=list)
    total_stake: Decimal = Decimal('0')

    @property
    def net_win(self) -> Decimal:
        return to_money(self.payout - self.total_stake)

    def display(self):
        return {
            'winning_number': self.winning_number,
            'color': self.color,
            'results': [dict(r, stake=_out(r['stake']), payout=_out(r['payout'])) for r in self.results],
            'total_stake': _out(self.total_stake),
            'total_payout': _out(self.payout),
            'net_win': _out(self.net_win),
        }


@dataclass
class BlackjackResult(GameResult):
    game_type: ClassVar[str] = 'blackjack'
    hand_id: str = ''
    player_cards: List[str] = field(default_factory=list)
    dealer_cards: List[str] = field(default_factory=list)
    player_total: int = 0
    dealer_total: int = 0
    stake: Decimal = Decimal('0')
    status: str = 'playing'
    result: Optional[str] = None
    doubled_down: bool = False
    can_double: bool = False
    can_hit: bool = False

    def display(self):
        return {
            'hand_id': self.hand_id,
            'player_cards': self.player_cards,
            'dealer_cards': self.dealer_cards,
            'player_total': self.player_total,
            'dealer_total': self.dealer_total,
            'stake': _out(self.stake),
            'status': self.status,
            'result': self.result,
            'doubled_down': self.doubled_down,
            'can_double': self.can_double,
            'can_hit': self.can_hit,
        }


@dataclass
class PokerResult(GameResult):
    game_type: ClassVar[str] = 'poker'
    hand_id: str = ''
    cards: List[str] = field(default_factory=list)
    phase: str = 'deal'
    stake: Decimal = Decimal('0')
    hand_name: Optional[str] = None
    hand_rank: Optional[int] = None

    def display(self):
        payload = {
            'hand_id': self.hand_id,
            'cards': self.cards,
            'phase': self.phase,
            'stake': _out(self.stake),
        }
        if self.phase == 'complete':
            payload['hand_name'] = self.hand_name
            payload['hand_rank'] = self.hand_rank
        return payload
