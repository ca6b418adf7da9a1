"""Color prediction: pick red, green or violet before the countdown locks.

Cycle: betting -> locked (last ``cutoff_sec`` seconds) -> result -> betting.
The winning colour is derived when the round opens, from the same
HMAC(server_seed, round_number) scheme as Crash.
"""
from decimal import Decimal
from typing import Optional

from casino.errors import RoundPhaseError, ValidationError
from .results import to_money
from .rng import hmac_hex, leading_int
from .rounds import ActiveBet, RoundGame

# colour -> payout multiplier (stake included)
COLORS = {
    'red': Decimal('2'),
    'green': Decimal('2'),
    'violet': Decimal('4.5'),
}
VIOLET_BUCKETS = 50   # 5%
RED_BUCKETS = 475     # 47.5%, green takes the remaining 47.5%


def color_from_hash(outcome_hash: str) -> str:
    value = leading_int(outcome_hash) % 1000
    if value < VIOLET_BUCKETS:
        return 'violet'
    if value < VIOLET_BUCKETS + RED_BUCKETS:
        return 'red'
    return 'green'


def color_for(seed: str, round_number: int) -> str:
    return color_from_hash(hmac_hex(seed, round_number))


class ColorRound:
    def __init__(self, number: int, color: str, outcome_hash: str, commitment: str, seconds_left: int):
        self.number = number
        self.color = color
        self.outcome_hash = outcome_hash
        self.commitment = commitment
        self.seconds_left = seconds_left
        self.phase = 'betting'
        self.bets = {}
        self.counts = {c: 0 for c in COLORS}


class ColorPredictionGame(RoundGame):
    game_type = 'color'
    settled_phase = 'result'
    room = 'color'

    def __init__(self, app=None, round_sec=60, cutoff_sec=10, result_sec=5, **kwargs):
        super().__init__(app=app, **kwargs)
        if cutoff_sec >= round_sec:
            raise ValueError('cutoff must be shorter than the round')
        self.round_sec = round_sec
        self.cutoff_sec = cutoff_sec
        self.result_sec = result_sec

    @classmethod
    def from_config(cls, app, **kwargs):
        cfg = app.config
        return cls(
            app=app,
            round_sec=int(cfg.get('COLOR_ROUND_SEC', 60)),
            cutoff_sec=int(cfg.get('COLOR_CUTOFF_SEC', 10)),
            result_sec=int(cfg.get('COLOR_RESULT_SEC', 5)),
            rotation_rounds=int(cfg.get('SEED_ROTATION_ROUNDS', 100)),
            **kwargs
        )

    @property
    def phase(self) -> Optional[str]:
        return self.round.phase if self.round is not None else None

    def open_round(self) -> ColorRound:
        with self._lock:
            self.round_number += 1
            number = self.round_number
            outcome_hash = self.seed.outcome_hash(number)
            self.round = ColorRound(
                number=number,
                color=color_from_hash(outcome_hash),
                outcome_hash=outcome_hash,
                commitment=self.seed.commitment(number),
                seconds_left=self.round_sec,
            )
            self.emit('color:new_round', {
                'round_id': number,
                'countdown': self.round_sec,
                'hash': self.round.commitment,
                'seed_hash': self.seed.seed_hash,
            })
            self.logger.info(f"[color-betting] round={number} commitment={self.round.commitment[:12]}")
            return self.round

    def tick(self) -> None:
        with self._lock:
            rnd = self.round
            if rnd is None or rnd.phase == 'result':
                return
            rnd.seconds_left -= 1
            if rnd.seconds_left == self.cutoff_sec:
                rnd.phase = 'locked'
                self.emit('color:locked', {'round_id': rnd.number})
                self.logger.info(f"[color-locked] round={rnd.number} bets={len(rnd.bets)}")
            if rnd.seconds_left <= 0:
                self.resolve()
                return
            self.emit('color:tick', {'seconds_left': rnd.seconds_left, 'status': rnd.phase})

    def resolve(self) -> None:
        with self._lock:
            rnd = self.round
            if rnd is None or rnd.phase == 'result':
                return
            rnd.phase = 'result'
            rnd.seconds_left = 0
            multiplier = COLORS[rnd.color]
            details = {'game_type': self.game_type, 'round_id': rnd.number, 'color': rnd.color}

            winners = []
            losers = []
            with self._context():
                for bet in rnd.bets.values():
                    if bet.selection != rnd.color:
                        losers.append(bet)
                        continue
                    payout = bet.amount * multiplier
                    balance = self._pay_winner(bet, payout, details, f'Color prediction win: {rnd.color}')
                    bet.payout = to_money(payout)
                    winners.append((bet, balance))
                self._settle_losers(losers, details)
                self._record_round(rnd.number, rnd.outcome_hash, rnd.commitment, rnd.color)

            self.history.appendleft({'round_id': rnd.number, 'color': rnd.color})
            self.emit('color:result', {
                'round_id': rnd.number,
                'color': rnd.color,
                'winners': [{
                    'username': b.username,
                    'amount': float(b.amount),
                    'payout': float(b.payout),
                } for b, _ in winners],
            })
            for bet, balance in winners:
                self.notify_balance(bet.user_id, balance)
            self.logger.info(
                f"[color-result] round={rnd.number} color={rnd.color} bets={len(rnd.bets)} winners={len(winners)}"
            )
            self._maybe_rotate_seed()

    def place_bet(self, user_id, username, color, amount):
        with self._lock:
            rnd = self.round
            if rnd is None or rnd.phase != 'betting':
                raise RoundPhaseError('Betting is closed')
            if color not in COLORS:
                raise ValidationError('Invalid color')
            if user_id in rnd.bets:
                raise RoundPhaseError('Already bet this round')
            with self._context():
                stake, bet_id, balance = self._accept_stake(user_id, amount, color, f'Color prediction: {color}')
            rnd.bets[user_id] = ActiveBet(user_id, username, stake, bet_id, selection=color)
            rnd.counts[color] += 1
            self.emit('color:bets_count', dict(rnd.counts))
            self.notify_balance(user_id, balance)
            return {'round_id': rnd.number, 'color': color, 'amount': float(stake), 'balance': float(balance)}

    def state(self) -> dict:
        with self._lock:
            rnd = self.round
            return {
                'status': rnd.phase if rnd else None,
                'round_id': rnd.number if rnd else 0,
                'seconds_left': rnd.seconds_left if rnd else 0,
                'bet_counts': dict(rnd.counts) if rnd else {c: 0 for c in COLORS},
                'result': rnd.color if rnd and rnd.phase == 'result' else None,
                'hash': rnd.commitment if rnd else None,
                'seed_hash': self.seed.seed_hash,
                'history': list(self.history),
            }

    def run_cycle(self, sleep) -> None:
        self.open_round()
        while self.phase != 'result':
            sleep(1)
            self.tick()
        sleep(self.result_sec)
