"""Crash: a shared multiplier climbs until it hits a pre-committed crash point.

Cycle: waiting (bets open) -> running (ticks, cashouts) -> crashed -> waiting.
The crash point of every round is fixed when the round opens, from
HMAC(server_seed, round_number); only its commitment hash is published.
"""
import math
from decimal import Decimal
from typing import Optional

from casino.errors import RoundPhaseError
from .results import to_money
from .rng import hmac_hex, leading_int
from .rounds import ActiveBet, RoundGame

INSTANT_CRASH_MODULUS = 33
MIN_CRASH = Decimal('1.00')
MAX_CRASH = Decimal('1000.00')
DEFAULT_GROWTH_RATE = 0.00006


def crash_point_from_hash(outcome_hash: str) -> Decimal:
    h = leading_int(outcome_hash)
    # 1 in 33 rounds crash instantly; this is the house edge
    if h % INSTANT_CRASH_MODULUS == 0:
        return MIN_CRASH
    point = Decimal((100 * 2 ** 32) // (h + 1)) / 100
    return min(max(point, MIN_CRASH), MAX_CRASH).quantize(Decimal('0.01'))


def crash_point_for(seed: str, round_number: int) -> Decimal:
    return crash_point_from_hash(hmac_hex(seed, round_number))


class CrashRound:
    def __init__(self, number: int, crash_point: Decimal, outcome_hash: str, commitment: str, deadline: float):
        self.number = number
        self.crash_point = crash_point
        self.outcome_hash = outcome_hash
        self.commitment = commitment
        self.deadline = deadline
        self.phase = 'waiting'
        self.started_at: Optional[float] = None
        self.multiplier = Decimal('1.00')
        self.bets = {}


class CrashGame(RoundGame):
    game_type = 'crash'
    settled_phase = 'crashed'
    room = 'crash'

    def __init__(self, app=None, waiting_sec=10, crashed_sec=3, tick_ms=100,
                 growth_rate=DEFAULT_GROWTH_RATE, **kwargs):
        super().__init__(app=app, **kwargs)
        self.waiting_sec = waiting_sec
        self.crashed_sec = crashed_sec
        self.tick_ms = tick_ms
        self.growth_rate = growth_rate

    @classmethod
    def from_config(cls, app, **kwargs):
        cfg = app.config
        return cls(
            app=app,
            waiting_sec=int(cfg.get('CRASH_WAITING_SEC', 10)),
            crashed_sec=int(cfg.get('CRASH_CRASHED_SEC', 3)),
            tick_ms=int(cfg.get('CRASH_TICK_MS', 100)),
            growth_rate=float(cfg.get('CRASH_GROWTH_RATE', DEFAULT_GROWTH_RATE)),
            rotation_rounds=int(cfg.get('SEED_ROTATION_ROUNDS', 100)),
            **kwargs
        )

    @property
    def phase(self) -> Optional[str]:
        return self.round.phase if self.round is not None else None

    def multiplier_at(self, elapsed_ms: float) -> Decimal:
        return to_money(math.exp(self.growth_rate * max(0.0, elapsed_ms)))

    # ---- phase transitions ----

    def open_round(self, now: Optional[float] = None) -> CrashRound:
        now = self._clock() if now is None else now
        with self._lock:
            self.round_number += 1
            number = self.round_number
            outcome_hash = self.seed.outcome_hash(number)
            self.round = CrashRound(
                number=number,
                crash_point=crash_point_from_hash(outcome_hash),
                outcome_hash=outcome_hash,
                commitment=self.seed.commitment(number),
                deadline=now + self.waiting_sec,
            )
            self.emit('crash:waiting', {
                'round_id': number,
                'countdown': self.waiting_sec,
                'hash': self.round.commitment,
                'seed_hash': self.seed.seed_hash,
            })
            self.logger.info(f"[crash-waiting] round={number} commitment={self.round.commitment[:12]}")
            return self.round

    def start_running(self, now: Optional[float] = None) -> None:
        now = self._clock() if now is None else now
        with self._lock:
            rnd = self.round
            if rnd is None or rnd.phase != 'waiting':
                return
            rnd.phase = 'running'
            rnd.started_at = now
            rnd.multiplier = Decimal('1.00')
            self.emit('crash:start', {'round_id': rnd.number, 'bets': len(rnd.bets)})
            self.logger.info(f"[crash-start] round={rnd.number} bets={len(rnd.bets)}")
            # An instant crash ends before any cashout can be taken at 1.00x
            if rnd.multiplier >= rnd.crash_point:
                self._crash()

    def tick(self, now: Optional[float] = None) -> Optional[Decimal]:
        now = self._clock() if now is None else now
        with self._lock:
            rnd = self.round
            if rnd is None or rnd.phase != 'running':
                return None
            current = self.multiplier_at((now - rnd.started_at) * 1000)
            if current >= rnd.crash_point:
                rnd.multiplier = rnd.crash_point
                self.emit('crash:tick', {'multiplier': float(rnd.multiplier)})
                self._crash()
                return rnd.multiplier
            rnd.multiplier = max(current, rnd.multiplier)
            self.emit('crash:tick', {'multiplier': float(rnd.multiplier)})
            return rnd.multiplier

    def _crash(self) -> None:
        rnd = self.round
        rnd.phase = 'crashed'
        rnd.multiplier = rnd.crash_point
        self.history.appendleft(float(rnd.crash_point))
        losers = [b for b in rnd.bets.values() if not b.cashed_out]
        with self._context():
            self._settle_losers(losers, {
                'game_type': self.game_type,
                'round_id': rnd.number,
                'crash_point': float(rnd.crash_point),
            })
            self._record_round(rnd.number, rnd.outcome_hash, rnd.commitment,
                               str(rnd.crash_point), rnd.crash_point)
        self.emit('crash:end', {'crash_point': float(rnd.crash_point), 'round_id': rnd.number})
        self.logger.info(
            f"[crash-end] round={rnd.number} crash_point={rnd.crash_point} bets={len(rnd.bets)} lost={len(losers)}"
        )
        self._maybe_rotate_seed()

    # ---- participant actions ----

    def place_bet(self, user_id, username, amount):
        with self._lock:
            rnd = self.round
            if rnd is None or rnd.phase != 'waiting':
                raise RoundPhaseError('Bets only during waiting phase')
            if user_id in rnd.bets:
                raise RoundPhaseError('Already bet this round')
            with self._context():
                stake, bet_id, balance = self._accept_stake(user_id, amount, 'crash', 'Crash game bet')
            rnd.bets[user_id] = ActiveBet(user_id, username, stake, bet_id)
            self.emit('crash:bet_placed', {'username': username, 'amount': float(stake)})
            self.notify_balance(user_id, balance)
            return {'round_id': rnd.number, 'amount': float(stake), 'balance': float(balance)}

    def cashout(self, user_id):
        with self._lock:
            rnd = self.round
            if rnd is None or rnd.phase != 'running':
                raise RoundPhaseError('Game not running')
            bet = rnd.bets.get(user_id)
            if bet is None:
                raise RoundPhaseError('No bet found')
            if bet.cashed_out:
                raise RoundPhaseError('Already cashed out')

            multiplier = rnd.multiplier
            payout = to_money(bet.amount * multiplier)
            bet.cashed_out = True
            try:
                with self._context():
                    balance = self._pay_winner(bet, payout, {
                        'game_type': self.game_type,
                        'round_id': rnd.number,
                        'cashout_multiplier': float(multiplier),
                    }, f'Crash cashout at {multiplier}x')
            except Exception:
                bet.cashed_out = False
                raise
            bet.cashout_multiplier = multiplier
            bet.payout = payout
            self.emit('crash:cashed_out', {
                'username': bet.username,
                'multiplier': float(multiplier),
                'payout': float(payout),
            })
            self.notify_balance(user_id, balance)
            return {'payout': float(payout), 'multiplier': float(multiplier), 'balance': float(balance)}

    def state(self) -> dict:
        with self._lock:
            rnd = self.round
            if rnd is None:
                return {'status': None, 'round_id': 0, 'multiplier': 1.0, 'crash_point': None,
                        'bets': [], 'history': list(self.history), 'seed_hash': self.seed.seed_hash}
            return {
                'status': rnd.phase,
                'round_id': rnd.number,
                'multiplier': float(rnd.multiplier),
                'crash_point': float(rnd.crash_point) if rnd.phase == 'crashed' else None,
                'hash': rnd.commitment,
                'seed_hash': self.seed.seed_hash,
                'bets': [{
                    'username': b.username,
                    'amount': float(b.amount),
                    'cashed_out': b.cashed_out,
                    'cashout_multiplier': float(b.cashout_multiplier) if b.cashout_multiplier else None,
                } for b in rnd.bets.values()],
                'history': list(self.history),
            }

    def run_cycle(self, sleep) -> None:
        """One full round on wall-clock time; ``sleep`` must yield to other tasks."""
        self.open_round()
        sleep(self.waiting_sec)
        self.start_running()
        while self.phase == 'running':
            sleep(self.tick_ms / 1000.0)
            self.tick()
        sleep(self.crashed_sec)
