"""Shared machinery for the continuously running multiplayer games.

A RoundGame owns exactly one live round at a time. Every mutation of that
round (phase changes, bets, cashouts, resolution) happens under the game's
lock, so bet acceptance and phase transitions are strictly ordered, while the
ledger work for each participant runs in that participant's own account
transaction.
"""
import logging
import threading
import time
from collections import deque
from contextlib import nullcontext
from decimal import Decimal
from typing import Callable, Optional

from flask import has_app_context

from casino import db
from casino.models import Bet, CasinoRound
from casino.services import ledger
from .results import to_money
from .rng import generate_seed, hash_seed, hmac_hex, round_commitment

HISTORY_SIZE = 20


class SeedSession:
    """Secret server seed used for a run of consecutive rounds.

    Only ``seed_hash`` is public while the session is live; the seed itself is
    written to every CasinoRound of the session when it is retired.
    """

    def __init__(self, seed: Optional[str] = None):
        self.seed = seed or generate_seed()
        self.seed_hash = hash_seed(self.seed)

    def outcome_hash(self, round_number: int) -> str:
        return hmac_hex(self.seed, round_number)

    def commitment(self, round_number: int) -> str:
        return round_commitment(self.seed, round_number)


class ActiveBet:
    __slots__ = ('user_id', 'username', 'amount', 'bet_id', 'selection',
                 'cashed_out', 'cashout_multiplier', 'payout')

    def __init__(self, user_id, username, amount: Decimal, bet_id: int, selection: Optional[str] = None):
        self.user_id = user_id
        self.username = username
        self.amount = amount
        self.bet_id = bet_id
        self.selection = selection
        self.cashed_out = False
        self.cashout_multiplier: Optional[Decimal] = None
        self.payout = Decimal('0.00')


def _silent(event, payload, to=None):
    return None


class RoundGame:
    game_type = ''
    settled_phase = ''
    room = ''

    def __init__(self, app=None, emit: Optional[Callable] = None, clock: Callable[[], float] = time.monotonic,
                 server_seed: Optional[str] = None, rotation_rounds: int = 100, logger=None):
        self.app = app
        self._emit = emit or _silent
        self._clock = clock
        self._lock = threading.RLock()
        self.seed = SeedSession(server_seed)
        self.rotation_rounds = rotation_rounds
        self.round_number = 0
        self.round = None
        self.history = deque(maxlen=HISTORY_SIZE)
        self._retire_pending = False
        self.logger = logger or (app.logger if app is not None else logging.getLogger(__name__))

    def _context(self):
        if self.app is None or has_app_context():
            return nullcontext()
        return self.app.app_context()

    def emit(self, event: str, payload: dict, to: Optional[str] = None) -> None:
        self._emit(event, payload, to=to or self.room)

    def notify_balance(self, user_id, balance) -> None:
        self.emit('wallet:balance_update', {'balance': float(balance)}, to=f"user:{user_id}")

    # ---- ledger helpers ----

    def _accept_stake(self, user_id, amount, selection: str, description: str):
        """Debit the stake and open a pending Bet in one account transaction."""
        stake = ledger.parse_stake(amount)
        reference = f"{self.game_type}:{self.seed.seed_hash[:16]}:{self.round_number}"
        with ledger.locked_account(user_id) as account:
            balance = ledger.debit(account, stake, reference, description)
            bet = Bet(
                user_id=user_id,
                game_type=self.game_type,
                selection=selection,
                stake=stake,
                status='pending',
                round_reference=reference,
            )
            db.session.add(bet)
            db.session.flush()
            bet_id = bet.id
        return stake, bet_id, balance

    def _pay_winner(self, active: ActiveBet, payout: Decimal, details: dict, description: str) -> Decimal:
        payout = to_money(payout)
        with ledger.locked_account(active.user_id) as account:
            bet = db.session.get(Bet, active.bet_id)
            balance = ledger.credit(account, payout, bet.round_reference, description)
            bet.settle('won', payout, details)
        return balance

    def _settle_losers(self, bets, details: dict) -> None:
        ids = [b.bet_id for b in bets]
        if not ids:
            return
        try:
            for bet in Bet.query.filter(Bet.id.in_(ids)).all():
                bet.settle('lost', Decimal('0.00'), details)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def _record_round(self, number: int, outcome_hash: str, commitment: str, result: str,
                      multiplier: Optional[Decimal] = None) -> None:
        try:
            db.session.add(CasinoRound(
                game_type=self.game_type,
                round_number=number,
                seed_hash=self.seed.seed_hash,
                commitment=commitment,
                outcome_hash=outcome_hash,
                result=result,
                multiplier=multiplier,
            ))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def _maybe_rotate_seed(self) -> None:
        if self._retire_pending or (self.rotation_rounds and self.round_number % self.rotation_rounds == 0):
            self.rotate_seed()

    def retire_seed(self) -> bool:
        """Reveal the live seed now, or as soon as the round in flight settles."""
        with self._lock:
            if self.round is not None and self.round.phase != self.settled_phase:
                self._retire_pending = True
                return False
            self.rotate_seed()
            return True

    def rotate_seed(self, new_seed: Optional[str] = None) -> str:
        """Retire the current seed, reveal it on its rounds, and start a new one."""
        with self._lock, self._context():
            retired = self.seed
            try:
                CasinoRound.query.filter_by(game_type=self.game_type, seed_hash=retired.seed_hash).update(
                    {'server_seed': retired.seed}, synchronize_session=False
                )
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            self.seed = SeedSession(new_seed)
            self._retire_pending = False
            self.logger.info(
                f"[seed-rotate] game={self.game_type} retired={retired.seed_hash[:12]} next={self.seed.seed_hash[:12]}"
            )
            return retired.seed
