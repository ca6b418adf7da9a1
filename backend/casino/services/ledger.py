"""Balance and ledger boundary shared by every game.

All balance mutations happen inside ``locked_account``: it serializes work on
one user (process lock + ``SELECT ... FOR UPDATE``), and commits the balance
change together with its Transaction rows, or rolls both back.
"""
import threading
import uuid
from collections import namedtuple
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional

from flask import current_app

from casino import db
from casino.errors import AccountNotFound, InsufficientFunds, ValidationError
from casino.models import Bet, Transaction, User
from casino.services.games.results import GameResult, to_money

Settlement = namedtuple('Settlement', ['result', 'balance', 'payout', 'status', 'reference', 'bet_id'])


class AccountLocks:
    """One re-entrant lock per user id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.RLock] = {}

    def get(self, user_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.RLock()
            return lock


_account_locks = AccountLocks()


def new_reference() -> str:
    return uuid.uuid4().hex


@contextmanager
def locked_account(user_id: int):
    """Yield the locked User row; commit on success, roll back on any error."""
    with _account_locks.get(user_id):
        try:
            account = db.session.execute(
                db.select(User)
                .filter_by(id=user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if account is None:
                raise AccountNotFound()
            yield account
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


def get_balance(user_id: int) -> Decimal:
    account = db.session.get(User, user_id, populate_existing=True)
    if account is None:
        raise AccountNotFound()
    return account.balance


def record_transaction(user_id: int, tx_type: str, amount, balance_after, reference=None, description='') -> Transaction:
    tx = Transaction(
        user_id=user_id,
        type=tx_type,
        amount=to_money(amount),
        balance_after=to_money(balance_after),
        reference=reference,
        description=description,
    )
    db.session.add(tx)
    return tx


def debit(account: User, amount, reference=None, description='', tx_type='bet_placed') -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError('Amount must be positive')
    if account.balance < amount:
        raise InsufficientFunds()
    account.balance = to_money(account.balance - amount)
    record_transaction(account.id, tx_type, -amount, account.balance, reference, description)
    return account.balance


def credit(account: User, amount, reference=None, description='', tx_type='bet_won') -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError('Amount must be positive')
    account.balance = to_money(account.balance + amount)
    record_transaction(account.id, tx_type, amount, account.balance, reference, description)
    return account.balance


def parse_amount(value, what='Stake') -> Decimal:
    if value is None or isinstance(value, bool) or value == '':
        raise ValidationError(f'{what} is required')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{what} must be a number')
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f'{what} must be positive')
    if amount != to_money(amount):
        raise ValidationError(f'{what} cannot have more than 2 decimal places')
    return to_money(amount)


def _limit(key) -> Decimal:
    return Decimal(str(current_app.config[key]))


def check_table_limits(stake: Decimal) -> Decimal:
    min_bet, max_bet = _limit('MIN_BET'), _limit('MAX_BET')
    if stake > max_bet:
        raise ValidationError(f'Maximum bet is {max_bet}')
    if stake < min_bet:
        raise ValidationError(f'Minimum bet is {min_bet}')
    return stake


def parse_stake(value) -> Decimal:
    return check_table_limits(parse_amount(value))


def status_for(payout) -> str:
    return 'won' if payout and payout > 0 else 'lost'


def settle_casino_bet(user_id: int, stake: Decimal, game_type: str, selection: str,
                      play: Callable[[], GameResult]) -> Settlement:
    """Debit the stake, run the engine, credit any payout and record the bet.

    The engine runs inside the account transaction: if it fails, the debit is
    rolled back with everything else.
    """
    reference = new_reference()
    with locked_account(user_id) as account:
        debit(account, stake, reference, f'{game_type} bet')
        result = play()
        payout = to_money(result.payout or 0)
        if payout > 0:
            credit(account, payout, reference, f'{game_type} win')
        status = status_for(payout)
        bet = Bet(
            user_id=user_id,
            game_type=game_type,
            selection=selection,
            stake=stake,
            round_reference=reference,
        )
        bet.settle(status, payout, result.to_dict())
        db.session.add(bet)
        db.session.flush()
        balance = account.balance
        bet_id = bet.id
    current_app.logger.info(
        f"[settle] user={user_id} game={game_type} ref={reference} stake={stake} payout={payout} status={status}"
    )
    return Settlement(result, balance, payout, status, reference, bet_id)


def _wallet_amount(value) -> Decimal:
    amount = parse_amount(value, 'Amount')
    low, high = _limit('MIN_WALLET_AMOUNT'), _limit('MAX_WALLET_AMOUNT')
    if amount < low or amount > high:
        raise ValidationError(f'Amount must be between {low} and {high}')
    return amount


def deposit(user_id: int, value) -> Decimal:
    amount = _wallet_amount(value)
    with locked_account(user_id) as account:
        balance = credit(account, amount, new_reference(), 'Virtual deposit', tx_type='deposit')
    return balance


def withdraw(user_id: int, value) -> Decimal:
    amount = _wallet_amount(value)
    with locked_account(user_id) as account:
        balance = debit(account, amount, new_reference(), 'Virtual withdrawal', tx_type='withdraw')
    return balance


def grant_bonus(user_id: int, amount, description='Welcome bonus') -> Optional[Decimal]:
    amount = to_money(amount)
    if amount <= 0:
        return None
    with locked_account(user_id) as account:
        balance = credit(account, amount, new_reference(), description, tx_type='bonus')
    return balance
