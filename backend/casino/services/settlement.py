"""Per-game settlement flows built on the ledger primitives.

Slots and roulette settle in one step through ``settle_casino_bet``.
Blackjack and poker debit on deal, keep the hand in a HandStore, and credit
when the hand settles; the hand's handle is the ledger reference for every
row belonging to it.
"""
from collections import namedtuple

from flask import current_app

from casino import db
from casino.models import Bet
from casino.services import ledger
from casino.services.games import blackjack, poker, roulette, slots
from casino.services.games.results import to_money

HandOutcome = namedtuple('HandOutcome', ['result', 'balance'])


def play_slots(user_id, raw_stake):
    stake = ledger.parse_stake(raw_stake)
    return ledger.settle_casino_bet(user_id, stake, 'slots', 'Slot Spin', lambda: slots.spin(stake))


def play_roulette(user_id, raw_bets):
    bets = roulette.validate_bets(raw_bets)
    stake = ledger.check_table_limits(roulette.total_stake(bets))
    selection = ', '.join(roulette.describe_bet(b) for b in bets)
    return ledger.settle_casino_bet(user_id, stake, 'roulette', selection, lambda: roulette.spin(bets))


def _record_hand_bet(account, game_type, selection, hand, details):
    payout = hand.payout
    if game_type == 'blackjack' and hand.result == 'push':
        status = 'void'
        ledger.credit(account, payout, hand.handle, 'Blackjack push', tx_type='refund')
    else:
        status = ledger.status_for(payout)
        if payout > 0:
            ledger.credit(account, payout, hand.handle, f'{game_type} {selection}')
    bet = Bet(
        user_id=account.id,
        game_type=game_type,
        selection=selection,
        stake=hand.stake,
        round_reference=hand.handle,
    )
    bet.settle(status, payout, details)
    db.session.add(bet)
    return bet


def start_blackjack(store, user_id, raw_stake, shoe=None):
    stake = ledger.parse_stake(raw_stake)
    handle = None
    try:
        with ledger.locked_account(user_id) as account:
            hand = blackjack.start_hand(store, user_id, stake, shoe)
            handle = hand.handle
            ledger.debit(account, stake, hand.handle, 'Blackjack bet')
            if hand.is_settled:
                _record_hand_bet(account, 'blackjack', hand.result, hand, hand.view().to_dict())
            balance = account.balance
    except Exception:
        if handle is not None:
            store.discard(handle)
        raise
    current_app.logger.info(f"[blackjack-start] user={user_id} hand={hand.handle} stake={stake} status={hand.status}")
    return HandOutcome(hand.view(), balance)


def blackjack_action(store, user_id, handle, action):
    with ledger.locked_account(user_id) as account:

        def collect_double(hand):
            ledger.debit(account, hand.stake, hand.handle, 'Blackjack double down')

        hand = blackjack.player_action(store, handle, action, owner=user_id, on_double=collect_double)
        if hand.is_settled:
            _record_hand_bet(account, 'blackjack', hand.result, hand, hand.view().to_dict())
        balance = account.balance
    if hand.is_settled:
        current_app.logger.info(
            f"[blackjack-settle] user={user_id} hand={handle} result={hand.result} stake={hand.stake} payout={hand.payout}"
        )
    return HandOutcome(hand.view(), balance)


def deal_poker(store, user_id, raw_stake, deck=None):
    stake = ledger.parse_stake(raw_stake)
    handle = None
    try:
        with ledger.locked_account(user_id) as account:
            hand = poker.deal(store, user_id, stake, deck)
            handle = hand.handle
            balance = ledger.debit(account, stake, hand.handle, 'Poker bet')
    except Exception:
        if handle is not None:
            store.discard(handle)
        raise
    return HandOutcome(hand.view(), balance)


def draw_poker(store, user_id, handle, hold_indices):
    with ledger.locked_account(user_id) as account:
        hand = poker.draw(store, handle, hold_indices, owner=user_id)
        _record_hand_bet(account, 'poker', hand.rank.name, hand, hand.view().to_dict())
        balance = account.balance
    current_app.logger.info(
        f"[poker-settle] user={user_id} hand={handle} rank={hand.rank.name} stake={hand.stake} payout={hand.payout}"
    )
    return HandOutcome(hand.view(), balance)


def forfeit_hand(game_type, hand):
    """Record an idle hand dropped by the reaper as lost; its stake was taken on deal."""
    bet = Bet(
        user_id=hand.owner,
        game_type=game_type,
        selection='abandoned',
        stake=hand.stake,
        round_reference=hand.handle,
    )
    bet.settle('lost', to_money(0), {'game_type': game_type, 'hand_id': hand.handle, 'abandoned': True})
    try:
        db.session.add(bet)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info(f"[hand-reaped] game={game_type} hand={hand.handle} user={hand.owner} stake={hand.stake}")
