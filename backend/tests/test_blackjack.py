from decimal import Decimal

import pytest

from casino.errors import HandNotActive, HandNotFound, ValidationError
from casino.services.games import blackjack
from casino.services.games.deck import parse_card
from casino.services.games.hands import HandStore


def shoe(*cards):
    """Cards are drawn from the end of the shoe; list them in draw order."""
    return list(reversed([parse_card(c) for c in cards]))


@pytest.fixture()
def store():
    return HandStore('bj')


def test_natural_blackjack_settles_on_deal(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('A♠', 'K♥', '9♣', '7♦'))
    assert hand.is_settled
    assert hand.result == 'blackjack'
    assert hand.payout == Decimal('250.00')
    assert hand.handle not in store


def test_both_naturals_push(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('A♠', 'K♥', 'A♣', 'Q♦'))
    assert hand.result == 'push'
    assert hand.payout == Decimal('100.00')


def test_stand_beats_dealer_seventeen(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('10♠', '8♥', '10♣', '7♦'))
    assert hand.handle in store
    hand = blackjack.player_action(store, hand.handle, 'stand', owner=1)
    assert hand.result == 'win'
    assert hand.payout == Decimal('200.00')
    assert hand.handle not in store


def test_hit_and_bust_loses_stake(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('10♠', '6♥', '10♣', '7♦', 'K♠'))
    hand = blackjack.player_action(store, hand.handle, 'hit', owner=1)
    assert hand.result == 'bust'
    assert hand.payout == Decimal('0.00')
    assert len(hand.dealer_cards) == 2


def test_dealer_draws_below_seventeen_and_busts(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('10♠', '9♥', '10♣', '4♦', '2♠', 'K♠'))
    hand = blackjack.player_action(store, hand.handle, 'stand', owner=1)
    assert hand.dealer_total == 26
    assert hand.result == 'dealer_bust'
    assert hand.payout == Decimal('200.00')


def test_hitting_to_21_finishes_the_hand(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('5♠', '6♥', '10♣', '8♦', 'K♠'))
    hand = blackjack.player_action(store, hand.handle, 'hit', owner=1)
    assert hand.player_total == 21
    assert hand.result == 'win'


def test_double_down_doubles_stake_and_draws_once(store):
    calls = []
    hand = blackjack.start_hand(store, 1, 100, shoe('5♠', '6♥', '10♣', '7♦', '10♠'))
    hand = blackjack.player_action(store, hand.handle, 'double', owner=1, on_double=calls.append)
    assert calls == [hand]
    assert hand.doubled_down
    assert hand.stake == Decimal('200.00')
    assert len(hand.player_cards) == 3
    assert hand.result == 'win'
    assert hand.payout == Decimal('400.00')


def test_double_only_on_first_two_cards(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('2♠', '3♥', '10♣', '7♦', '4♠'))
    blackjack.player_action(store, hand.handle, 'hit', owner=1)
    with pytest.raises(ValidationError):
        blackjack.player_action(store, hand.handle, 'double', owner=1)
    assert hand.stake == Decimal('100.00')


def test_failed_double_callback_leaves_hand_untouched(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('5♠', '6♥', '10♣', '7♦', '10♠'))

    def refuse(_hand):
        raise ValidationError('no funds')

    with pytest.raises(ValidationError):
        blackjack.player_action(store, hand.handle, 'double', owner=1, on_double=refuse)
    assert hand.status == 'playing'
    assert hand.stake == Decimal('100.00')
    assert len(hand.player_cards) == 2


def test_invalid_action_and_settled_hand():
    hand = blackjack.deal_hand('bj_x', 1, 100, shoe('10♠', '8♥', '10♣', '7♦'))
    with pytest.raises(ValidationError):
        blackjack.apply_action(hand, 'split')
    blackjack.apply_action(hand, 'stand')
    with pytest.raises(HandNotActive):
        blackjack.apply_action(hand, 'hit')


def test_view_hides_hole_card_until_settled(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('10♠', '8♥', 'K♣', '7♦'))
    view = hand.view()
    assert view.dealer_cards == ['K♣', '??']
    assert view.dealer_total == 10
    assert view.can_double and view.can_hit
    assert view.payout is None
    blackjack.player_action(store, hand.handle, 'stand', owner=1)
    view = hand.view()
    assert view.dealer_cards == ['K♣', '7♦']
    assert view.dealer_total == 17
    assert view.to_dict()['result'] == 'win'


def test_hands_belong_to_their_owner(store):
    hand = blackjack.start_hand(store, 1, 100, shoe('10♠', '8♥', '10♣', '7♦'))
    with pytest.raises(HandNotFound):
        blackjack.player_action(store, hand.handle, 'stand', owner=2)
    with pytest.raises(HandNotFound):
        blackjack.player_action(store, 'bj_1_missing', 'stand', owner=1)


def test_default_shoe_is_six_decks():
    hand = blackjack.deal_hand('bj_y', 1, 10)
    assert len(hand.shoe) == 6 * 52 - 4
