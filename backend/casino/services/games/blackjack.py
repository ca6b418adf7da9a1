"""Single-player blackjack against a dealer standing on all 17s.

The engine never touches balances. Doubling down calls ``on_double`` under
the hand's lock before the stake is doubled so the caller can collect the
extra stake in the same step.
"""
from decimal import Decimal
from typing import Callable, List, Optional

from casino.errors import HandNotActive, ValidationError
from .deck import Card, card_string, create_deck, hand_total, shuffle
from .hands import HandStore
from .results import BlackjackResult, to_money

SHOE_DECKS = 6
DEALER_STANDS_ON = 17
ACTIONS = ('hit', 'stand', 'double')

PAYOUT_MULTIPLIERS = {
    'blackjack': Decimal('2.5'),
    'win': Decimal('2'),
    'dealer_bust': Decimal('2'),
    'push': Decimal('1'),
    'bust': Decimal('0'),
    'lose': Decimal('0'),
}


class BlackjackHand:
    def __init__(self, handle: str, owner, stake: Decimal, shoe: List[Card]):
        self.handle = handle
        self.owner = owner
        self.stake = stake
        self.shoe = shoe
        self.player_cards: List[Card] = []
        self.dealer_cards: List[Card] = []
        self.status = 'playing'
        self.result: Optional[str] = None
        self.doubled_down = False

    def draw(self) -> Card:
        return self.shoe.pop()

    @property
    def player_total(self) -> int:
        return hand_total(self.player_cards)

    @property
    def dealer_total(self) -> int:
        return hand_total(self.dealer_cards)

    @property
    def is_settled(self) -> bool:
        return self.status == 'settled'

    @property
    def payout(self) -> Optional[Decimal]:
        if not self.is_settled:
            return None
        return to_money(self.stake * PAYOUT_MULTIPLIERS[self.result])

    def settle(self, result: str) -> None:
        self.status = 'settled'
        self.result = result

    def view(self) -> BlackjackResult:
        """Client view; the hole card and full dealer total stay hidden until settlement."""
        hide = not self.is_settled
        if hide:
            dealer_cards = [card_string(self.dealer_cards[0]), '??']
            dealer_total = hand_total(self.dealer_cards[:1])
        else:
            dealer_cards = [card_string(c) for c in self.dealer_cards]
            dealer_total = self.dealer_total
        return BlackjackResult(
            payout=self.payout,
            hand_id=self.handle,
            player_cards=[card_string(c) for c in self.player_cards],
            dealer_cards=dealer_cards,
            player_total=self.player_total,
            dealer_total=dealer_total,
            stake=self.stake,
            status=self.status,
            result=self.result,
            doubled_down=self.doubled_down,
            can_double=self.status == 'playing' and len(self.player_cards) == 2,
            can_hit=self.status == 'playing' and self.player_total < 21,
        )


def deal_hand(handle: str, owner, stake, shoe: Optional[List[Card]] = None) -> BlackjackHand:
    """Deal two cards each from ``shoe`` (drawn from the end) and settle naturals."""
    if shoe is None:
        shoe = shuffle(create_deck(SHOE_DECKS))
    hand = BlackjackHand(handle, owner, to_money(stake), list(shoe))
    hand.player_cards = [hand.draw(), hand.draw()]
    hand.dealer_cards = [hand.draw(), hand.draw()]
    if hand.player_total == 21:
        hand.settle('push' if hand.dealer_total == 21 else 'blackjack')
    return hand


def start_hand(store: HandStore, owner, stake, shoe: Optional[List[Card]] = None) -> BlackjackHand:
    hand = deal_hand(store.new_handle(owner), owner, stake, shoe)
    if not hand.is_settled:
        store.add(hand)
    return hand


def _finish_dealer_turn(hand: BlackjackHand) -> None:
    while hand.dealer_total < DEALER_STANDS_ON:
        hand.dealer_cards.append(hand.draw())
    dealer, player = hand.dealer_total, hand.player_total
    if dealer > 21:
        hand.settle('dealer_bust')
    elif player > dealer:
        hand.settle('win')
    elif player < dealer:
        hand.settle('lose')
    else:
        hand.settle('push')


def apply_action(hand: BlackjackHand, action: str, on_double: Optional[Callable[[BlackjackHand], None]] = None) -> BlackjackHand:
    if hand.status != 'playing':
        raise HandNotActive()
    if action not in ACTIONS:
        raise ValidationError('Invalid action')

    if action == 'hit':
        hand.player_cards.append(hand.draw())
        if hand.player_total > 21:
            hand.settle('bust')
        elif hand.player_total == 21:
            _finish_dealer_turn(hand)
    elif action == 'stand':
        _finish_dealer_turn(hand)
    else:
        if len(hand.player_cards) != 2:
            raise ValidationError('Can only double on first two cards')
        if on_double is not None:
            on_double(hand)
        hand.doubled_down = True
        hand.stake = hand.stake * 2
        hand.player_cards.append(hand.draw())
        if hand.player_total > 21:
            hand.settle('bust')
        else:
            _finish_dealer_turn(hand)
    return hand


def player_action(store: HandStore, handle: str, action: str, owner=None,
                  on_double: Optional[Callable[[BlackjackHand], None]] = None) -> BlackjackHand:
    with store.checkout(handle, owner) as hand:
        apply_action(hand, action, on_double)
        if hand.is_settled:
            store.discard(handle)
    return hand
