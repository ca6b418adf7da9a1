"""Jacks-or-Better video poker: one deal, one draw from the same deck."""
from collections import Counter, namedtuple
from decimal import Decimal
from typing import Iterable, List, Optional

from casino.errors import HandNotActive, ValidationError
from .deck import Card, card_string, create_deck, shuffle
from .hands import HandStore
from .results import PokerResult, to_money

HAND_SIZE = 5

HandRank = namedtuple('HandRank', ['rank', 'name', 'payout'])

ROYAL_FLUSH = HandRank(9, 'Royal Flush', 800)
STRAIGHT_FLUSH = HandRank(8, 'Straight Flush', 50)
FOUR_OF_A_KIND = HandRank(7, 'Four of a Kind', 25)
FULL_HOUSE = HandRank(6, 'Full House', 9)
FLUSH = HandRank(5, 'Flush', 6)
STRAIGHT = HandRank(4, 'Straight', 4)
THREE_OF_A_KIND = HandRank(3, 'Three of a Kind', 3)
TWO_PAIR = HandRank(2, 'Two Pair', 2)
JACKS_OR_BETTER = HandRank(1, 'Jacks or Better', 1)
NO_WIN = HandRank(0, 'No Win', 0)

RANK_VALUES = {'2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9, '10': 10,
               'J': 11, 'Q': 12, 'K': 13, 'A': 14}
WHEEL = [2, 3, 4, 5, 14]


def evaluate_hand(cards: Iterable[Card]) -> HandRank:
    cards = list(cards)
    values = sorted(RANK_VALUES[c.rank] for c in cards)
    is_flush = len({c.suit for c in cards}) == 1
    is_straight = (
        len(set(values)) == HAND_SIZE and values[-1] - values[0] == HAND_SIZE - 1
    ) or values == WHEEL

    counts = Counter(values)
    shape = sorted(counts.values(), reverse=True)

    if is_flush and is_straight and values[0] == 10:
        return ROYAL_FLUSH
    if is_flush and is_straight:
        return STRAIGHT_FLUSH
    if shape[0] == 4:
        return FOUR_OF_A_KIND
    if shape[:2] == [3, 2]:
        return FULL_HOUSE
    if is_flush:
        return FLUSH
    if is_straight:
        return STRAIGHT
    if shape[0] == 3:
        return THREE_OF_A_KIND
    if shape[:2] == [2, 2]:
        return TWO_PAIR
    if shape[0] == 2:
        pair_value = next(v for v, n in counts.items() if n == 2)
        if pair_value >= RANK_VALUES['J']:
            return JACKS_OR_BETTER
    return NO_WIN


class PokerHand:
    def __init__(self, handle: str, owner, stake: Decimal, deck: List[Card]):
        self.handle = handle
        self.owner = owner
        self.stake = stake
        self.deck = deck
        self.cards: List[Card] = [deck.pop() for _ in range(HAND_SIZE)]
        self.phase = 'deal'
        self.rank: Optional[HandRank] = None

    @property
    def payout(self) -> Optional[Decimal]:
        if self.rank is None:
            return None
        return to_money(self.stake * self.rank.payout)

    def view(self) -> PokerResult:
        return PokerResult(
            payout=self.payout,
            hand_id=self.handle,
            cards=[card_string(c) for c in self.cards],
            phase=self.phase,
            stake=self.stake,
            hand_name=self.rank.name if self.rank else None,
            hand_rank=self.rank.rank if self.rank else None,
        )


def deal(store: HandStore, owner, stake, deck: Optional[List[Card]] = None) -> PokerHand:
    if deck is None:
        deck = shuffle(create_deck(1))
    hand = PokerHand(store.new_handle(owner), owner, to_money(stake), list(deck))
    store.add(hand)
    return hand


def _hold_set(hold_indices) -> set:
    if not isinstance(hold_indices, (list, tuple)):
        raise ValidationError('hold must be an array of card positions')
    held = set()
    for idx in hold_indices:
        if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < HAND_SIZE:
            raise ValidationError(f'Hold index must be between 0 and {HAND_SIZE - 1}')
        held.add(idx)
    return held


def draw(store: HandStore, handle: str, hold_indices, owner=None) -> PokerHand:
    held = _hold_set(hold_indices)
    with store.checkout(handle, owner) as hand:
        if hand.phase != 'deal':
            raise HandNotActive('Already drawn')
        for i in range(HAND_SIZE):
            if i not in held:
                hand.cards[i] = hand.deck.pop()
        hand.rank = evaluate_hand(hand.cards)
        hand.phase = 'complete'
        store.discard(handle)
    return hand
