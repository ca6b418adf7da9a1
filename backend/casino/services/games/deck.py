from collections import namedtuple
from typing import List, Sequence

from .rng import random_int

SUITS = ['hearts', 'diamonds', 'clubs', 'spades']
RANKS = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A']
SUIT_SYMBOLS = {'hearts': '♥', 'diamonds': '♦', 'clubs': '♣', 'spades': '♠'}
FACES = ('J', 'Q', 'K')

Card = namedtuple('Card', ['rank', 'suit'])


def create_deck(num_decks: int = 1) -> List[Card]:
    """Ordered shoe of ``num_decks`` standard decks."""
    return [Card(rank, suit) for _ in range(num_decks) for suit in SUITS for rank in RANKS]


def shuffle(deck: Sequence[Card]) -> List[Card]:
    """Fisher-Yates over a copy of ``deck``."""
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = random_int(0, i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def card_value(card: Card) -> int:
    if card.rank == 'A':
        return 11
    if card.rank in FACES:
        return 10
    return int(card.rank)


def hand_total(cards: Sequence[Card]) -> int:
    total = 0
    aces = 0
    for card in cards:
        total += card_value(card)
        if card.rank == 'A':
            aces += 1
    while total > 21 and aces > 0:
        total -= 10
        aces -= 1
    return total


def card_string(card: Card) -> str:
    return f"{card.rank}{SUIT_SYMBOLS[card.suit]}"


def parse_card(text: str) -> Card:
    """Inverse of card_string, e.g. ``'10♠'`` -> Card('10', 'spades')."""
    symbol_to_suit = {v: k for k, v in SUIT_SYMBOLS.items()}
    rank, symbol = text[:-1], text[-1]
    if rank not in RANKS or symbol not in symbol_to_suit:
        raise ValueError(f"Unknown card: {text}")
    return Card(rank, symbol_to_suit[symbol])
