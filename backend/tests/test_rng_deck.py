from collections import Counter

import pytest

from casino.services.games import rng
from casino.services.games.deck import (
    Card, card_string, create_deck, hand_total, parse_card, shuffle,
)


def test_random_int_stays_in_half_open_range():
    seen = {rng.random_int(3, 7) for _ in range(2000)}
    assert seen == {3, 4, 5, 6}


def test_random_int_rejects_empty_range():
    with pytest.raises(ValueError):
        rng.random_int(5, 5)


def test_random_float_in_unit_interval():
    for _ in range(500):
        value = rng.random_float()
        assert 0.0 <= value < 1.0


def test_seed_and_commitment_are_deterministic():
    seed = rng.generate_seed()
    assert len(seed) == 64
    assert rng.hash_seed(seed) == rng.hash_seed(seed)
    assert rng.round_commitment(seed, 4) == rng.hash_seed(f"{seed}:4")
    assert rng.round_commitment(seed, 4) != rng.round_commitment(seed, 5)
    assert rng.hmac_hex(seed, 4) == rng.hmac_hex(seed, '4')


def test_leading_int_reads_first_hex_chars():
    assert rng.leading_int('0000002a' + 'f' * 56) == 42


def test_create_deck_has_every_card_per_deck():
    deck = create_deck(2)
    assert len(deck) == 104
    counts = Counter(deck)
    assert set(counts.values()) == {2}
    assert len(counts) == 52


def test_shuffle_is_a_permutation_and_leaves_input_untouched():
    deck = create_deck(1)
    original = list(deck)
    shuffled = shuffle(deck)
    assert deck == original
    assert sorted(shuffled) == sorted(original)


def test_shuffle_first_position_is_roughly_uniform():
    deck = [Card(str(n), 'hearts') for n in range(2, 6)]
    firsts = Counter(shuffle(deck)[0] for _ in range(8000))
    for card in deck:
        assert 1600 < firsts[card] < 2400


@pytest.mark.parametrize('cards, total', [
    (['A♠', 'K♥'], 21),
    (['A♠', 'A♥'], 12),
    (['A♠', 'A♥', '9♣'], 21),
    (['K♠', 'Q♥', 'A♣'], 21),
    (['K♠', 'Q♥', '5♣'], 25),
    (['5♠', '6♥', 'A♣', 'A♦'], 13),
])
def test_hand_total_counts_aces_soft_then_hard(cards, total):
    assert hand_total([parse_card(c) for c in cards]) == total


def test_card_string_round_trips_through_parse():
    card = Card('10', 'spades')
    assert card_string(card) == '10♠'
    assert parse_card('10♠') == card
    with pytest.raises(ValueError):
        parse_card('1X')
