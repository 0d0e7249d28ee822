"""
Deck construction, shuffling and dealing utilities.
"""

import random
from typing import List, Optional, Tuple

from .constants import RANKS, SUITS, get_rank_value, make_card_id
from .errors import INSUFFICIENT_CARDS, raise_error
from .models import Card


def create_deck(deck_index: int = 0) -> List[Card]:
    """Create a single 52-card deck."""
    deck = []
    for suit in SUITS:
        for rank in RANKS:
            deck.append(make_card(rank, suit, deck_index))
    return deck


SUIT_LETTERS = {suit[0].upper(): suit for suit in SUITS}


def make_card(rank: str, suit: str, deck_index: int = 0) -> Card:
    return Card(
        id=make_card_id(deck_index, rank, suit),
        rank=rank,
        suit=suit,
        value=get_rank_value(rank),
        deck_index=deck_index
    )


def parse_card(short: str, deck_index: int = 0) -> Card:
    """Build a card from shorthand like ``'10H'`` or ``'QS'``."""
    rank, letter = short[:-1].upper(), short[-1].upper()
    if rank not in RANKS or letter not in SUIT_LETTERS:
        raise ValueError(f"Invalid card: {short}")
    return make_card(rank, SUIT_LETTERS[letter], deck_index)


def parse_cards(shorts: str, deck_index: int = 0) -> List[Card]:
    return [parse_card(s, deck_index) for s in shorts.split()]


def build_decks(num_decks: int) -> List[Card]:
    """Create ``num_decks`` decks combined into one pool."""
    cards = []
    for i in range(num_decks):
        cards.extend(create_deck(i))
    return cards


def shuffle(cards: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """
    Fisher-Yates shuffle.

    Args:
        cards: Cards to shuffle (left untouched)
        rng: Optional random source; the module generator is used otherwise

    Returns:
        Shuffled copy of the cards
    """
    rng = rng or random
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal(
    deck: List[Card],
    num_players: int,
    per_player: int
) -> Tuple[List[List[Card]], List[Card], List[Card]]:
    """
    Deal hands in player order, then turn one card onto the discard pile.

    Args:
        deck: Shuffled pool of cards
        num_players: Number of hands to deal
        per_player: Cards per hand

    Returns:
        Tuple of (hands, remaining deck, discard pile)
    """
    needed = num_players * per_player + 1
    if len(deck) < needed:
        raise_error(
            INSUFFICIENT_CARDS,
            f"Need {needed} cards to deal {per_player} to {num_players} players, have {len(deck)}"
        )

    remaining = list(deck)
    hands = []
    for _ in range(num_players):
        hands.append(remaining[:per_player])
        remaining = remaining[per_player:]

    discard = [remaining.pop(0)]
    return hands, remaining, discard


def reshuffle_discards(
    discard: List[Card],
    rng: Optional[random.Random] = None
) -> Tuple[List[Card], List[Card]]:
    """Shuffle every discard except the visible top card into a new draw pile."""
    if not discard:
        return [], []
    top = discard[-1]
    return shuffle(discard[:-1], rng), [top]

