"""
Hand analysis used by bots: meld discovery and discard scoring.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from ..models import Card, Meld
from ..validate import can_add_to_meld


def find_possible_melds(hand: Sequence[Card]) -> List[List[Card]]:
    """
    Greedy scan for melds in a hand.

    Runs are the maximal consecutive stretches (3+) per suit; sets are the
    first three or four cards of any rank held 3+ times. Candidates may share
    cards across the run and set groups.
    """
    melds = []

    by_suit: Dict[str, List[Card]] = defaultdict(list)
    for card in hand:
        by_suit[card.suit].append(card)

    for cards in by_suit.values():
        if len(cards) < 3:
            continue
        cards = sorted(cards, key=lambda c: c.value)
        run = [cards[0]]
        for card in cards[1:]:
            if card.value == run[-1].value + 1:
                run.append(card)
            elif card.value != run[-1].value:
                if len(run) >= 3:
                    melds.append(run)
                run = [card]
        if len(run) >= 3:
            melds.append(run)

    by_rank: Dict[str, List[Card]] = defaultdict(list)
    for card in hand:
        by_rank[card.rank].append(card)

    for cards in by_rank.values():
        if len(cards) >= 3:
            melds.append(cards[:min(4, len(cards))])

    return melds


def extends_table(card: Card, table_melds: Sequence[Meld]) -> bool:
    return any(can_add_to_meld(card, meld.cards) for meld in table_melds)


def is_discard_card_useful(card: Card, hand: Sequence[Card], table_melds: Sequence[Meld]) -> bool:
    """Would taking this card extend the table or open a new meld in hand?"""
    if extends_table(card, table_melds):
        return True
    return len(find_possible_melds([*hand, card])) > len(find_possible_melds(hand))


def score_discard(card: Card, hand: Sequence[Card], table_melds: Sequence[Meld], meld_count: Optional[int] = None) -> int:
    """Higher means safer to throw away."""
    score = card.value

    if extends_table(card, table_melds):
        score -= 20

    if meld_count is None:
        meld_count = len(find_possible_melds(hand))
    rest = [c for c in hand if c.id != card.id]
    if len(find_possible_melds(rest)) < meld_count:
        score -= 15

    if any(c.rank == card.rank for c in rest):
        score -= 5
    if any(c.suit == card.suit and abs(c.value - card.value) == 1 for c in rest):
        score -= 5

    return score


def find_best_discard(hand: Sequence[Card], table_melds: Sequence[Meld]) -> Optional[Card]:
    """Pick the card whose loss hurts the hand least."""
    if not hand:
        return None
    meld_count = len(find_possible_melds(hand))
    best = None
    best_score = float('-inf')
    for card in hand:
        score = score_discard(card, hand, table_melds, meld_count)
        if score > best_score:
            best_score = score
            best = card
    return best
