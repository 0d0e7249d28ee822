"""
Bounded search for a bot table rearrangement.

The pool is every table card plus the bot's hand. Candidate melds are the
maximal runs per suit (ace low and ace high) and every 3- and 4-card set per
rank. A depth-limited backtracking search then picks disjoint candidates that
cover all table cards, use at least one hand card, and leave at least one hand
card for the discard. The search is best effort: with the depth limit and only
maximal runs as candidates it can miss a legal layout that does exist.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Set

from ..constants import ACE_HIGH, ACE_LOW, BOT_SEARCH_MAX_DEPTH, KING_VALUE
from ..models import Card, Meld
from ..validate import is_valid_meld, is_valid_run

logger = logging.getLogger(__name__)

MAX_SEARCH_NODES = 50000


@dataclass
class RearrangementPlan:
    melds: List[List[Card]]
    hand_card_ids: List[str] = field(default_factory=list)

    def proposal(self) -> List[List[str]]:
        return [[c.id for c in cards] for cards in self.melds]


def _run_value(card: Card, ace_high: bool) -> int:
    if ace_high and card.value == ACE_LOW:
        return ACE_HIGH
    return card.value


def _segments(by_value: Dict[int, Card]) -> List[List[int]]:
    """Split the held values into maximal consecutive stretches."""
    segments = []
    current: List[int] = []
    for value in sorted(by_value):
        if current and value == current[-1] + 1:
            current.append(value)
        else:
            if current:
                segments.append(current)
            current = [value]
    if current:
        segments.append(current)
    return segments


def _runs_for_layer(layer: List[Card]) -> List[List[Card]]:
    runs = []

    low = {c.value: c for c in layer}
    for segment in _segments(low):
        if len(segment) >= 3:
            runs.append([low[v] for v in segment])

    if any(c.value == ACE_LOW for c in layer):
        high = {_run_value(c, True): c for c in layer}
        for segment in _segments(high):
            if ACE_HIGH not in segment:
                continue
            segment = [v for v in segment if v >= 3]
            if len(segment) >= 3:
                runs.append([high[v] for v in segment])

    return [run for run in runs if is_valid_run(run)]


def find_candidate_melds(pool: Sequence[Card], required: Set[str]) -> List[List[Card]]:
    """Maximal runs and all 3/4-card sets that can be built from the pool."""
    candidates: List[List[Card]] = []
    seen = set()

    def add(cards: List[Card]):
        key = frozenset(c.id for c in cards)
        if key not in seen and is_valid_meld(cards):
            seen.add(key)
            candidates.append(cards)

    by_suit: Dict[str, List[Card]] = defaultdict(list)
    for card in pool:
        by_suit[card.suit].append(card)

    for cards in by_suit.values():
        # Table cards first so each layer claims them before duplicate hand cards.
        remaining = sorted(cards, key=lambda c: (c.id not in required, c.value))
        while remaining:
            layer = []
            values = set()
            rest = []
            for card in remaining:
                if card.value in values:
                    rest.append(card)
                else:
                    values.add(card.value)
                    layer.append(card)
            for run in _runs_for_layer(layer):
                add(run)
            remaining = rest

    by_rank: Dict[str, List[Card]] = defaultdict(list)
    for card in pool:
        by_rank[card.rank].append(card)

    for cards in by_rank.values():
        for size in (3, 4):
            for combo in combinations(cards, size):
                add(list(combo))

    return candidates


class _Search:
    def __init__(self, candidates: List[List[Card]], required: Set[str], hand_ids: Set[str], max_depth: int):
        self.candidates = candidates
        self.required = sorted(required)
        self.hand_ids = hand_ids
        self.max_depth = max_depth
        self.nodes = 0
        self.best: Optional[List[int]] = None
        self.best_hand_used = 0
        self.by_card: Dict[str, List[int]] = defaultdict(list)
        for i, cards in enumerate(candidates):
            for card in cards:
                self.by_card[card.id].append(i)

    def run(self):
        self._cover([], set())

    def _hand_used(self, used: Set[str]) -> int:
        return len(used & self.hand_ids)

    def _record(self, chosen: List[int], used: Set[str]):
        hand_used = self._hand_used(used)
        if hand_used < 1 or hand_used > len(self.hand_ids) - 1:
            return
        if self.best is None or hand_used > self.best_hand_used:
            self.best = list(chosen)
            self.best_hand_used = hand_used

    def _cover(self, chosen: List[int], used: Set[str]):
        """Cover the first uncovered table card, one candidate per level."""
        self.nodes += 1
        if self.nodes > MAX_SEARCH_NODES:
            return
        uncovered = next((card_id for card_id in self.required if card_id not in used), None)
        if uncovered is None:
            self._extend(chosen, used, 0)
            return
        if len(chosen) >= self.max_depth:
            return
        for i in self.by_card.get(uncovered, []):
            ids = {c.id for c in self.candidates[i]}
            if ids & used:
                continue
            chosen.append(i)
            self._cover(chosen, used | ids)
            chosen.pop()

    def _extend(self, chosen: List[int], used: Set[str], start: int):
        """With the table covered, try adding melds made only of hand cards."""
        self._record(chosen, used)
        if len(chosen) >= self.max_depth:
            return
        for i in range(start, len(self.candidates)):
            self.nodes += 1
            if self.nodes > MAX_SEARCH_NODES:
                return
            ids = {c.id for c in self.candidates[i]}
            if ids & used:
                continue
            chosen.append(i)
            self._extend(chosen, used | ids, i + 1)
            chosen.pop()


def _display_order(cards: List[Card]) -> List[Card]:
    if not is_valid_run(cards):
        return cards
    values = {c.value for c in cards}
    ace_high = ACE_LOW in values and KING_VALUE in values and 2 not in values
    return sorted(cards, key=lambda c: _run_value(c, ace_high))


def try_bot_rearrangement(
    table_melds: Sequence[Meld],
    hand: Sequence[Card],
    max_depth: int = BOT_SEARCH_MAX_DEPTH
) -> Optional[RearrangementPlan]:
    """
    Find a new table layout that absorbs some of the hand.

    Args:
        table_melds: Melds currently on the table; all their cards must stay
        hand: Bot's hand
        max_depth: Maximum number of melds chosen along one search path

    Returns:
        RearrangementPlan, or None when nothing was found within the bounds
    """
    if len(hand) < 2:
        return None

    table_cards = [c for m in table_melds for c in m.cards]
    required = {c.id for c in table_cards}
    hand_ids = {c.id for c in hand}
    pool = [*table_cards, *hand]

    candidates = find_candidate_melds(pool, required)
    if not candidates:
        return None

    search = _Search(candidates, required, hand_ids, max_depth)
    search.run()
    if search.nodes > MAX_SEARCH_NODES:
        logger.debug(f"Rearrangement search stopped at node budget ({MAX_SEARCH_NODES})")
    if search.best is None:
        return None

    melds = [_display_order(list(candidates[i])) for i in search.best]
    used_hand = [c.id for cards in melds for c in cards if c.id in hand_ids]
    return RearrangementPlan(melds=melds, hand_card_ids=used_hand)
