"""
Meld validation and table rearrangement rules.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import ACE_HIGH, ACE_LOW, KING_VALUE, POSITION_END, POSITION_START
from .errors import INVALID_REARRANGEMENT
from .models import Card, Meld


class ValidationResult:
    """Result of a rearrangement validation."""

    def __init__(
        self,
        valid: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        melds: Optional[List[List[Card]]] = None,
        hand_card_ids: Optional[List[str]] = None
    ):
        self.valid = valid
        self.error_code = error_code
        self.error_message = error_message
        self.melds = melds or []
        self.hand_card_ids = hand_card_ids or []

    @classmethod
    def success(cls, melds: List[List[Card]], hand_card_ids: List[str]) -> 'ValidationResult':
        """Create a successful validation result."""
        return cls(valid=True, melds=melds, hand_card_ids=hand_card_ids)

    @classmethod
    def error(cls, error_message: str, error_code: str = INVALID_REARRANGEMENT) -> 'ValidationResult':
        """Create an error validation result."""
        return cls(valid=False, error_code=error_code, error_message=error_message)


def _is_consecutive(values: List[int]) -> bool:
    return all(values[i] == values[i - 1] + 1 for i in range(1, len(values)))


def is_valid_run(cards: Sequence[Card]) -> bool:
    """
    Check for 3+ consecutive cards of one suit.

    Aces count low (A-2-3) or, when the cards hold an Ace and a King but no 2,
    high (Q-K-A). A run never wraps past the Ace (K-A-2 is not a run).
    """
    if len(cards) < 3:
        return False

    suit = cards[0].suit
    if not all(card.suit == suit for card in cards):
        return False

    values = sorted(card.value for card in cards)
    if _is_consecutive(values):
        return True

    if ACE_LOW in values and KING_VALUE in values and 2 not in values:
        high_values = sorted(ACE_HIGH if v == ACE_LOW else v for v in values)
        return _is_consecutive(high_values)

    return False


def is_valid_set(cards: Sequence[Card]) -> bool:
    """Check for 3+ cards of the same rank, any suits."""
    if len(cards) < 3:
        return False
    rank = cards[0].rank
    return all(card.rank == rank for card in cards)


def is_valid_meld(cards: Sequence[Card]) -> bool:
    return is_valid_run(cards) or is_valid_set(cards)


def splice(cards: Sequence[Card], card: Card, position: str) -> List[Card]:
    """Place a card at either end of a meld's card sequence."""
    if position == POSITION_START:
        return [card, *cards]
    return [*cards, card]


def _run_position(card: Card, meld_cards: Sequence[Card]) -> str:
    values = [c.value for c in meld_cards]
    ace_high = (
        (ACE_LOW in values or card.value == ACE_LOW)
        and (KING_VALUE in values or card.value == KING_VALUE)
        and 2 not in values and card.value != 2
    )
    if ace_high:
        values = [ACE_HIGH if v == ACE_LOW else v for v in values]
    card_value = ACE_HIGH if ace_high and card.value == ACE_LOW else card.value
    return POSITION_START if card_value < min(values) else POSITION_END


def can_add_to_meld(card: Card, meld_cards: Sequence[Card]) -> Optional[str]:
    """
    Return the end of the meld the card belongs at, or None if it doesn't fit.

    Legality does not depend on order, so for runs the lower end is reported
    for a lower card and the upper end otherwise; sets always grow at the end.
    """
    extended = splice(meld_cards, card, POSITION_END)
    if not is_valid_meld(extended):
        return None
    if is_valid_run(extended):
        return _run_position(card, meld_cards)
    return POSITION_END


def find_possible_additions(card: Card, melds: Iterable[Meld]) -> List[Tuple[str, str]]:
    """List (meld_id, position) for every meld the card can legally extend."""
    possibilities = []
    for meld in melds:
        position = can_add_to_meld(card, meld.cards)
        if position is not None:
            possibilities.append((meld.id, position))
    return possibilities


def validate_rearrangement(
    current_melds: List[Meld],
    proposed_melds: List[List[str]],
    acting_hand: List[Card]
) -> ValidationResult:
    """
    Validate a proposed table layout against the current one.

    Args:
        current_melds: Melds on the table now
        proposed_melds: Proposed melds as lists of card ids (empty lists allowed)
        acting_hand: Hand of the player proposing the layout

    Returns:
        ValidationResult; on success carries the resolved non-empty melds and
        the ids of the cards that come from the hand
    """
    table_cards: Dict[str, Card] = {c.id: c for m in current_melds for c in m.cards}
    hand_cards: Dict[str, Card] = {c.id: c for c in acting_hand}
    proposed_ids = [card_id for meld in proposed_melds for card_id in meld]
    proposed_set = set(proposed_ids)

    for card_id in table_cards:
        if card_id not in proposed_set:
            return ValidationResult.error("Cannot remove cards from the table back to hand")

    for card_id in proposed_set:
        if card_id not in table_cards and card_id not in hand_cards:
            return ValidationResult.error("New cards must come from your hand")

    if len(proposed_ids) != len(proposed_set):
        return ValidationResult.error("A card cannot be placed in more than one meld")

    lookup = {**hand_cards, **table_cards}
    resolved = [[lookup[card_id] for card_id in meld] for meld in proposed_melds]

    for i, cards in enumerate(resolved):
        if cards and not is_valid_meld(cards):
            return ValidationResult.error(
                f"Meld {i + 1} is not valid. Each meld must be a run "
                f"(3+ consecutive same suit) or set (3+ same rank)."
            )

    non_empty = [cards for cards in resolved if cards]
    for cards in non_empty:
        if len(cards) < 3:
            return ValidationResult.error("Each meld must have at least 3 cards")

    hand_card_ids = [card_id for card_id in proposed_ids if card_id not in table_cards]
    return ValidationResult.success(non_empty, hand_card_ids)
