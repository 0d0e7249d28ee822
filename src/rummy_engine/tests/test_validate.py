"""
Tests for meld legality and table rearrangement validation.
"""

import pytest

from rummy_engine.models import Meld
from rummy_engine.shuffle import parse_card, parse_cards
from rummy_engine.validate import (
    can_add_to_meld, find_possible_additions, is_valid_meld, is_valid_run, is_valid_set,
    validate_rearrangement
)


def ids(shorts):
    return [c.id for c in parse_cards(shorts)]


@pytest.mark.parametrize("shorts,expected", [
    ("4H 5H 6H", True),
    ("4H 5D 6H", False),   # mixed suit
    ("QS KS AS", True),    # ace high
    ("AS 2S 3S", True),    # ace low
    ("KS AS 2S", False),   # wraps past the ace
    ("6H 4H 5H", True),    # order does not matter
    ("JS QS KS AS", True),
    ("10C JC QC KC AC", True),
    ("4H 5H", False),
    ("4H 6H 7H", False),
    ("AD 2D 3D 4D 5D 6D 7D 8D 9D 10D JD QD KD", True),
])
def test_runs(shorts, expected):
    assert is_valid_run(parse_cards(shorts)) is expected


def test_run_with_duplicate_value_is_invalid():
    """Two copies of the same card cannot both sit in one run."""
    cards = [parse_card("4H"), parse_card("4H", deck_index=1), parse_card("5H"), parse_card("6H")]
    assert not is_valid_run(cards)


def test_sets():
    """Sets need three or more of one rank."""
    assert is_valid_set(parse_cards("7H 7D 7C"))
    assert is_valid_set(parse_cards("7H 7D 7C 7S"))
    assert not is_valid_set(parse_cards("7H 7D 8C"))
    assert not is_valid_set(parse_cards("7H 7D"))


def test_set_with_repeated_suit_across_decks():
    """Multi-deck games can hold the same card twice in a set."""
    cards = [parse_card("7H"), parse_card("7H", deck_index=1), parse_card("7H", deck_index=2)]
    assert is_valid_set(cards)
    assert is_valid_meld(cards)


def test_meld_is_run_or_set():
    assert is_valid_meld(parse_cards("9C 10C JC"))
    assert is_valid_meld(parse_cards("KD KS KH"))
    assert not is_valid_meld(parse_cards("9C 10D JC"))


def test_can_add_to_meld():
    """Report which end of a meld takes the card."""
    run = parse_cards("4H 5H 6H")
    assert can_add_to_meld(parse_card("7H"), run) == "end"
    assert can_add_to_meld(parse_card("3H"), run) == "start"
    assert can_add_to_meld(parse_card("9H"), run) is None
    assert can_add_to_meld(parse_card("7S"), parse_cards("7H 7D 7C")) == "end"


def test_can_add_ace_to_either_end():
    """An ace goes below a 2 or above a king."""
    assert can_add_to_meld(parse_card("AS"), parse_cards("JS QS KS")) == "end"
    assert can_add_to_meld(parse_card("AS"), parse_cards("2S 3S 4S")) == "start"
    assert can_add_to_meld(parse_card("JS"), parse_cards("QS KS AS")) == "start"
    assert can_add_to_meld(parse_card("2S"), parse_cards("QS KS AS")) is None


def test_find_possible_additions():
    melds = [
        Meld(id="run", cards=parse_cards("4H 5H 6H")),
        Meld(id="set", cards=parse_cards("7D 7C 7S")),
        Meld(id="other", cards=parse_cards("KC KD KS")),
    ]
    assert find_possible_additions(parse_card("7H"), melds) == [("run", "end"), ("set", "end")]


class TestRearrangement:
    """validate_rearrangement rules, in the order they are checked."""

    def setup_method(self):
        self.table = [
            Meld(id="a", cards=parse_cards("4H 5H 6H 7H 8H 9H")),
            Meld(id="b", cards=parse_cards("QC QD QS")),
        ]
        self.hand = parse_cards("QH 2C 10H")

    def test_table_cards_cannot_return_to_hand(self):
        """Dropping a table card fails even if every remaining meld is legal."""
        proposed = [ids("4H 5H 6H"), ids("7H 8H 9H"), ids("QC QD QH")]
        result = validate_rearrangement(self.table, proposed, self.hand)
        assert not result.valid
        assert result.error_code == "INVALID_REARRANGEMENT"
        assert "back to hand" in result.error_message

    def test_new_cards_must_come_from_hand(self):
        proposed = [ids("4H 5H 6H 7H 8H 9H"), ids("QC QD QS QH"), ids("2S 3S 4S")]
        result = validate_rearrangement(self.table, proposed, self.hand)
        assert not result.valid
        assert "from your hand" in result.error_message

    def test_card_used_twice(self):
        proposed = [ids("4H 5H 6H 7H 8H 9H"), ids("QC QD QS"), ids("QS QH QC")]
        result = validate_rearrangement(self.table, proposed, self.hand)
        assert not result.valid
        assert "more than one meld" in result.error_message

    def test_invalid_meld(self):
        proposed = [ids("4H 5H 6H 7H 8H 9H"), ids("QC QD QS 2C")]
        result = validate_rearrangement(self.table, proposed, self.hand)
        assert not result.valid
        assert "Meld 2 is not valid" in result.error_message

    def test_short_meld_is_reported_as_invalid(self):
        """A 1-2 card meld fails the legality check before the size check."""
        proposed = [ids("4H 5H 6H 7H"), ids("8H 9H"), ids("QC QD QS")]
        result = validate_rearrangement(self.table, proposed, self.hand)
        assert not result.valid
        assert "Meld 2 is not valid" in result.error_message

    def test_split_and_extend(self):
        """Split a long run and grow both a run and a set from hand."""
        proposed = [
            ids("4H 5H 6H"),
            ids("7H 8H 9H 10H"),
            [],
            ids("QC QD QS QH"),
        ]
        result = validate_rearrangement(self.table, proposed, self.hand)
        assert result.valid
        assert len(result.melds) == 3
        assert sorted(result.hand_card_ids) == sorted(ids("10H QH"))

    def test_pure_rearrangement_without_hand_cards(self):
        proposed = [ids("4H 5H 6H"), ids("7H 8H 9H"), ids("QC QD QS")]
        result = validate_rearrangement(self.table, proposed, self.hand)
        assert result.valid
        assert result.hand_card_ids == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
