"""
Shared fixtures for the rummy engine tests.
"""

import random
from collections import Counter

import pytest

from rummy_engine.engine import RummyEngine
from rummy_engine.models import MatchState, Meld, RosterEntry
from rummy_engine.shuffle import build_decks, parse_cards
from rummy_engine.validate import is_valid_meld


@pytest.fixture
def engine():
    return RummyEngine(rng=random.Random(1234))


@pytest.fixture
def roster():
    return [
        RosterEntry(id="p1", name="Alice", session_id="s1"),
        RosterEntry(id="p2", name="Bob", session_id="s2"),
    ]


@pytest.fixture
def match(engine, roster):
    """A freshly dealt two-player match, Alice to draw."""
    return engine.start_match("m1", roster)


@pytest.fixture
def rig():
    """Replace every card in a match with a known layout."""
    def _rig(state: MatchState, hands, deck="", discard="", melds=()):
        for player, shorts in zip(state.players, hands):
            player.hand = parse_cards(shorts)
        state.deck = parse_cards(deck)
        state.discard = parse_cards(discard)
        state.melds = [
            Meld(id=f"meld_{i}", cards=parse_cards(shorts)) for i, shorts in enumerate(melds)
        ]
        return state
    return _rig


def assert_cards_conserved(state: MatchState):
    """Every card of the initial pool sits in exactly one place."""
    expected = Counter(c.id for c in build_decks(state.rules.deck_count))
    actual = Counter(c.id for c in state.all_cards())
    assert actual == expected


def assert_table_legal(state: MatchState):
    for meld in state.melds:
        assert len(meld.cards) >= 3
        assert is_valid_meld(meld.cards)
