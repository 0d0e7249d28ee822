"""
Tests for bot heuristics, the rearrangement search and the greedy bot.
"""

import random

import pytest

from rummy_engine.bots import (
    find_best_discard, find_possible_melds, is_discard_card_useful, try_bot_rearrangement
)
from rummy_engine.engine import RummyEngine
from rummy_engine.models import Meld, RosterEntry
from rummy_engine.shuffle import parse_card, parse_cards

from conftest import assert_table_legal


def ids(shorts):
    return [c.id for c in parse_cards(shorts)]


def table(*melds):
    return [Meld(id=f"meld_{i}", cards=parse_cards(shorts)) for i, shorts in enumerate(melds)]


# ----- hand analysis -----

def test_find_possible_melds():
    hand = parse_cards("4H 5H 6H 9H 7C 7D 7S KS")
    melds = find_possible_melds(hand)
    assert [[c.id for c in m] for m in melds] == [ids("4H 5H 6H"), ids("7C 7D 7S")]


def test_find_possible_melds_skips_duplicate_values():
    """A second copy of a card does not break a run."""
    hand = [parse_card("4H"), parse_card("4H", deck_index=1), parse_card("5H"), parse_card("6H")]
    melds = find_possible_melds(hand)
    assert [[c.id for c in m] for m in melds] == [ids("4H 5H 6H")]


def test_find_possible_melds_nothing():
    assert find_possible_melds(parse_cards("2C 5D 9H KS")) == []


def test_is_discard_card_useful():
    assert is_discard_card_useful(parse_card("7H"), parse_cards("KC"), table("4H 5H 6H"))
    assert is_discard_card_useful(parse_card("8H"), parse_cards("6H 7H 2C"), [])
    assert not is_discard_card_useful(parse_card("KC"), parse_cards("2D 5S"), [])


def test_best_discard_avoids_table_extensions():
    """A card that could extend the table is kept; the high loner goes."""
    hand = parse_cards("7H KC 3D")
    assert find_best_discard(hand, table("4H 5H 6H")) == parse_card("KC")


def test_best_discard_keeps_pairs():
    assert find_best_discard(parse_cards("QS QD 10C"), []) == parse_card("10C")


def test_best_discard_protects_melds():
    """Breaking a meld in hand costs more than dropping a low loner."""
    hand = parse_cards("JH QH KH 4C")
    assert find_best_discard(hand, []) == parse_card("4C")


def test_best_discard_empty_hand():
    assert find_best_discard([], []) is None


# ----- rearrangement search -----

def test_rearrangement_extends_run():
    plan = try_bot_rearrangement(table("4H 5H 6H"), parse_cards("7H KC"))
    assert plan is not None
    assert plan.hand_card_ids == ids("7H")
    assert plan.proposal() == [ids("4H 5H 6H 7H")]


def test_rearrangement_splits_set_and_run():
    """7S joins the spade run while the set of sevens stays whole."""
    plan = try_bot_rearrangement(table("7H 7D 7C", "8S 9S 10S"), parse_cards("7S JS 2D"))
    assert plan is not None
    assert set(plan.hand_card_ids) == set(ids("7S JS"))

    covered = [card_id for meld in plan.proposal() for card_id in meld]
    assert set(ids("7H 7D 7C 8S 9S 10S")) <= set(covered)
    assert ids("2D")[0] not in covered


def test_rearrangement_ace_high():
    plan = try_bot_rearrangement(table("QS KS AS"), parse_cards("JS 2D"))
    assert plan is not None
    assert plan.proposal() == [ids("JS QS KS AS")]


def test_rearrangement_must_leave_a_card():
    """Using the whole hand is never proposed, and only maximal runs are tried."""
    assert try_bot_rearrangement(table("4H 5H 6H"), parse_cards("7H 8H")) is None


def test_rearrangement_bounds():
    assert try_bot_rearrangement(table("4H 5H 6H"), parse_cards("7H")) is None
    assert try_bot_rearrangement(table("7H 7D 7C", "8S 9S 10S"), parse_cards("7S JS 2D"), max_depth=1) is None
    assert try_bot_rearrangement(table("4H 5H 6H"), parse_cards("KC 2D")) is None


# ----- greedy bot -----

@pytest.fixture
def bot_match():
    engine = RummyEngine(rng=random.Random(7))
    roster = [
        RosterEntry(id="b1", name="Bot 1", is_bot=True),
        RosterEntry(id="p2", name="Bob", session_id="s2"),
    ]
    state = engine.start_match("bm", roster)
    return engine, state


def test_bot_plays_whole_turn(bot_match):
    engine, state = bot_match
    actions = engine.play_bot_turn("bm")

    assert actions[0].type == "draw"
    assert actions[-1].type in ("discard", "win")
    if state.winner is None:
        assert state.current_player.id == "p2"
        assert state.phase == "draw"
    assert_table_legal(state)


def test_bot_goes_out_through_rearrangement(bot_match, rig):
    engine, state = bot_match
    rig(state, ["5H", "2C 3C"], deck="9C", discard="2D", melds=["6H 7H 8H"])

    actions = engine.play_bot_turn("bm")

    assert [a.type for a in actions] == ["draw", "rearrange", "discard", "win"]
    assert actions[0].data["source"] == "deck"
    assert state.winner.player_id == "b1"
    assert state.phase == "finished"
    assert [m.card_ids() for m in state.melds] == [ids("5H 6H 7H 8H")]


def test_bot_sheds_cards_before_discarding(bot_match, rig):
    engine, state = bot_match
    rig(state, ["9H 2S 3S 4S KD", "2C 3C"], deck="QC", discard="5D", melds=["6H 7H 8H"])

    actions = engine.play_bot_turn("bm")
    types = [a.type for a in actions]

    assert "add_to_meld" in types or "rearrange" in types
    assert "play_meld" in types or "rearrange" in types
    assert [c.id for c in state.players[0].hand] == ids("QC")
    assert state.discard_top == parse_card("KD")
    assert_table_legal(state)


def test_no_turn_for_humans(engine, match):
    assert engine.play_bot_turn("m1") == []
    assert engine.run_bot_turns("m1") == []


def test_run_bot_turns_stops_at_human():
    engine = RummyEngine(rng=random.Random(3))
    roster = [
        RosterEntry(id="b1", name="Bot 1", is_bot=True),
        RosterEntry(id="b2", name="Bot 2", is_bot=True),
        RosterEntry(id="h", name="Human"),
    ]
    state = engine.start_match("mix", roster)
    actions = engine.run_bot_turns("mix")

    assert actions
    assert state.phase == "finished" or state.current_player.id == "h"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
