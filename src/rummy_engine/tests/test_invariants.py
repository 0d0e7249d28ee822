"""
Long-running matches: card conservation and table legality hold throughout.
"""

import random

import pytest

from rummy_engine.engine import RummyEngine
from rummy_engine.models import RosterEntry
from rummy_engine.rules import create_rules

from conftest import assert_cards_conserved, assert_table_legal


def bot_roster(count):
    return [RosterEntry(id=f"b{i}", name=f"Bot {i}", is_bot=True) for i in range(count)]


@pytest.mark.parametrize("deck_count,players,seed", [
    (1, 2, 1),
    (1, 3, 2),
    (2, 4, 3),
    (3, 6, 4),
])
def test_bot_matches_keep_invariants(deck_count, players, seed):
    """Check every card and every meld after each bot turn."""
    engine = RummyEngine(rng=random.Random(seed))
    state = engine.start_match("bots", bot_roster(players), create_rules(deck_count=deck_count))

    for _ in range(400):
        if state.phase == "finished":
            break
        hand_sizes = [len(p.hand) for p in state.players]
        actions = engine.play_bot_turn("bots")
        assert actions

        assert_cards_conserved(state)
        assert_table_legal(state)
        # Only the player who moved can have changed hand size
        mover = actions[0].player_id
        for player, before in zip(state.players, hand_sizes):
            if player.id != mover:
                assert len(player.hand) == before

    if state.winner is not None:
        assert state.phase == "finished"
        winner = state.get_player(state.winner.player_id)
        assert winner.hand == []
        scores = {s.player_id: s.points for s in state.winner.scores}
        assert scores[winner.id] == 0


def test_turn_order_is_circular():
    engine = RummyEngine(rng=random.Random(5))
    roster = [RosterEntry(id=f"p{i}", name=f"P{i}") for i in range(3)]
    state = engine.start_match("circle", roster, create_rules(starting_player_index=2))

    seen = []
    for _ in range(6):
        player = state.current_player
        seen.append(player.id)
        engine.draw("circle", player.id)
        engine.discard("circle", player.id, player.hand[-1].id)

    assert seen == ["p2", "p0", "p1", "p2", "p0", "p1"]


def test_deck_runs_out_and_reshuffles():
    """Drawing and discarding past the end of the deck recycles the discard pile."""
    engine = RummyEngine(rng=random.Random(11))
    roster = [RosterEntry(id="a", name="A"), RosterEntry(id="b", name="B")]
    state = engine.start_match("long", roster)

    for _ in range(62):
        player = state.current_player
        card = engine.draw("long", player.id, "deck")
        engine.discard("long", player.id, card.id)
        assert_cards_conserved(state)
        assert len(player.hand) == 10

    assert state.reshuffle_count >= 1
    assert state.winner is None
    assert len(state.deck) + len(state.discard) == 32


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
