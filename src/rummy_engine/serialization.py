"""
State serialization and per-player views.
"""

from dataclasses import asdict
from typing import Any, Dict, Optional

import orjson

from .models import Card, MatchState, Meld, WinnerRecord


def serialize_card(card: Optional[Card]) -> Optional[Dict[str, Any]]:
    if card is None:
        return None
    return {
        "id": card.id,
        "rank": card.rank,
        "suit": card.suit,
        "value": card.value,
        "deck_index": card.deck_index
    }


def serialize_meld(meld: Meld) -> Dict[str, Any]:
    return {
        "id": meld.id,
        "cards": [serialize_card(c) for c in meld.cards],
        "player_id": meld.player_id
    }


def serialize_winner(winner: Optional[WinnerRecord]) -> Optional[Dict[str, Any]]:
    return asdict(winner) if winner else None


def player_view(state: MatchState, viewer_id: str) -> Dict[str, Any]:
    """
    Build the state one player is allowed to see.

    Args:
        state: Match state
        viewer_id: Player receiving the view

    Returns:
        Dictionary with the viewer's own cards; other hands appear only as counts
    """
    my_index = state.player_index(viewer_id)
    me = state.players[my_index] if my_index >= 0 else None
    current = state.current_player

    return {
        "match_id": state.id,
        "version": state.version,
        "my_hand": [serialize_card(c) for c in me.hand] if me else [],
        "my_index": my_index,
        "players": [
            {
                "id": p.id,
                "name": p.name,
                "card_count": len(p.hand),
                "is_me": i == my_index,
                "connected": p.connected,
                "is_bot": p.is_bot
            }
            for i, p in enumerate(state.players)
        ],
        "melds": [serialize_meld(m) for m in state.melds],
        "discard_top": serialize_card(state.discard_top),
        "discard_count": len(state.discard),
        "deck_count": len(state.deck),
        "current_turn": state.current_turn,
        "current_player_id": current.id,
        "current_player_name": current.name,
        "is_my_turn": state.current_turn == my_index,
        "phase": state.phase,
        "winner": serialize_winner(state.winner),
        "rules": state.rules.model_dump()
    }


def public_match_info(state: MatchState) -> Dict[str, Any]:
    """Summary of a match for listings, no cards revealed."""
    return {
        "id": state.id,
        "phase": state.phase,
        "player_count": len(state.players),
        "players": [
            {"id": p.id, "name": p.name, "is_bot": p.is_bot, "connected": p.connected}
            for p in state.players
        ],
        "winner": serialize_winner(state.winner)
    }


def dumps(payload: Any) -> str:
    return orjson.dumps(payload).decode()
