"""
Hand scoring and winner records.
"""

from typing import List

from .models import Card, MatchState, Player, ScoreLine, WinnerRecord


def card_points(card: Card) -> int:
    """Ace scores 1, face cards 10, numerals their face value."""
    if card.rank == 'A':
        return 1
    if card.rank in ('J', 'Q', 'K'):
        return 10
    return card.value


def calculate_hand_points(hand: List[Card]) -> int:
    return sum(card_points(card) for card in hand)


def check_win(hand: List[Card]) -> bool:
    return len(hand) == 0


def build_winner_record(state: MatchState, winner: Player) -> WinnerRecord:
    return WinnerRecord(
        player_id=winner.id,
        player_name=winner.name,
        scores=[
            ScoreLine(
                player_id=p.id,
                name=p.name,
                points=calculate_hand_points(p.hand),
                is_winner=p.id == winner.id
            )
            for p in state.players
        ]
    )
