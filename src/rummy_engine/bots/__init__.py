"""
Bot decision engine for computer-controlled seats.
"""

from .base import BaseBot, BotAction
from .greedy import GreedyBot
from .heuristics import find_best_discard, find_possible_melds, is_discard_card_useful
from .search import RearrangementPlan, try_bot_rearrangement
from ..validate import can_add_to_meld

__all__ = [
    "BaseBot",
    "BotAction",
    "GreedyBot",
    "RearrangementPlan",
    "can_add_to_meld",
    "find_best_discard",
    "find_possible_melds",
    "is_discard_card_useful",
    "try_bot_rearrangement",
]
