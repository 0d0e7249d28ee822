"""Rule engine and turn state machine for a multiplayer rummy game."""

from .engine import RummyEngine
from .errors import GameError
from .models import Card, MatchState, Meld, Player, RosterEntry
from .rules import RuleConfig
from .store import MatchStore

__all__ = [
    "Card",
    "GameError",
    "MatchState",
    "MatchStore",
    "Meld",
    "Player",
    "RosterEntry",
    "RuleConfig",
    "RummyEngine",
]

__version__ = "1.0.0"
