"""
Base bot interface and utilities.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

from ..constants import PHASE_FINISHED
from ..models import Card, MatchState, Meld, Player

if TYPE_CHECKING:
    from ..engine import RummyEngine


class BotAction:
    """Represents a bot action."""

    def __init__(self, action_type: str, player_id: str, **kwargs):
        self.type = action_type
        self.player_id = player_id
        self.data = kwargs

    def __repr__(self) -> str:
        return f"BotAction({self.type!r}, {self.player_id!r}, {self.data!r})"

    @classmethod
    def draw(cls, player_id: str, source: str, card: Card) -> 'BotAction':
        """Create a draw action."""
        return cls('draw', player_id, source=source, card=card)

    @classmethod
    def rearrange(cls, player_id: str, melds: List[Meld], cards_from_hand: List[str]) -> 'BotAction':
        """Create a table rearrangement action."""
        return cls('rearrange', player_id, melds=melds, cards_from_hand=cards_from_hand)

    @classmethod
    def add_to_meld(cls, player_id: str, card: Card, meld_id: str, position: str) -> 'BotAction':
        """Create an add-to-meld action."""
        return cls('add_to_meld', player_id, card=card, meld_id=meld_id, position=position)

    @classmethod
    def play_meld(cls, player_id: str, meld: Meld) -> 'BotAction':
        """Create a new meld action."""
        return cls('play_meld', player_id, meld=meld)

    @classmethod
    def discard(cls, player_id: str, card: Card) -> 'BotAction':
        """Create a discard action."""
        return cls('discard', player_id, card=card)

    @classmethod
    def win(cls, player_id: str, winner) -> 'BotAction':
        """Create a going-out action."""
        return cls('win', player_id, winner=winner)


class BaseBot(ABC):
    """Abstract base class for bot players."""

    def __init__(self, engine: 'RummyEngine'):
        self.engine = engine

    @abstractmethod
    def take_turn(self, match_id: str) -> List[BotAction]:
        """
        Play the current player's whole turn.

        Args:
            match_id: Match whose current player is this bot

        Returns:
            Actions taken, in order
        """
        pass

    def get_state(self, match_id: str) -> MatchState:
        return self.engine.get_match(match_id)

    def get_bot_player(self, match_id: str) -> Optional[Player]:
        """The current player, if it is a bot and the match is live."""
        state = self.engine.store.get(match_id)
        if state is None or state.phase == PHASE_FINISHED:
            return None
        player = state.current_player
        return player if player.is_bot else None
