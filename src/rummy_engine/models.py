"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import Dict, List, NewType, Optional

from .constants import PHASE_DRAW, SUIT_SYMBOLS
from .rules import RuleConfig

PlayerId = NewType('PlayerId', str)
SessionId = NewType('SessionId', str)


@dataclass(frozen=True)
class Card:
    id: str
    rank: str  # A, 2..10, J, Q, K
    suit: str
    value: int  # A=1 .. K=13
    deck_index: int = 0

    def label(self) -> str:
        return f"{self.rank}{SUIT_SYMBOLS.get(self.suit, self.suit)}"


@dataclass
class Meld:
    id: str
    cards: List[Card] = field(default_factory=list)
    player_id: Optional[PlayerId] = None  # last contributor, display only

    def card_ids(self) -> List[str]:
        return [c.id for c in self.cards]


@dataclass
class Player:
    id: PlayerId
    name: str
    hand: List[Card] = field(default_factory=list)
    connected: bool = True
    is_bot: bool = False
    session_id: Optional[SessionId] = None

    def find_card(self, card_id: str) -> Optional[Card]:
        return next((c for c in self.hand if c.id == card_id), None)


@dataclass
class ScoreLine:
    player_id: PlayerId
    name: str
    points: int
    is_winner: bool


@dataclass
class WinnerRecord:
    player_id: PlayerId
    player_name: str
    scores: List[ScoreLine] = field(default_factory=list)


@dataclass
class RosterEntry:
    """A seat handed over by room management when a match starts."""
    id: str
    name: str
    is_bot: bool = False
    session_id: Optional[str] = None


@dataclass
class MatchState:
    id: str
    players: List[Player] = field(default_factory=list)
    deck: List[Card] = field(default_factory=list)  # draw pile, front = next card
    discard: List[Card] = field(default_factory=list)  # last = visible top
    melds: List[Meld] = field(default_factory=list)
    current_turn: int = 0
    phase: str = PHASE_DRAW  # draw|play|finished
    winner: Optional[WinnerRecord] = None
    rules: RuleConfig = field(default_factory=RuleConfig)
    sessions: Dict[SessionId, PlayerId] = field(default_factory=dict)
    version: int = 0
    reshuffle_count: int = 0
    game_log: List[str] = field(default_factory=list)

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def player_index(self, player_id: str) -> int:
        return next((i for i, p in enumerate(self.players) if p.id == player_id), -1)

    def get_meld(self, meld_id: str) -> Optional[Meld]:
        return next((m for m in self.melds if m.id == meld_id), None)

    @property
    def current_player(self) -> Player:
        return self.players[self.current_turn]

    @property
    def discard_top(self) -> Optional[Card]:
        return self.discard[-1] if self.discard else None

    def table_cards(self) -> List[Card]:
        return [c for m in self.melds for c in m.cards]

    def all_cards(self) -> List[Card]:
        """Every card in the match, wherever it currently lies."""
        cards = [c for p in self.players for c in p.hand]
        cards.extend(self.deck)
        cards.extend(self.discard)
        cards.extend(self.table_cards())
        return cards
